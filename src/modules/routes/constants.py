"""Route ("rutero") domain constants.

A route is created ``publicado``, started once (``en_curso``) and closed
either by completion or by deactivation (``cancelado``).
"""

from django.db import models


class RouteStatus(models.TextChoices):
    PUBLISHED = "publicado", "Publicado"
    IN_PROGRESS = "en_curso", "En curso"
    COMPLETED = "completado", "Completado"
    CANCELLED = "cancelado", "Cancelado"


class Frequency(models.TextChoices):
    WEEKLY = "SEMANAL", "Semanal"
    BIWEEKLY = "QUINCENAL", "Quincenal"
    MONTHLY = "MENSUAL", "Mensual"


class DayOfWeek(models.TextChoices):
    MONDAY = "LUNES", "Lunes"
    TUESDAY = "MARTES", "Martes"
    WEDNESDAY = "MIERCOLES", "Miércoles"
    THURSDAY = "JUEVES", "Jueves"
    FRIDAY = "VIERNES", "Viernes"


TERMINAL_STATES: frozenset[str] = frozenset(
    {RouteStatus.COMPLETED, RouteStatus.CANCELLED}
)

OPEN_STATES: frozenset[str] = frozenset(
    {RouteStatus.PUBLISHED, RouteStatus.IN_PROGRESS}
)
