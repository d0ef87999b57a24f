"""Cross-module constants shared by every lifecycle authority."""

from django.db import models


class ActorRole(models.TextChoices):
    """Role of whoever triggers a status change (recorded in audit trails)."""

    CLIENT = "cliente", "Cliente"
    SELLER = "vendedor", "Vendedor"
    WAREHOUSE = "bodeguero", "Bodeguero"
    SUPERVISOR = "supervisor", "Supervisor"
    DRIVER = "transportista", "Transportista"
    SYSTEM = "sistema", "Sistema"
