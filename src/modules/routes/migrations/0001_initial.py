import django.db.models.deletion
import uuid6
from django.conf import settings
from django.db import migrations, models

ROUTE_STATUS_CHOICES = [
    ("publicado", "Publicado"),
    ("en_curso", "En curso"),
    ("completado", "Completado"),
    ("cancelado", "Cancelado"),
]

ACTOR_ROLE_CHOICES = [
    ("cliente", "Cliente"),
    ("vendedor", "Vendedor"),
    ("bodeguero", "Bodeguero"),
    ("supervisor", "Supervisor"),
    ("transportista", "Transportista"),
    ("sistema", "Sistema"),
]


def uuid7_pk():
    return models.UUIDField(
        default=uuid6.uuid7, editable=False, primary_key=True, serialize=False
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Route",
            fields=[
                ("id", uuid7_pk()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "deleted_at",
                    models.DateTimeField(blank=True, db_index=True, default=None, null=True),
                ),
                ("name", models.CharField(blank=True, default="", max_length=120)),
                ("zone_id", models.PositiveIntegerField(db_index=True)),
                ("driver_id", models.UUIDField(blank=True, db_index=True, null=True)),
                ("vehicle_id", models.UUIDField(blank=True, null=True)),
                ("scheduled_date", models.DateField(blank=True, null=True)),
                (
                    "frequency",
                    models.CharField(
                        choices=[
                            ("SEMANAL", "Semanal"),
                            ("QUINCENAL", "Quincenal"),
                            ("MENSUAL", "Mensual"),
                        ],
                        default="SEMANAL",
                        max_length=10,
                    ),
                ),
                (
                    "day_of_week",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("LUNES", "Lunes"),
                            ("MARTES", "Martes"),
                            ("MIERCOLES", "Miércoles"),
                            ("JUEVES", "Jueves"),
                            ("VIERNES", "Viernes"),
                        ],
                        default="",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=ROUTE_STATUS_CHOICES, default="publicado", max_length=12
                    ),
                ),
                ("generation", models.PositiveIntegerField(default=0)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancel_reason", models.TextField(blank=True, default="")),
            ],
            options={
                "db_table": "routes",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="routes_status_idx"),
                    models.Index(fields=["scheduled_date"], name="routes_scheduled_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Stop",
            fields=[
                ("id", uuid7_pk()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("client_id", models.UUIDField()),
                ("position", models.PositiveIntegerField()),
                ("insertion_index", models.PositiveIntegerField(editable=False)),
                ("notes", models.TextField(blank=True, default="")),
                ("prepared_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stops",
                        to="orders.order",
                    ),
                ),
                (
                    "route",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stops",
                        to="routes.route",
                    ),
                ),
                (
                    "prepared_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "route_stops",
                "ordering": ["position", "insertion_index"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["route", "insertion_index"],
                        name="route_stops_unique_insertion",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RouteStatusHistory",
            fields=[
                ("id", uuid7_pk()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "old_status",
                    models.CharField(
                        blank=True, choices=ROUTE_STATUS_CHOICES, max_length=12, null=True
                    ),
                ),
                (
                    "new_status",
                    models.CharField(choices=ROUTE_STATUS_CHOICES, max_length=12),
                ),
                (
                    "actor_role",
                    models.CharField(
                        choices=ACTOR_ROLE_CHOICES, default="sistema", max_length=20
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "route",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="routes.route",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "route_status_history",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["route", "-created_at"], name="rsh_route_created_idx"
                    ),
                ],
            },
        ),
    ]
