import django.db.models.deletion
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        ("routes", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Delivery",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("generation", models.PositiveIntegerField()),
                ("position", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendiente"),
                            ("in_transit", "En tránsito"),
                            ("delivered", "Entregado"),
                            ("failed", "No entregado"),
                        ],
                        default="pending",
                        max_length=12,
                    ),
                ),
                ("window_start", models.DateTimeField()),
                ("window_end", models.DateTimeField()),
                ("item_count", models.PositiveIntegerField(default=0)),
                ("evidence_ref", models.CharField(blank=True, default="", max_length=255)),
                (
                    "failure_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("cliente_ausente", "Cliente ausente"),
                            ("direccion_incorrecta", "Dirección incorrecta"),
                            ("rechazado_por_cliente", "Rechazado por el cliente"),
                            ("producto_danado", "Producto dañado"),
                            ("fuera_de_horario", "Fuera de horario"),
                            ("ruta_abortada", "Ruta abortada"),
                            ("otro", "Otro"),
                        ],
                        default="",
                        max_length=30,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("in_transit_at", models.DateTimeField(blank=True, null=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="deliveries",
                        to="orders.order",
                    ),
                ),
                (
                    "route",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="deliveries",
                        to="routes.route",
                    ),
                ),
                (
                    "stop",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="deliveries",
                        to="routes.stop",
                    ),
                ),
            ],
            options={
                "db_table": "deliveries",
                "ordering": ["route", "generation", "position"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=["stop", "generation"],
                        name="deliveries_unique_stop_generation",
                    ),
                ],
                "indexes": [
                    models.Index(
                        fields=["route", "generation", "status"],
                        name="deliveries_route_gen_idx",
                    ),
                ],
            },
        ),
    ]
