import django.core.validators
import django.db.models.deletion
import uuid6
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("PENDIENTE", "Pendiente"),
    ("APROBADO", "Aprobado"),
    ("EN_PREPARACION", "En preparación"),
    ("FACTURADO", "Facturado"),
    ("EN_RUTA", "En ruta"),
    ("ENTREGADO", "Entregado"),
    ("ANULADO", "Anulado"),
    ("RECHAZADO", "Rechazado"),
]

ACTOR_ROLE_CHOICES = [
    ("cliente", "Cliente"),
    ("vendedor", "Vendedor"),
    ("bodeguero", "Bodeguero"),
    ("supervisor", "Supervisor"),
    ("transportista", "Transportista"),
    ("sistema", "Sistema"),
]


def money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
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
                (
                    "deleted_at",
                    models.DateTimeField(blank=True, db_index=True, default=None, null=True),
                ),
                (
                    "order_number",
                    models.CharField(editable=False, max_length=20, unique=True),
                ),
                ("client_id", models.UUIDField(db_index=True)),
                (
                    "status",
                    models.CharField(
                        choices=ORDER_STATUS_CHOICES, default="PENDIENTE", max_length=20
                    ),
                ),
                (
                    "payment_condition",
                    models.CharField(
                        choices=[("CONTADO", "Contado"), ("CREDITO", "Crédito")],
                        default="CONTADO",
                        max_length=10,
                    ),
                ),
                ("subtotal", money(default=Decimal("0.00"))),
                ("discount_total", money(default=Decimal("0.00"))),
                ("tax_total", money(default=Decimal("0.00"))),
                ("total", money(default=Decimal("0.00"))),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "idempotency_key",
                    models.CharField(blank=True, max_length=255, null=True, unique=True),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="orders_status_idx"),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
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
                (
                    "deleted_at",
                    models.DateTimeField(blank=True, db_index=True, default=None, null=True),
                ),
                ("product_id", models.UUIDField()),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("unit_price", money()),
                ("final_price", money()),
                ("subtotal", money(editable=False)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_items",
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1),
                        name="order_items_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
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
                (
                    "old_status",
                    models.CharField(
                        blank=True, choices=ORDER_STATUS_CHOICES, max_length=20, null=True
                    ),
                ),
                (
                    "new_status",
                    models.CharField(choices=ORDER_STATUS_CHOICES, max_length=20),
                ),
                (
                    "actor_role",
                    models.CharField(
                        choices=ACTOR_ROLE_CHOICES, default="sistema", max_length=20
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.order",
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
                "db_table": "order_status_history",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["order", "-created_at"], name="osh_order_created_idx"
                    ),
                ],
            },
        ),
    ]
