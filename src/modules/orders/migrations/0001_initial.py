import django.core.validators
import django.db.models.deletion
import uuid6
from django.db import migrations, models

ETAPA_CHOICES = [
    ("novo_pedido", "Novo pedido"),
    ("em_analise", "Em análise"),
    ("ajuste_solicitado", "Ajuste solicitado"),
    ("aprovado", "Aprovado"),
    ("em_processo", "Em processo"),
    ("concluido", "Concluído"),
    ("encerrado", "Encerrado"),
    ("reprovado", "Reprovado"),
    ("cancelado", "Cancelado"),
]

LINE_STATUS_CHOICES = [
    ("inicial", "Inicial"),
    ("em_analise", "Em análise"),
    ("aprovado", "Aprovado"),
    ("em_processo", "Em processo"),
    ("concluido", "Concluído"),
    ("cancelado", "Cancelado"),
]


def _base_fields():
    return [
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
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("customers", "0001_initial"),
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                *_base_fields(),
                (
                    "codigo",
                    models.CharField(editable=False, max_length=20, unique=True),
                ),
                (
                    "tipo_contratacao",
                    models.CharField(
                        choices=[
                            ("novo", "Linha nova"),
                            ("portabilidade", "Portabilidade"),
                        ],
                        default="portabilidade",
                        max_length=20,
                    ),
                ),
                (
                    "etapa",
                    models.CharField(
                        choices=ETAPA_CHOICES, default="novo_pedido", max_length=100
                    ),
                ),
                ("total", models.IntegerField(default=0)),
                ("observacoes", models.TextField(blank=True, default="")),
                ("upsells_offered", models.JSONField(blank=True, default=list)),
                ("upsells_accepted", models.JSONField(blank=True, default=list)),
                ("upsells_refused", models.JSONField(blank=True, default=list)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="customers.customer",
                    ),
                ),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["etapa"], name="orders_etapa_idx"),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                *_base_fields(),
                (
                    "product_nome",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("product_descricao", models.TextField(blank=True, default="")),
                (
                    "product_categoria",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                (
                    "product_operadora",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                (
                    "quantidade",
                    models.PositiveIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("linhas_adicionais", models.PositiveIntegerField(default=0)),
                ("preco_unitario", models.PositiveIntegerField()),
                ("subtotal", models.PositiveIntegerField(editable=False)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "db_table": "order_items",
                "ordering": ["created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantidade__gte=1),
                        name="order_items_quantidade_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLine",
            fields=[
                *_base_fields(),
                ("numero", models.CharField(max_length=20)),
                (
                    "operadora_atual",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                (
                    "operadora_destino",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                ("svas", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    models.CharField(
                        choices=LINE_STATUS_CHOICES, default="inicial", max_length=20
                    ),
                ),
                ("observacoes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_lines",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "db_table": "order_lines",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["numero"], name="order_lines_numero_idx"),
                    models.Index(
                        fields=["order", "created_at"], name="order_lines_order_idx"
                    ),
                ],
            },
        ),
    ]
