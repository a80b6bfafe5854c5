import django.core.validators
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
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
                ("nome", models.CharField(max_length=255)),
                ("descricao", models.TextField(blank=True, default="")),
                ("categoria", models.CharField(max_length=50)),
                (
                    "operadora",
                    models.CharField(blank=True, default="", max_length=10),
                ),
                (
                    "preco",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("ativo", models.BooleanField(default=True)),
                ("svas_upsell", models.JSONField(blank=True, default=list)),
            ],
            options={
                "db_table": "products",
                "ordering": ["nome"],
                "indexes": [
                    models.Index(fields=["categoria"], name="products_categoria_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(preco__gt=0),
                        name="products_preco_positive",
                    ),
                ],
            },
        ),
    ]
