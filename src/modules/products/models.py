"""Product catalog model.

Business rules implemented:
- Prices are integer centavos and must be greater than zero.
- A product is an SVA (value-added service) when its ``categoria``
  contains "sva" (case-insensitive); SVAs never count as phone lines.
- ``svas_upsell`` lists, in offer order, the SVA product ids cross-sold
  with this product.
"""

from __future__ import annotations

import structlog

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel

logger = structlog.get_logger(__name__)

SVA_CATEGORY_MARKER = "sva"


def is_sva_category(categoria: str | None) -> bool:
    """Return ``True`` when a category string denotes an SVA."""
    return SVA_CATEGORY_MARKER in (categoria or "").lower()


class Product(BaseModel):
    """Plan, device or SVA sold through the portal."""

    nome = models.CharField(max_length=255)
    descricao = models.TextField(blank=True, default="")
    categoria = models.CharField(max_length=50)
    operadora = models.CharField(max_length=10, blank=True, default="")
    preco = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    ativo = models.BooleanField(default=True)
    svas_upsell = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "products"
        ordering = ["nome"]
        indexes = [
            models.Index(fields=["categoria"], name="products_categoria_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(preco__gt=0),
                name="products_preco_positive",
            ),
        ]

    @property
    def is_sva(self) -> bool:
        return is_sva_category(self.categoria)

    def clean(self) -> None:
        super().clean()
        if self.preco is not None and self.preco <= 0:
            raise ValidationError({"preco": "Price must be greater than zero."})
        if not isinstance(self.svas_upsell, list):
            raise ValidationError({"svas_upsell": "Must be a list of product ids."})

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        self.svas_upsell = [str(sva_id) for sva_id in (self.svas_upsell or [])]
        super().save(*args, **kwargs)
        if is_new:
            logger.info(
                "product_created",
                product_id=str(self.id),
                categoria=self.categoria,
                nome=self.nome,
            )

    def __str__(self) -> str:
        return f"{self.nome} ({self.categoria})"
