"""Order, OrderItem and OrderLine models.

Business rules implemented:
- Order ``codigo`` auto-generated as human-readable identifier.
- Monetary values are integer centavos; ``OrderItem.subtotal`` is always
  ``quantidade * preco_unitario`` (recalculated on save).
- OrderItem snapshots the product name/category/carrier at purchase time.
- The upsell tracking lists never hold duplicates.
- OrderLine ``svas`` never holds the same SVA id twice.
- OrderLine is hard-deleted: removing a line frees its number and SVAs.
"""

from __future__ import annotations

import secrets
from typing import Any

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    CUSTOMER_EDITABLE_LINE_STATUS,
    DISCARDED_LINE_STATUSES,
    ORDER_CODE_MAX_RETRIES,
    TERMINAL_STAGES,
    LineStatus,
    OrderStage,
    TipoContratacao,
)
from modules.products.models import is_sva_category
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


def _append_unique(values: list[str] | None, value: str) -> tuple[list[str], bool]:
    """Return ``(list, changed)`` with *value* appended when absent."""
    current = list(values or [])
    if value in current:
        return current, False
    current.append(value)
    return current, True


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``upsells_offered`` / ``upsells_accepted`` / ``upsells_refused`` are
    append-only id lists (see ``modules.orders.upsell``).
    """

    codigo: models.CharField = models.CharField(
        max_length=20, unique=True, editable=False
    )
    customer: models.ForeignKey = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    tipo_contratacao: models.CharField = models.CharField(
        max_length=20,
        choices=TipoContratacao.choices,
        default=TipoContratacao.PORTABILIDADE,
    )
    etapa: models.CharField = models.CharField(
        max_length=100,
        choices=OrderStage.choices,
        default=OrderStage.NOVO_PEDIDO,
    )
    total: models.IntegerField = models.IntegerField(default=0)
    observacoes: models.TextField = models.TextField(blank=True, default="")
    upsells_offered: models.JSONField = models.JSONField(default=list, blank=True)
    upsells_accepted: models.JSONField = models.JSONField(default=list, blank=True)
    upsells_refused: models.JSONField = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["etapa"], name="orders_etapa_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    @property
    def is_terminal(self) -> bool:
        """``True`` once the order no longer holds its phone numbers."""
        return self.etapa in TERMINAL_STAGES

    # ------------------------------------------------------------------
    # Upsell bookkeeping (idempotent)
    # ------------------------------------------------------------------

    def mark_upsell_offered(self, sva_id: str) -> bool:
        self.upsells_offered, changed = _append_unique(self.upsells_offered, sva_id)
        return changed

    def mark_upsell_accepted(self, sva_id: str) -> bool:
        self.upsells_accepted, changed = _append_unique(self.upsells_accepted, sva_id)
        return changed

    def mark_upsell_refused(self, sva_id: str) -> bool:
        self.upsells_refused, changed = _append_unique(self.upsells_refused, sva_id)
        return changed

    # ------------------------------------------------------------------
    # Code generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_codigo() -> str:
        """Generate a human-readable order code: ``PED-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"PED-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.codigo:
            for _ in range(ORDER_CODE_MAX_RETRIES):
                candidate = self.generate_codigo()
                if not Order.objects.filter(codigo=candidate).exists():
                    self.codigo = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order code after "
                    f"{ORDER_CODE_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.codigo} ({self.etapa})"


class OrderItem(BaseModel):
    """Purchased product within an order.

    Non-SVA items define how many phone lines the order holds
    (``quantidade + linhas_adicionais`` each); SVA items feed the SVA
    inventory that lines draw from.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_nome: models.CharField = models.CharField(max_length=255, blank=True, default="")
    product_descricao: models.TextField = models.TextField(blank=True, default="")
    product_categoria: models.CharField = models.CharField(
        max_length=100, blank=True, default=""
    )
    product_operadora: models.CharField = models.CharField(
        max_length=100, blank=True, default=""
    )
    quantidade: models.PositiveIntegerField = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    linhas_adicionais: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    preco_unitario: models.PositiveIntegerField = models.PositiveIntegerField()
    subtotal: models.PositiveIntegerField = models.PositiveIntegerField(editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantidade__gte=1),
                name="order_items_quantidade_positive",
            ),
        ]

    @property
    def is_sva(self) -> bool:
        return is_sva_category(self.product_categoria)

    def clean(self) -> None:
        super().clean()
        if self.quantidade is not None and self.quantidade < 1:
            raise ValidationError({"quantidade": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        product = self.product
        if not self.product_nome:
            self.product_nome = product.nome
        if not self.product_descricao:
            self.product_descricao = product.descricao
        if not self.product_categoria:
            self.product_categoria = product.categoria
        if not self.product_operadora:
            self.product_operadora = product.operadora
        if self.preco_unitario is None:
            self.preco_unitario = product.preco
        self.subtotal = self.quantidade * self.preco_unitario
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_nome} x{self.quantidade} ({self.subtotal})"


class OrderLine(BaseModel):
    """Phone number to be activated or ported for an order.

    ``status == inicial`` is the only state a customer may edit or delete.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="lines",
    )
    product: models.ForeignKey = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_lines",
        null=True,
        blank=True,
    )
    numero: models.CharField = models.CharField(max_length=20)
    operadora_atual: models.CharField = models.CharField(
        max_length=50, blank=True, default=""
    )
    operadora_destino: models.CharField = models.CharField(
        max_length=50, blank=True, default=""
    )
    svas: models.JSONField = models.JSONField(default=list, blank=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=LineStatus.choices,
        default=LineStatus.INICIAL,
    )
    observacoes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_lines"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["numero"], name="order_lines_numero_idx"),
            models.Index(fields=["order", "created_at"], name="order_lines_order_idx"),
        ]

    @property
    def is_customer_editable(self) -> bool:
        return self.status == CUSTOMER_EDITABLE_LINE_STATUS

    @property
    def is_discarded(self) -> bool:
        return self.status in DISCARDED_LINE_STATUSES

    def clean(self) -> None:
        super().clean()
        svas = [str(s) for s in (self.svas or [])]
        if len(svas) != len(set(svas)):
            raise ValidationError({"svas": "An SVA may appear only once per line."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.svas = [str(s) for s in (self.svas or [])]
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"***{self.numero[-4:]} [{self.status}]"
