"""Line-capacity calculation.

Splits an order's purchased items into *capacity* items (plans, chips,
devices) and *SVA* items.  Every capacity item contributes
``quantidade + linhas_adicionais`` phone-line slots; SVA items feed the
SVA inventory that lines draw from (see ``modules.orders.ledger``).

Pure functions: no ORM access happens here.  ``items_from_order`` adapts
``OrderItem`` rows (with their resolved product) to ``CapacityItem``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

import structlog

from modules.products.models import is_sva_category

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CapacityItem:
    """What the calculator needs to know about one purchased item.

    ``categoria`` / ``nome`` / ``operadora`` / ``svas_upsell`` come from the
    resolved product when it still exists, otherwise from the item's
    snapshot.
    """

    product_id: str
    nome: str = ""
    categoria: str = ""
    operadora: str = ""
    quantidade: Optional[int] = 1
    linhas_adicionais: Optional[int] = 0
    svas_upsell: List[str] = field(default_factory=list)

    @property
    def is_sva(self) -> bool:
        return is_sva_category(self.categoria)

    @property
    def slots(self) -> int:
        return (self.quantidade or 1) + (self.linhas_adicionais or 0)


@dataclass(frozen=True)
class ProductEntry:
    id: str
    nome: str
    operadora: str
    categoria: str
    quantidade: int
    svas_upsell: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.nome,
            "operadora": self.operadora,
            "categoria": self.categoria,
            "quantidade": self.quantidade,
            "svas_upsell": list(self.svas_upsell),
        }


@dataclass(frozen=True)
class SvaEntry:
    id: str
    nome: str
    categoria: str
    quantidade: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.nome,
            "categoria": self.categoria,
            "quantidade": self.quantidade,
        }


@dataclass(frozen=True)
class LineCapacity:
    total_linhas_contratadas: int
    produtos_disponiveis: List[ProductEntry]
    svas_disponiveis: List[SvaEntry]

    @property
    def sem_capacidade(self) -> bool:
        """An order with no capacity item cannot receive any line."""
        return self.total_linhas_contratadas == 0

    @property
    def upsell_source_ids(self) -> List[str]:
        """SVA ids cross-sold by the capacity products, first-seen order."""
        seen: List[str] = []
        for produto in self.produtos_disponiveis:
            for sva_id in produto.svas_upsell:
                if sva_id not in seen:
                    seen.append(sva_id)
        return seen


def compute_capacity(items: Iterable[CapacityItem]) -> LineCapacity:
    """Partition *items* and sum the slots of the capacity ones."""
    total = 0
    produtos: List[ProductEntry] = []
    svas: List[SvaEntry] = []

    for item in items:
        if item.is_sva:
            svas.append(
                SvaEntry(
                    id=item.product_id,
                    nome=item.nome,
                    categoria=item.categoria,
                    quantidade=item.quantidade or 1,
                )
            )
            continue
        total += item.slots
        produtos.append(
            ProductEntry(
                id=item.product_id,
                nome=item.nome,
                operadora=item.operadora,
                categoria=item.categoria,
                quantidade=item.slots,
                svas_upsell=list(item.svas_upsell),
            )
        )

    return LineCapacity(
        total_linhas_contratadas=total,
        produtos_disponiveis=produtos,
        svas_disponiveis=svas,
    )


def items_from_order(order_items: Iterable[Any]) -> List[CapacityItem]:
    """Adapt ``OrderItem`` rows to ``CapacityItem`` values."""
    adapted = []
    for item in order_items:
        product = getattr(item, "product", None)
        if product is not None:
            nome = product.nome
            categoria = product.categoria or item.product_categoria
            operadora = product.operadora
            svas_upsell = [str(s) for s in (product.svas_upsell or [])]
        else:
            nome = item.product_nome
            categoria = item.product_categoria
            operadora = item.product_operadora
            svas_upsell = []
        adapted.append(
            CapacityItem(
                product_id=str(item.product_id),
                nome=nome,
                categoria=categoria,
                operadora=operadora,
                quantidade=item.quantidade,
                linhas_adicionais=item.linhas_adicionais,
                svas_upsell=svas_upsell,
            )
        )
    return adapted


def capacity_for_order(order_items: Iterable[Any], order_id: Any = None) -> LineCapacity:
    """Compute the capacity of an order and warn when it has none."""
    capacity = compute_capacity(items_from_order(order_items))
    if capacity.sem_capacidade:
        logger.warning(
            "order_line.no_capacity_items",
            order_id=str(order_id) if order_id is not None else None,
            sva_items=len(capacity.svas_disponiveis),
        )
    return capacity
