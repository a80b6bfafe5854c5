"""Order and order-line repository interfaces.

Extend ``IRepository`` with the query shapes the line allocation and
upsell use-cases need: row locks on the order, lines by order, lines by
phone number (joined to their order) and SVA item insertion.

The Service Layer depends exclusively on these contracts (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderItem, OrderLine
    from modules.products.models import Product


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    ``save`` must persist pending domain events to the outbox in the same
    transaction as the order itself.
    """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (``None`` if missing)."""

    @abstractmethod
    def queryset(self, customer_id: Optional[UUID] = None) -> QuerySet:
        """Orders visible to a customer, or all orders when ``None``."""

    @abstractmethod
    def list_items(self, order_id: UUID) -> List[OrderItem]:
        """Items of the order with their product resolved."""

    @abstractmethod
    def has_item_for_product(self, order_id: UUID, product_id: Any) -> bool:
        """Whether the order already holds an item of this product."""

    @abstractmethod
    def add_item(self, order: Order, product: Product, quantidade: int = 1) -> OrderItem:
        """Insert an item snapshotting the product's name, category and price."""


class IOrderLineRepository(IRepository["OrderLine"]):
    """Repository contract for phone lines of an order."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[OrderLine]:
        """Retrieve a line with a row-level lock (``None`` if missing)."""

    @abstractmethod
    def list_by_order(self, order_id: UUID) -> List[OrderLine]:
        """Lines of the order in creation order."""

    @abstractmethod
    def count_by_order(self, order_id: UUID) -> int:
        """Number of persisted lines of the order."""

    @abstractmethod
    def list_by_numero(self, numero: str) -> List[OrderLine]:
        """Every line bound to *numero*, with its order loaded."""

    @abstractmethod
    def lock_numero(self, numero: str) -> None:
        """Hold a per-number lock until the current transaction ends."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> OrderLine:
        """Insert a line from a field mapping."""

    @abstractmethod
    def delete(self, line: OrderLine) -> None:
        """Hard-delete a line."""
