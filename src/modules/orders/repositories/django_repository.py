"""Django ORM implementation of the Order and OrderLine repositories.

Satisfies ``IOrderRepository`` / ``IOrderLineRepository`` using Django's
QuerySet API.  Writes are wrapped in ``transaction.atomic()``; when called
from a service they join the service's transaction.

Concurrency control uses ``select_for_update()`` on the order row: every
line and upsell mutation locks its order first, so two requests for the
same order are serialized (no ``version`` field exists on the model).
Binding a phone number also takes a transaction-scoped advisory lock on
the number, which serializes writers across different orders.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import connection, transaction
from django.db.models import QuerySet

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderItem, OrderLine
from modules.orders.repositories.interfaces import IOrderLineRepository, IOrderRepository
from modules.products.models import Product

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        ``select_related`` for the customer FK and ``prefetch_related`` for
        items (with product) and lines.  Returns ``None`` for non-existent
        or invalid IDs.
        """
        try:
            return (
                Order.objects.select_related("customer")
                .prefetch_related("items__product", "lines")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .select_related("customer")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def queryset(self, customer_id: Optional[UUID] = None) -> QuerySet:
        queryset = Order.objects.select_related("customer").prefetch_related(
            "items", "lines"
        )
        if customer_id is not None:
            queryset = queryset.filter(customer_id=customer_id)
        return queryset

    def list_items(self, order_id: UUID) -> List[OrderItem]:
        return list(
            OrderItem.objects.select_related("product")
            .filter(order_id=order_id)
            .order_by("created_at")
        )

    def has_item_for_product(self, order_id: UUID, product_id: Any) -> bool:
        try:
            return OrderItem.objects.filter(
                order_id=order_id, product_id=product_id
            ).exists()
        except (ValueError, ValidationError):
            return False

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, order: Order, product: Product, quantidade: int = 1) -> OrderItem:
        item = OrderItem(
            order=order,
            product=product,
            quantidade=quantidade,
            preco_unitario=product.preco,
        )
        item.save()
        logger.info(
            "order.item_added",
            order_id=str(order.id),
            product_id=str(product.id),
            subtotal=item.subtotal,
        )
        return item

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist (create or update) an order and flush its domain events."""
        entity.save()

        events = entity.domain_events if hasattr(entity, "domain_events") else []
        for event in events:
            payload = _serialize_event_payload(event)
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=payload,
                topic="orders",
            )
        if hasattr(entity, "clear_domain_events"):
            entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity


class OrderLineDjangoRepository(IOrderLineRepository):
    """Concrete OrderLine repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[OrderLine]:
        try:
            return (
                OrderLine.objects.select_related("order", "product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[OrderLine]:
        # ``of=("self",)``: the nullable product join cannot be locked.
        try:
            return (
                OrderLine.objects.select_for_update(of=("self",))
                .select_related("order", "product")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list_by_order(self, order_id: UUID) -> List[OrderLine]:
        return list(
            OrderLine.objects.select_related("product")
            .filter(order_id=order_id)
            .order_by("created_at", "id")
        )

    def count_by_order(self, order_id: UUID) -> int:
        return OrderLine.objects.filter(order_id=order_id).count()

    def list_by_numero(self, numero: str) -> List[OrderLine]:
        return list(OrderLine.objects.select_related("order").filter(numero=numero))

    def lock_numero(self, numero: str) -> None:
        # Orders lock their own row only; two orders binding the same number
        # meet here. SQLite already serializes writers.
        if connection.vendor != "postgresql":
            return
        with connection.cursor() as cursor:
            cursor.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", [numero])

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> OrderLine:
        line = OrderLine(**data)
        line.full_clean(exclude=["order", "product"])
        line.save()
        logger.info(
            "order_line.persisted",
            line_id=str(line.id),
            order_id=str(line.order_id),
        )
        return line

    @transaction.atomic
    def save(self, entity: OrderLine) -> OrderLine:
        entity.save()
        logger.info("order_line.saved", line_id=str(entity.id))
        return entity

    @transaction.atomic
    def delete(self, line: OrderLine) -> None:
        line_id = str(line.id)
        line.delete()
        logger.info("order_line.deleted", line_id=line_id)


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
