"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderLineCreated,
    OrderLineRemoved,
    OrderStageChanged,
    UpsellAccepted,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderLineCreatedHandler(IEventHandler[OrderLineCreated]):
    def handle(self, event: OrderLineCreated) -> None:
        logger.info(
            f"Processando linha criada no pedido {event.aggregate_id}",
            order_id=str(event.aggregate_id),
            line_id=event.line_id,
            numero=f"***{event.numero_final}",
        )


class OrderLineRemovedHandler(IEventHandler[OrderLineRemoved]):
    def handle(self, event: OrderLineRemoved) -> None:
        logger.info(
            f"Processando remoção de linha do pedido {event.aggregate_id}",
            order_id=str(event.aggregate_id),
            line_id=event.line_id,
        )


class UpsellAcceptedHandler(IEventHandler[UpsellAccepted]):
    def handle(self, event: UpsellAccepted) -> None:
        logger.info(
            f"Processando upsell aceito no pedido {event.aggregate_id}",
            order_id=str(event.aggregate_id),
            sva_id=event.sva_id,
            new_total=event.new_total,
        )


class OrderStageChangedHandler(IEventHandler[OrderStageChanged]):
    def handle(self, event: OrderStageChanged) -> None:
        logger.info(
            f"Processando mudança de etapa do pedido {event.aggregate_id}",
            order_id=str(event.aggregate_id),
            old_stage=event.old_stage,
            new_stage=event.new_stage,
        )


order_line_created_handler = OrderLineCreatedHandler()
order_line_removed_handler = OrderLineRemovedHandler()
upsell_accepted_handler = UpsellAcceptedHandler()
order_stage_changed_handler = OrderStageChangedHandler()
