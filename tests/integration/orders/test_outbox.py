"""Outbox integration tests.

Validates that order mutations write ``OutboxEvent`` rows inside the same
transaction, and that ``core.publish_outbox_events`` drains them into the
in-memory bus.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.tasks import publish_outbox_events
from modules.orders.constants import OrderStage
from modules.orders.dtos import CreateOrderLineDTO
from modules.orders.exceptions import AdminOnly, InvalidStage, NumberAlreadyInUse
from modules.orders.handlers import OrderLineCreatedHandler
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderLineDjangoRepository,
)
from modules.orders.services import OrderLineService, OrderService
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def order_service():
    return OrderService(order_repository=OrderDjangoRepository())


@pytest.fixture()
def line_service():
    return OrderLineService(
        order_repository=OrderDjangoRepository(),
        line_repository=OrderLineDjangoRepository(),
        product_repository=ProductDjangoRepository(),
    )


class TestStageChanges:
    def test_stage_change_writes_outbox_row(self, order_service, make_order, plan, admin_actor):
        order = make_order([(plan, 1, 0)])

        updated = order_service.set_stage(admin_actor, str(order.id), OrderStage.EM_ANALISE)

        event = OutboxEvent.objects.get(event_type="OrderStageChanged")
        assert updated.etapa == OrderStage.EM_ANALISE
        assert event.aggregate_id == str(order.id)
        assert event.topic == "orders"
        assert event.payload["old_stage"] == OrderStage.NOVO_PEDIDO
        assert event.payload["new_stage"] == OrderStage.EM_ANALISE

    def test_same_stage_is_a_no_op(self, order_service, make_order, plan, admin_actor):
        order = make_order([(plan, 1, 0)])

        order_service.set_stage(admin_actor, str(order.id), OrderStage.NOVO_PEDIDO)

        assert not OutboxEvent.objects.exists()

    def test_customer_cannot_change_stage(self, order_service, make_order, plan, customer_actor):
        order = make_order([(plan, 1, 0)])

        with pytest.raises(AdminOnly):
            order_service.set_stage(customer_actor, str(order.id), OrderStage.CONCLUIDO)

    def test_unknown_stage(self, order_service, make_order, plan, admin_actor):
        order = make_order([(plan, 1, 0)])

        with pytest.raises(InvalidStage):
            order_service.set_stage(admin_actor, str(order.id), "arquivado")

    def test_number_rebound_after_cancellation_is_held_again(
        self, order_service, line_service, make_order, plan, admin_actor
    ):
        numero = "11988887777"
        first = make_order([(plan, 1, 0)])
        second = make_order([(plan, 1, 0)])
        line_service.create_line(admin_actor, CreateOrderLineDTO(order_id=first.id, numero=numero))
        order_service.set_stage(admin_actor, str(first.id), OrderStage.CANCELADO)
        line_service.create_line(admin_actor, CreateOrderLineDTO(order_id=second.id, numero=numero))
        third = make_order([(plan, 1, 0)])

        with pytest.raises(NumberAlreadyInUse):
            line_service.create_line(
                admin_actor, CreateOrderLineDTO(order_id=third.id, numero=numero)
            )


class TestListOrders:
    def test_customer_sees_only_own_orders(
        self, order_service, make_order, plan, customer_actor, other_customer
    ):
        mine = make_order([(plan, 1, 0)])
        make_order([(plan, 1, 0)], owner=other_customer)

        assert list(order_service.list_orders(customer_actor)) == [mine]

    def test_admin_sees_everything(self, order_service, make_order, plan, admin_actor, other_customer):
        make_order([(plan, 1, 0)])
        make_order([(plan, 1, 0)], owner=other_customer)

        assert order_service.list_orders(admin_actor).count() == 2


class TestPublishOutboxEvents:
    def test_drains_pending_events_into_the_bus(self, line_service, make_order, plan, customer_actor):
        order = make_order([(plan, 1, 0)])
        line_service.create_line(
            customer_actor, CreateOrderLineDTO(order_id=order.id, numero="11999990001")
        )

        with patch.object(OrderLineCreatedHandler, "handle") as handle:
            result = publish_outbox_events.delay().get()

        assert result == {"published": 1, "failed": 0}
        event = OutboxEvent.objects.get(event_type="OrderLineCreated")
        assert event.status == EventStatus.PUBLISHED
        [call] = handle.call_args_list
        assert str(call.args[0].aggregate_id) == str(order.id)
        assert call.args[0].numero_final == "0001"

    def test_unknown_event_type_is_marked_failed(self):
        OutboxEvent.objects.create(
            event_type="SomethingElse", payload={}, aggregate_id="x", topic="orders"
        )

        result = publish_outbox_events.delay().get()

        event = OutboxEvent.objects.get()
        assert result == {"published": 0, "failed": 1}
        assert event.status == EventStatus.FAILED
        assert event.retry_count == 1

    def test_handler_failure_is_recorded(self, line_service, make_order, plan, customer_actor):
        order = make_order([(plan, 1, 0)])
        line_service.create_line(
            customer_actor, CreateOrderLineDTO(order_id=order.id, numero="11999990001")
        )

        with patch.object(OrderLineCreatedHandler, "handle", side_effect=RuntimeError("down")):
            result = publish_outbox_events.delay().get()

        event = OutboxEvent.objects.get(event_type="OrderLineCreated")
        assert result["failed"] == 1
        assert event.error_message == "down"
