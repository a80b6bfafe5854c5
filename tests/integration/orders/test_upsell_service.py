"""Integration tests for the upsell protocol against the real ORM.

Covers:
- At most three offers per order, never repeating an id.
- Idempotent acceptance (one item, one price addition).
- Accepted/refused lists stay disjoint.
- Outbox row written for each accepted upsell.
"""

from __future__ import annotations

import random

import pytest

from modules.core.actors import Actor
from modules.core.models import OutboxEvent
from modules.orders.exceptions import InvalidSvaId, OrderAccessDenied
from modules.orders.models import Order, OrderItem
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.upsell import UpsellService
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration


@pytest.fixture()
def service():
    return UpsellService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        rng=random.Random(2024),
    )


@pytest.fixture()
def svas(product_factory):
    return [
        product_factory(nome=f"SVA {n}", categoria="SVA", operadora="", preco=500 + n)
        for n in range(5)
    ]


@pytest.fixture()
def order(make_order, svas, product_factory):
    plan = product_factory(svas_upsell=[str(s.id) for s in svas])
    return make_order([(plan, 1, 0)])


class TestOfferSequence:
    def test_three_distinct_offers_then_limit(self, service, order, svas, customer_actor):
        offered = []
        for _ in range(3):
            result = service.get_next_upsell(str(order.id), customer_actor)
            assert result.upsell is not None
            offered.append(str(result.upsell.id))
            service.record_viewed(customer_actor, str(order.id), offered[-1])

        fourth = service.get_next_upsell(str(order.id), customer_actor)

        assert len(set(offered)) == 3
        assert set(offered) <= {str(s.id) for s in svas}
        assert fourth.upsell is None
        assert fourth.reason == "limit_reached"

    def test_moments_follow_the_offer_count(self, service, order, customer_actor):
        moments = []
        for _ in range(3):
            result = service.get_next_upsell(str(order.id), customer_actor)
            moments.append(result.upsell.momento)
            service.record_viewed(customer_actor, str(order.id), str(result.upsell.id))

        assert moments == ["checkout", "pos-checkout", "painel"]

    def test_viewed_is_idempotent(self, service, order, svas, customer_actor):
        sva_id = str(svas[0].id)

        assert service.record_viewed(customer_actor, str(order.id), sva_id) is True
        assert service.record_viewed(customer_actor, str(order.id), sva_id) is False

        order.refresh_from_db()
        assert order.upsells_offered == [sva_id]

    def test_foreign_order(self, service, order, other_customer):
        with pytest.raises(OrderAccessDenied):
            service.get_next_upsell(str(order.id), Actor.customer(other_customer.id))


class TestRecordResponse:
    def test_accept_twice_adds_one_item(self, service, order, svas, customer_actor):
        sva = svas[0]
        total_before = Order.objects.get(pk=order.pk).total

        first = service.record_response(customer_actor, str(order.id), str(sva.id), True)
        second = service.record_response(customer_actor, str(order.id), str(sva.id), True)

        order.refresh_from_db()
        assert first.item_added is True
        assert first.new_total == total_before + sva.preco
        assert second.accepted is True
        assert second.item_added is False
        assert OrderItem.objects.filter(order=order, product=sva).count() == 1
        assert order.total == total_before + sva.preco
        assert order.upsells_accepted == [str(sva.id)]
        assert order.upsells_offered == [str(sva.id)]

    def test_accepted_item_snapshots_the_sva(self, service, order, svas, customer_actor):
        sva = svas[1]

        service.record_response(customer_actor, str(order.id), str(sva.id), True)

        item = OrderItem.objects.get(order=order, product=sva)
        assert item.quantidade == 1
        assert item.preco_unitario == sva.preco
        assert item.product_nome == sva.nome
        assert OutboxEvent.objects.filter(event_type="UpsellAccepted").count() == 1

    def test_refuse_records_without_charging(self, service, order, svas, customer_actor):
        total_before = order.total

        result = service.record_response(customer_actor, str(order.id), str(svas[0].id), False)

        order.refresh_from_db()
        assert result.accepted is False
        assert order.total == total_before
        assert order.upsells_refused == [str(svas[0].id)]
        assert order.upsells_offered == [str(svas[0].id)]

    def test_first_decision_wins(self, service, order, svas, customer_actor):
        sva_id = str(svas[0].id)
        service.record_response(customer_actor, str(order.id), sva_id, False)

        result = service.record_response(customer_actor, str(order.id), sva_id, True)

        order.refresh_from_db()
        assert result.accepted is False
        assert order.upsells_accepted == []
        assert not OrderItem.objects.filter(order=order, product_id=sva_id).exists()

    def test_existing_item_is_not_duplicated(
        self, service, make_order, svas, customer_actor, product_factory
    ):
        sva = svas[2]
        plan = product_factory(svas_upsell=[str(sva.id)])
        order = make_order([(plan, 1, 0), (sva, 1, 0)])
        total_before = order.total

        result = service.record_response(customer_actor, str(order.id), str(sva.id), True)

        order.refresh_from_db()
        assert result.item_added is False
        assert order.total == total_before
        assert OrderItem.objects.filter(order=order, product=sva).count() == 1

    def test_accepted_sva_missing_from_catalog(self, service, order, customer_actor):
        ghost = "00000000-0000-0000-0000-000000000000"

        result = service.record_response(customer_actor, str(order.id), ghost, True)

        order.refresh_from_db()
        assert result.success is True
        assert result.item_added is False
        assert order.upsells_accepted == [ghost]

    def test_accepted_is_no_longer_eligible(
        self, service, make_order, svas, customer_actor, product_factory
    ):
        plan = product_factory(svas_upsell=[str(svas[0].id)])
        order = make_order([(plan, 1, 0)])
        service.record_response(customer_actor, str(order.id), str(svas[0].id), True)

        result = service.get_next_upsell(str(order.id), customer_actor)

        assert result.reason == "no_more_svas"


class TestSvaIdCanonicalization:
    def test_uppercase_id_is_stored_canonically(
        self, service, make_order, svas, customer_actor, product_factory
    ):
        sva = svas[0]
        plan = product_factory(svas_upsell=[str(sva.id)])
        order = make_order([(plan, 1, 0)])

        result = service.record_response(
            customer_actor, str(order.id), f"  {str(sva.id).upper()} ", True
        )

        order.refresh_from_db()
        assert result.item_added is True
        assert order.upsells_accepted == [str(sva.id)]
        assert order.upsells_offered == [str(sva.id)]
        assert OrderItem.objects.filter(order=order, product=sva).count() == 1
        assert service.get_next_upsell(str(order.id), customer_actor).reason == "no_more_svas"

    def test_uppercase_repeat_does_not_charge_twice(self, service, order, svas, customer_actor):
        sva = svas[0]
        total_before = order.total

        service.record_response(customer_actor, str(order.id), str(sva.id), True)
        second = service.record_response(customer_actor, str(order.id), str(sva.id).upper(), True)

        order.refresh_from_db()
        assert second.item_added is False
        assert order.total == total_before + sva.preco
        assert OrderItem.objects.filter(order=order, product=sva).count() == 1

    @pytest.mark.parametrize("sva_id", ["not-a-uuid", "123", "sva-dados"])
    def test_malformed_id_never_uses_an_offer(self, service, order, customer_actor, sva_id):
        with pytest.raises(InvalidSvaId):
            service.record_viewed(customer_actor, str(order.id), sva_id)
        with pytest.raises(InvalidSvaId):
            service.record_response(customer_actor, str(order.id), sva_id, True)

        order.refresh_from_db()
        assert order.upsells_offered == []
        assert order.upsells_accepted == []
