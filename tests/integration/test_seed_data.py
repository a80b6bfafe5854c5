"""Integration tests for the ``seed_data`` management command."""

from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command

from modules.customers.models import Customer
from modules.orders.capacity import capacity_for_order
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration


def test_seed_creates_catalog_and_orders():
    out = StringIO()

    call_command("seed_data", stdout=out)

    assert "Seed completed" in out.getvalue()
    assert get_user_model().objects.filter(username="admin", is_staff=True).exists()
    assert Customer.objects.filter(user__username="ana").exists()
    assert Product.objects.filter(categoria__icontains="sva").count() == 5
    assert Order.objects.count() == 2
    for order in Order.objects.all():
        capacity = capacity_for_order(order.items.select_related("product"), order.id)
        assert capacity.total_linhas_contratadas >= 1
        assert capacity.svas_disponiveis[0].quantidade == 2
        assert order.total == sum(item.subtotal for item in order.items.all())


def test_seed_is_idempotent():
    call_command("seed_data", stdout=StringIO())
    call_command("seed_data", stdout=StringIO())

    assert Order.objects.count() == 2
    assert Product.objects.count() == 8
