"""Concurrency integration tests for the order write paths.

Scenarios:
- Order with **3** contracted lines; 8 threads save one line each, every
  one with its own number.  Exactly 3 succeed, 5 raise ``LineLimitReached``.
- 8 threads accept the same SVA upsell on one order.  The order-row lock
  lets exactly one of them insert the item and charge its price.
- 8 orders try to bind the same number at once.  The per-number lock lets
  exactly one succeed; the rest raise ``NumberAlreadyInUse``.

Uses ``TransactionTestCase`` so each thread sees committed data.  SQLite
has no row-level locks, so these tests only run against a server database.
"""

from __future__ import annotations

import logging
import unittest
from concurrent.futures import ThreadPoolExecutor, as_completed

import django
from django.db import connection
from django.test import TransactionTestCase
from validate_docbr import CPF as CPFGenerator

from modules.core.actors import Actor
from modules.customers.models import Customer, DocumentType
from modules.orders.dtos import CreateOrderLineDTO
from modules.orders.exceptions import LineLimitReached, NumberAlreadyInUse
from modules.orders.models import Order, OrderItem, OrderLine
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderLineDjangoRepository,
)
from modules.orders.services import OrderLineService
from modules.orders.upsell import UpsellService
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

logger = logging.getLogger(__name__)

CONTRACTED_LINES = 3
NUM_WORKERS = 8


@unittest.skipIf(connection.vendor == "sqlite", "SQLite has no SELECT FOR UPDATE")
class TestLineCapacityConcurrency(TransactionTestCase):
    """Prove the capacity ceiling holds under concurrent load."""

    def setUp(self):
        customer = Customer.objects.create(
            name="Concurrency Customer",
            document=CPFGenerator().generate(),
            document_type=DocumentType.CPF,
            email="concurrency@example.com",
        )
        plan = Product.objects.create(
            nome="Controle 20GB", categoria="Plano Móvel", operadora="VIVO", preco=4990
        )
        self.order = Order.objects.create(customer=customer)
        OrderItem.objects.create(
            order=self.order,
            product=plan,
            quantidade=CONTRACTED_LINES,
            preco_unitario=plan.preco,
        )

    def _create_line_in_thread(self, thread_id: int) -> str:
        django.db.connections.close_all()

        service = OrderLineService(
            order_repository=OrderDjangoRepository(),
            line_repository=OrderLineDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        dto = CreateOrderLineDTO(order_id=self.order.id, numero=f"119999900{thread_id:02d}")
        try:
            service.create_line(Actor.admin(), dto)
            return "success"
        except LineLimitReached:
            return "limit"
        finally:
            django.db.connections.close_all()

    def test_capacity_is_never_exceeded(self):
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [pool.submit(self._create_line_in_thread, i) for i in range(NUM_WORKERS)]
            results = [f.result() for f in as_completed(futures)]

        logger.info("concurrency results: %s", results)
        self.assertEqual(results.count("success"), CONTRACTED_LINES)
        self.assertEqual(results.count("limit"), NUM_WORKERS - CONTRACTED_LINES)
        self.assertEqual(OrderLine.objects.filter(order=self.order).count(), CONTRACTED_LINES)


@unittest.skipIf(connection.vendor == "sqlite", "SQLite has no SELECT FOR UPDATE")
class TestUpsellAcceptConcurrency(TransactionTestCase):
    """Concurrent acceptances of one SVA charge the order once."""

    def setUp(self):
        customer = Customer.objects.create(
            name="Upsell Customer",
            document=CPFGenerator().generate(),
            document_type=DocumentType.CPF,
            email="upsell-concurrency@example.com",
        )
        self.sva = Product.objects.create(nome="Pacote Dados", categoria="SVA", preco=1990)
        plan = Product.objects.create(
            nome="Controle 20GB",
            categoria="Plano Móvel",
            operadora="VIVO",
            preco=4990,
            svas_upsell=[str(self.sva.id)],
        )
        self.order = Order.objects.create(customer=customer, total=plan.preco)
        OrderItem.objects.create(
            order=self.order, product=plan, quantidade=1, preco_unitario=plan.preco
        )

    def _accept_in_thread(self, _thread_id: int) -> bool:
        django.db.connections.close_all()

        service = UpsellService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        try:
            result = service.record_response(
                Actor.admin(), str(self.order.id), str(self.sva.id), True
            )
            return result.item_added
        finally:
            django.db.connections.close_all()

    def test_item_added_and_charged_once(self):
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [pool.submit(self._accept_in_thread, i) for i in range(NUM_WORKERS)]
            results = [f.result() for f in as_completed(futures)]

        order = Order.objects.get(pk=self.order.pk)
        self.assertEqual(results.count(True), 1)
        self.assertEqual(OrderItem.objects.filter(order=order, product=self.sva).count(), 1)
        self.assertEqual(order.total, 4990 + self.sva.preco)
        self.assertEqual(order.upsells_accepted, [str(self.sva.id)])
        self.assertEqual(order.upsells_offered, [str(self.sva.id)])


@unittest.skipIf(connection.vendor == "sqlite", "SQLite has no advisory locks")
class TestNumberBindingConcurrency(TransactionTestCase):
    """A number races onto several open orders; only one keeps it."""

    NUMERO = "11987654321"

    def setUp(self):
        plan = Product.objects.create(
            nome="Controle 20GB", categoria="Plano Móvel", operadora="VIVO", preco=4990
        )
        self.orders = []
        for i in range(NUM_WORKERS):
            customer = Customer.objects.create(
                name=f"Cliente {i}",
                document=CPFGenerator().generate(),
                document_type=DocumentType.CPF,
                email=f"numero-{i}@example.com",
            )
            order = Order.objects.create(customer=customer)
            OrderItem.objects.create(
                order=order, product=plan, quantidade=1, preco_unitario=plan.preco
            )
            self.orders.append(order)

    def _bind_in_thread(self, thread_id: int) -> str:
        django.db.connections.close_all()

        service = OrderLineService(
            order_repository=OrderDjangoRepository(),
            line_repository=OrderLineDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )
        dto = CreateOrderLineDTO(order_id=self.orders[thread_id].id, numero=self.NUMERO)
        try:
            service.create_line(Actor.admin(), dto)
            return "success"
        except NumberAlreadyInUse:
            return "in_use"
        finally:
            django.db.connections.close_all()

    def test_number_bound_to_one_open_order(self):
        with ThreadPoolExecutor(max_workers=NUM_WORKERS) as pool:
            futures = [pool.submit(self._bind_in_thread, i) for i in range(NUM_WORKERS)]
            results = [f.result() for f in as_completed(futures)]

        self.assertEqual(results.count("success"), 1)
        self.assertEqual(results.count("in_use"), NUM_WORKERS - 1)
        self.assertEqual(OrderLine.objects.filter(numero=self.NUMERO).count(), 1)
