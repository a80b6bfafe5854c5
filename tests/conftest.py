import uuid

import pytest
from validate_docbr import CPF as CPFGenerator

from django.contrib.auth import get_user_model
from django.core.cache import cache

from rest_framework.test import APIClient

from modules.core.actors import Actor
from modules.customers.models import Customer, DocumentType
from modules.orders.constants import OrderStage
from modules.orders.models import Order, OrderItem
from modules.products.models import Product

User = get_user_model()

_cpf_gen = CPFGenerator()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test from zero."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Principals
# ---------------------------------------------------------------------------


def make_customer(user=None, **overrides) -> Customer:
    defaults = {
        "name": "Cliente Teste",
        "document": _cpf_gen.generate(),
        "document_type": DocumentType.CPF,
        "email": f"{uuid.uuid4().hex[:8]}@example.com",
        "user": user,
    }
    defaults.update(overrides)
    return Customer.objects.create(**defaults)


@pytest.fixture()
def admin_user():
    return User.objects.create_user(username="backoffice", password="testpass123", is_staff=True)


@pytest.fixture()
def customer_user():
    return User.objects.create_user(username="cliente", password="testpass123")


@pytest.fixture()
def customer(customer_user):
    return make_customer(user=customer_user, name="Ana Souza")


@pytest.fixture()
def other_customer():
    other_user = User.objects.create_user(username="outro", password="testpass123")
    return make_customer(user=other_user, name="Bruno Lima")


@pytest.fixture()
def admin_actor():
    return Actor.admin()


@pytest.fixture()
def customer_actor(customer):
    return Actor.customer(customer.id)


@pytest.fixture()
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture()
def customer_client(api_client, customer):
    api_client.force_authenticate(user=customer.user)
    return api_client


# ---------------------------------------------------------------------------
# Catalog & orders
# ---------------------------------------------------------------------------


def make_product(**overrides) -> Product:
    defaults = {
        "nome": "Controle 20GB",
        "categoria": "Plano Móvel",
        "operadora": "VIVO",
        "preco": 4990,
    }
    defaults.update(overrides)
    return Product.objects.create(**defaults)


@pytest.fixture()
def product_factory():
    return make_product


@pytest.fixture()
def sva_dados():
    return make_product(nome="Pacote Dados", categoria="SVA Dados", operadora="", preco=1990)


@pytest.fixture()
def sva_antivirus():
    return make_product(nome="Antivírus", categoria="sva", operadora="", preco=990)


@pytest.fixture()
def plan(sva_dados, sva_antivirus):
    return make_product(svas_upsell=[str(sva_dados.id), str(sva_antivirus.id)])


@pytest.fixture()
def make_order(customer):
    """Factory: ``make_order([(product, quantidade, linhas_adicionais), ...])``."""

    def _make(items=(), owner=None, etapa=OrderStage.NOVO_PEDIDO, **fields):
        order = Order.objects.create(customer=owner or customer, etapa=etapa, **fields)
        total = 0
        for product, quantidade, linhas_adicionais in items:
            item = OrderItem.objects.create(
                order=order,
                product=product,
                quantidade=quantidade,
                linhas_adicionais=linhas_adicionais,
                preco_unitario=product.preco,
            )
            total += item.subtotal
        order.total = total
        order.save(update_fields=["total"])
        return order

    return _make
