"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.  ``numero`` and ``sva_id`` stay optional
here: their absence is reported by the service as a ``validation``
domain error, like every other business-rule failure.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStage
from modules.orders.models import Order, OrderItem, OrderLine

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderLineSerializer(serializers.Serializer):
    """Validates the line creation request payload."""

    order_id = serializers.UUIDField()
    product_id = serializers.UUIDField(required=False, allow_null=True)
    numero = serializers.CharField(required=False, allow_blank=True, max_length=30)
    operadora_atual = serializers.CharField(
        required=False, allow_blank=True, default="", max_length=50
    )
    svas = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, default=list
    )
    observacoes = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateOrderLineSerializer(serializers.Serializer):
    """Validates a partial line update; only sent keys reach the service."""

    numero = serializers.CharField(required=False, allow_blank=True, max_length=30)
    operadora_atual = serializers.CharField(
        required=False, allow_blank=True, max_length=50
    )
    svas = serializers.ListField(child=serializers.CharField(max_length=64), required=False)
    observacoes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.CharField(required=False, max_length=20)


class SetStageSerializer(serializers.Serializer):
    etapa = serializers.ChoiceField(choices=OrderStage.choices)


class UpsellViewedSerializer(serializers.Serializer):
    sva_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpsellResponseSerializer(serializers.Serializer):
    sva_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    accepted = serializers.BooleanField()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderLineSerializer(serializers.ModelSerializer):
    """Read serializer for a line with its product name."""

    product_nome = serializers.CharField(
        source="product.nome", read_only=True, default=None
    )

    class Meta:
        model = OrderLine
        fields = [
            "id",
            "order_id",
            "product_id",
            "product_nome",
            "numero",
            "operadora_atual",
            "operadora_destino",
            "svas",
            "status",
            "observacoes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items (snapshot fields)."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_nome",
            "product_categoria",
            "product_operadora",
            "quantidade",
            "linhas_adicionais",
            "preco_unitario",
            "subtotal",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and lines."""

    items = OrderItemSerializer(many=True, read_only=True)
    lines = OrderLineSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "codigo",
            "customer_id",
            "tipo_contratacao",
            "etapa",
            "total",
            "observacoes",
            "upsells_offered",
            "upsells_accepted",
            "upsells_refused",
            "created_at",
            "updated_at",
            "items",
            "lines",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "codigo",
            "customer_id",
            "tipo_contratacao",
            "etapa",
            "total",
            "created_at",
        ]
        read_only_fields = fields
