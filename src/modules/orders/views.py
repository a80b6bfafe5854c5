"""Order API views.

Exposes ``OrderLineService``, ``OrderService`` and ``UpsellService`` via
HTTP using DRF ViewSets.  Domain exceptions are caught and translated
into HTTP status codes from their ``kind``; the view never swallows
generic exceptions.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.actors import actor_from_user
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import CreateOrderLineDTO, UpdateOrderLineDTO
from modules.orders.exceptions import (
    CONFLICT,
    FORBIDDEN,
    NOT_FOUND,
    VALIDATION,
    OrderDomainError,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order, OrderLine
from modules.orders.repositories.django_repository import (
    OrderDjangoRepository,
    OrderLineDjangoRepository,
)
from modules.orders.serializers import (
    CreateOrderLineSerializer,
    OrderLineSerializer,
    OrderListSerializer,
    OrderSerializer,
    SetStageSerializer,
    UpdateOrderLineSerializer,
    UpsellResponseSerializer,
    UpsellViewedSerializer,
)
from modules.orders.services import OrderLineService, OrderService
from modules.orders.upsell import UpsellService
from modules.products.repositories.django_repository import ProductDjangoRepository

_STATUS_BY_KIND = {
    VALIDATION: status.HTTP_400_BAD_REQUEST,
    FORBIDDEN: status.HTTP_403_FORBIDDEN,
    NOT_FOUND: status.HTTP_404_NOT_FOUND,
    CONFLICT: status.HTTP_409_CONFLICT,
}

_ORDER_ID_PATH = r"orders/(?P<order_id>[^/.]+)"


def domain_error_response(exc: OrderDomainError) -> Response:
    return Response(
        {"code": exc.kind, "detail": exc.message},
        status=_STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST),
    )


class OrderLineViewSet(GenericViewSet):
    """Line-fill endpoints of an order.

    Does **not** extend ``ModelViewSet``: all ORM access goes through the
    service/repository layer.
    """

    queryset = OrderLine.objects.none()
    throttle_scope = "order_lines"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderLineService(
            order_repository=OrderDjangoRepository(),
            line_repository=OrderLineDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    # ------------------------------------------------------------------
    # Per-order reads
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"], url_path=_ORDER_ID_PATH)
    def by_order(self, request: Request, order_id: str) -> Response:
        """GET /api/v1/order-lines/orders/{order_id}/"""
        try:
            lines = self._service.list_lines(order_id, actor_from_user(request.user))
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(OrderLineSerializer(lines, many=True).data)

    @action(detail=False, methods=["get"], url_path=_ORDER_ID_PATH + "/summary")
    def summary(self, request: Request, order_id: str) -> Response:
        """GET /api/v1/order-lines/orders/{order_id}/summary/"""
        try:
            summary = self._service.summarize(order_id, actor_from_user(request.user))
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(summary.model_dump(mode="json"))

    @action(detail=False, methods=["get"], url_path=_ORDER_ID_PATH + "/slots")
    def slots(self, request: Request, order_id: str) -> Response:
        """GET /api/v1/order-lines/orders/{order_id}/slots/"""
        try:
            board = self._service.project_slots(order_id, actor_from_user(request.user))
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(board.to_dict())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/order-lines/"""
        serializer = CreateOrderLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CreateOrderLineDTO(**serializer.validated_data)

        try:
            line = self._service.create_line(actor_from_user(request.user), dto)
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(OrderLineSerializer(line).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/order-lines/{pk}/

        Only the keys present in the body are applied.
        """
        serializer = UpdateOrderLineSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        dto = UpdateOrderLineDTO(**serializer.validated_data)

        try:
            line = self._service.update_line(actor_from_user(request.user), str(pk), dto)
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(OrderLineSerializer(line).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/order-lines/{pk}/"""
        try:
            self._service.delete_line(actor_from_user(request.user), str(pk))
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response({"success": True, "detail": "Linha removida com sucesso."})


class OrderViewSet(GenericViewSet):
    """Order reads, admin stage changes and the upsell protocol."""

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["codigo", "customer__name"]
    ordering_fields = ["created_at", "total", "etapa"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_repository = OrderDjangoRepository()
        self._service = OrderService(order_repository=order_repository)
        self._upsell = UpsellService(
            order_repository=order_repository,
            product_repository=ProductDjangoRepository(),
        )

    def get_throttles(self) -> list[BaseThrottle]:
        """Define escopos de throttling por ação."""
        throttle_scope: str | None
        if self.action in {"next_upsell", "upsell_viewed", "upsell_response"}:
            throttle_scope = "upsell"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders(actor_from_user(self.request.user))

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Admins see every order, customers only their own.  Filtering
        (etapa, tipo_contratacao, customer, date range) is handled by
        ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(str(pk), actor_from_user(request.user))
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Stage (admin)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def stage(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/stage/"""
        serializer = SetStageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.set_stage(
                actor_from_user(request.user), str(pk), serializer.validated_data["etapa"]
            )
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(OrderListSerializer(order).data)

    # ------------------------------------------------------------------
    # Upsell
    # ------------------------------------------------------------------

    @action(detail=True, methods=["get"], url_path="next-upsell")
    def next_upsell(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/next-upsell/"""
        try:
            result = self._upsell.get_next_upsell(str(pk), actor_from_user(request.user))
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(result.model_dump(mode="json", exclude_none=False))

    @action(detail=True, methods=["post"], url_path="upsell-viewed")
    def upsell_viewed(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/upsell-viewed/"""
        serializer = UpsellViewedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self._upsell.record_viewed(
                actor_from_user(request.user),
                str(pk),
                serializer.validated_data.get("sva_id"),
            )
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response({"success": True})

    @action(detail=True, methods=["post"], url_path="upsell-response")
    def upsell_response(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/upsell-response/"""
        serializer = UpsellResponseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = self._upsell.record_response(
                actor_from_user(request.user),
                str(pk),
                serializer.validated_data.get("sva_id"),
                serializer.validated_data["accepted"],
            )
        except OrderDomainError as exc:
            return domain_error_response(exc)
        return Response(result.model_dump(mode="json"))
