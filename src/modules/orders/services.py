"""Order service layer (Use Cases).

Orchestrates line allocation for an order (how many phone lines the
customer must fill, which ones are filled, which SVAs each line carries)
and admin stage management.  All write operations are atomic: the
service defines the unit-of-work boundary and locks the order row
(``SELECT FOR UPDATE``) before re-deriving capacity and SVA inventory
from persisted state.

Business rules enforced:
- The number of lines never exceeds the contracted capacity.
- A number is bound to at most one open order (``NumberUniquenessGuard``).
- A line holds at most one unit per SVA, and never more units than the
  order bought (``validate_sva_selection``).
- Customers only touch their own orders, and only lines still ``inicial``.
- Only admins change a line's ``status`` or an order's ``etapa``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog

from django.db import transaction

from modules.orders.capacity import LineCapacity, capacity_for_order
from modules.orders.constants import LineStatus, OrderStage
from modules.orders.dtos import LineSummaryDTO, OrderLineOutputDTO
from modules.orders.events import OrderLineCreated, OrderLineRemoved, OrderStageChanged
from modules.orders.exceptions import (
    AdminOnly,
    InvalidLineStatus,
    InvalidStage,
    LineLimitReached,
    LineLocked,
    LineNotFound,
    OrderAccessDenied,
    OrderNotFound,
    ProductNotFound,
)
from modules.orders.guards import NumberUniquenessGuard, mask_numero, normalize_numero
from modules.orders.ledger import validate_sva_selection
from modules.orders.slots import SlotBoard

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.core.actors import Actor
    from modules.orders.dtos import CreateOrderLineDTO, UpdateOrderLineDTO
    from modules.orders.models import Order, OrderLine
    from modules.orders.repositories.interfaces import (
        IOrderLineRepository,
        IOrderRepository,
    )
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def progress_percent(preenchidas: int, contratadas: int) -> int:
    """``round(100 * preenchidas / contratadas)`` with halves rounded up."""
    if contratadas <= 0:
        return 0
    return (200 * preenchidas + contratadas) // (2 * contratadas)


def ensure_access(order: Optional[Order], order_id: object, actor: Actor) -> Order:
    """Resolve *order* for *actor* or raise the matching domain error."""
    if order is None:
        raise OrderNotFound(f"Pedido {order_id} não encontrado.")
    if not actor.owns(order.customer_id):
        logger.warning(
            "order.access_denied",
            order_id=str(order.id),
            actor_customer_id=str(actor.customer_id) if actor.customer_id else None,
        )
        raise OrderAccessDenied()
    return order


class OrderLineService:
    """Application service for the line-fill use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        line_repository: IOrderLineRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._order_repo = order_repository
        self._line_repo = line_repository
        self._product_repo = product_repository
        self._guard = NumberUniquenessGuard(line_repository)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _capacity(self, order: Order) -> LineCapacity:
        return capacity_for_order(self._order_repo.list_items(order.id), order.id)

    def list_lines(self, order_id: str, actor: Actor) -> List[OrderLine]:
        order = ensure_access(self._order_repo.get_by_id(order_id), order_id, actor)
        return self._line_repo.list_by_order(order.id)

    def summarize(self, order_id: str, actor: Actor) -> LineSummaryDTO:
        """Contracted vs. filled lines plus what each new line may use."""
        order = ensure_access(self._order_repo.get_by_id(order_id), order_id, actor)
        capacity = self._capacity(order)
        lines = self._line_repo.list_by_order(order.id)

        contratadas = capacity.total_linhas_contratadas
        preenchidas = len(lines)
        return LineSummaryDTO(
            order_id=order.id,
            total_linhas_contratadas=contratadas,
            total_linhas_preenchidas=preenchidas,
            linhas_restantes=max(contratadas - preenchidas, 0),
            progresso=progress_percent(preenchidas, contratadas),
            sem_capacidade=capacity.sem_capacidade,
            produtos_disponiveis=[p.to_dict() for p in capacity.produtos_disponiveis],
            svas_disponiveis=[s.to_dict() for s in capacity.svas_disponiveis],
            linhas=[OrderLineOutputDTO.from_entity(line) for line in lines],
        )

    def project_slots(self, order_id: str, actor: Actor) -> SlotBoard:
        """Slot projection built from persisted lines."""
        order = ensure_access(self._order_repo.get_by_id(order_id), order_id, actor)
        return SlotBoard.from_lines(
            self._capacity(order), self._line_repo.list_by_order(order.id)
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_line(self, actor: Actor, dto: CreateOrderLineDTO) -> OrderLine:
        """Save a new line into the order's next free slot.

        Raises:
            MissingLineNumber / InvalidLineNumber: bad ``numero``.
            OrderNotFound / ProductNotFound: ids do not resolve.
            OrderAccessDenied: a customer acting on someone else's order.
            DuplicateSvaOnLine / UnknownSva / SvaExhausted: bad SVA selection.
            NumberAlreadyInUse: number bound to another open order.
            LineLimitReached: every contracted line is already filled.
        """
        numero = normalize_numero(dto.numero)
        order = ensure_access(
            self._order_repo.get_for_update(str(dto.order_id)), dto.order_id, actor
        )
        log = logger.bind(order_id=str(order.id), numero=mask_numero(numero))

        product = None
        if dto.product_id is not None:
            product = self._product_repo.get_by_id(str(dto.product_id))
            if product is None:
                raise ProductNotFound(f"Produto {dto.product_id} não encontrado.")

        capacity = self._capacity(order)
        existing = self._line_repo.list_by_order(order.id)
        svas = validate_sva_selection(
            dto.svas,
            capacity.svas_disponiveis,
            [line.svas for line in existing if not line.is_discarded],
        )

        self._guard.ensure_available(numero)

        total = capacity.total_linhas_contratadas
        if len(existing) >= total:
            log.warning("order_line.limit_reached", total=total)
            raise LineLimitReached(
                f"Este pedido permite apenas {total} linha(s). "
                "Todas já foram preenchidas."
            )

        line = self._line_repo.create(
            {
                "order": order,
                "product": product,
                "numero": numero,
                "operadora_atual": dto.operadora_atual or "",
                "operadora_destino": product.operadora if product else "",
                "svas": svas,
                "status": LineStatus.INICIAL,
                "observacoes": dto.observacoes or "",
            }
        )

        order.add_domain_event(
            OrderLineCreated(
                aggregate_id=order.id, line_id=str(line.id), numero_final=numero[-4:]
            )
        )
        self._order_repo.save(order)

        log.info("order_line.created", line_id=str(line.id), slot=len(existing))
        return line

    def _lock_line(self, line_id: str, actor: Actor) -> OrderLine:
        """Lock the line's order, then the line itself."""
        line = self._line_repo.get_by_id(line_id)
        if line is None:
            raise LineNotFound(f"Linha {line_id} não encontrada.")
        ensure_access(self._order_repo.get_for_update(str(line.order_id)), line.order_id, actor)
        line = self._line_repo.get_for_update(line_id)
        if line is None:
            raise LineNotFound(f"Linha {line_id} não encontrada.")
        return line

    @transaction.atomic
    def update_line(self, actor: Actor, line_id: str, dto: UpdateOrderLineDTO) -> OrderLine:
        """Partially update a line; absent fields are left untouched.

        Raises:
            LineNotFound: unknown line.
            OrderAccessDenied / LineLocked / AdminOnly: actor not allowed.
            InvalidLineNumber / NumberAlreadyInUse: bad new ``numero``.
            DuplicateSvaOnLine / UnknownSva / SvaExhausted: bad SVA selection.
        """
        line = self._lock_line(line_id, actor)
        changes = dto.provided()
        log = logger.bind(line_id=str(line.id), order_id=str(line.order_id))

        if actor.is_customer and not line.is_customer_editable:
            log.warning("order_line.update_locked", status=line.status)
            raise LineLocked()

        was_discarded = line.is_discarded
        if "status" in changes:
            if not actor.is_admin:
                raise AdminOnly("Apenas administradores podem alterar o status da linha.")
            if changes["status"] not in LineStatus.values:
                raise InvalidLineStatus(f"Status de linha inválido: {changes['status']}.")
            line.status = changes["status"]

        if changes.get("numero") is not None:
            numero = normalize_numero(changes["numero"])
            if numero != line.numero:
                self._guard.ensure_available(numero, exclude_line_id=str(line.id))
                line.numero = numero

        # A revived line claims its SVAs from the pool again.
        revived = was_discarded and not line.is_discarded
        if changes.get("svas") is not None or revived:
            order = self._order_repo.get_by_id(str(line.order_id))
            capacity = self._capacity(order)
            others = [
                other.svas
                for other in self._line_repo.list_by_order(line.order_id)
                if other.id != line.id and not other.is_discarded
            ]
            requested = changes["svas"] if changes.get("svas") is not None else line.svas
            line.svas = validate_sva_selection(
                requested, capacity.svas_disponiveis, others
            )

        if changes.get("operadora_atual") is not None:
            line.operadora_atual = changes["operadora_atual"]
        if changes.get("observacoes") is not None:
            line.observacoes = changes["observacoes"]

        self._line_repo.save(line)
        log.info("order_line.updated", fields=sorted(changes))
        return line

    @transaction.atomic
    def delete_line(self, actor: Actor, line_id: str) -> None:
        """Hard-delete a line, freeing its number and SVAs.

        Raises:
            LineNotFound: unknown line.
            OrderAccessDenied / LineLocked: actor not allowed.
        """
        line = self._lock_line(line_id, actor)
        if actor.is_customer and not line.is_customer_editable:
            logger.warning("order_line.delete_locked", line_id=str(line.id), status=line.status)
            raise LineLocked(
                "Esta linha já entrou em processo operacional e não pode mais "
                "ser removida pelo cliente."
            )

        order = line.order
        self._line_repo.delete(line)
        order.add_domain_event(OrderLineRemoved(aggregate_id=order.id, line_id=str(line_id)))
        self._order_repo.save(order)
        logger.info("order_line.removed", line_id=str(line_id), order_id=str(order.id))


class OrderService:
    """Application service for order queries and admin stage changes."""

    def __init__(self, order_repository: IOrderRepository) -> None:
        self._order_repo = order_repository

    def get_order(self, order_id: str, actor: Actor) -> Order:
        return ensure_access(self._order_repo.get_by_id(order_id), order_id, actor)

    def list_orders(self, actor: Actor) -> QuerySet:
        """Admins see every order; customers only their own."""
        if actor.is_admin:
            return self._order_repo.queryset()
        if actor.customer_id is None:
            return self._order_repo.queryset().none()
        return self._order_repo.queryset(customer_id=actor.customer_id)

    @transaction.atomic
    def set_stage(self, actor: Actor, order_id: str, etapa: str) -> Order:
        """Move an order to another stage (admin only).

        Moving to a terminal stage releases the order's phone numbers.

        Raises:
            AdminOnly: the actor is not an admin.
            InvalidStage: unknown stage.
            OrderNotFound: unknown order.
        """
        if not actor.is_admin:
            raise AdminOnly()
        if etapa not in OrderStage.values:
            raise InvalidStage(f"Etapa inválida: {etapa}.")

        order = ensure_access(self._order_repo.get_for_update(order_id), order_id, actor)
        old_stage = order.etapa
        if old_stage == etapa:
            return order

        order.etapa = etapa
        order.add_domain_event(
            OrderStageChanged(aggregate_id=order.id, old_stage=old_stage, new_stage=etapa)
        )
        self._order_repo.save(order)
        logger.info(
            "order.stage_changed",
            order_id=str(order.id),
            old_stage=old_stage,
            new_stage=etapa,
            releases_numbers=order.is_terminal,
        )
        return order
