"""SVA upsell negotiation.

Each order carries three append-only id lists: ``upsells_offered``,
``upsells_accepted`` and ``upsells_refused``.  The protocol guarantees:

- at most ``UPSELL_OFFER_LIMIT`` offers per order;
- an offered id is never offered again;
- the eligible ids are shuffled, so offers do not follow a fixed order;
- responses are idempotent: repeating one never duplicates list entries,
  order items or charges;
- accepted and refused stay disjoint (the first decision wins);
- accepting adds one ``OrderItem`` snapshot of the SVA and its price to
  ``Order.total``.

Every write locks the order row inside a single transaction.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING, Optional
from uuid import UUID

import structlog

from django.db import transaction

from modules.orders.capacity import capacity_for_order
from modules.orders.constants import UPSELL_OFFER_LIMIT, UpsellMoment, UpsellReason
from modules.orders.dtos import NextUpsellDTO, UpsellOfferDTO, UpsellResponseDTO
from modules.orders.events import UpsellAccepted
from modules.orders.exceptions import InvalidSvaId, MissingSvaId
from modules.orders.services import ensure_access

if TYPE_CHECKING:
    from modules.core.actors import Actor
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


def moment_for(offers_so_far: int) -> str:
    """Where the offer is shown, given how many were made before it."""
    if offers_so_far == 0:
        return UpsellMoment.CHECKOUT.value
    if offers_so_far == 1:
        return UpsellMoment.POS_CHECKOUT.value
    return UpsellMoment.PAINEL.value


def _require_sva_id(sva_id: Optional[str]) -> str:
    """Canonical lowercase UUID string, the form ``svas_upsell`` stores."""
    if sva_id is None or not str(sva_id).strip():
        raise MissingSvaId()
    try:
        return str(UUID(str(sva_id).strip()))
    except ValueError:
        raise InvalidSvaId() from None


class UpsellService:
    """Application service for the upsell offer protocol.

    ``rng`` is injectable so the shuffle can be seeded.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._rng = rng or random.Random()

    def get_next_upsell(self, order_id: str, actor: Actor) -> NextUpsellDTO:
        order = ensure_access(self._order_repo.get_by_id(order_id), order_id, actor)
        log = logger.bind(order_id=str(order.id))

        offered = list(order.upsells_offered or [])
        if len(offered) >= UPSELL_OFFER_LIMIT:
            log.info("upsell.limit_reached", offered=len(offered))
            return NextUpsellDTO(reason=UpsellReason.LIMIT_REACHED.value)

        accepted = set(order.upsells_accepted or [])
        capacity = capacity_for_order(self._order_repo.list_items(order.id), order.id)
        eligible = [
            sva_id
            for sva_id in capacity.upsell_source_ids
            if sva_id not in offered and sva_id not in accepted
        ]
        self._rng.shuffle(eligible)

        if not eligible:
            log.info("upsell.no_more_svas")
            return NextUpsellDTO(reason=UpsellReason.NO_MORE_SVAS.value)

        sva_id = eligible[0]
        sva = self._product_repo.get_by_id(sva_id)
        if sva is None:
            log.warning("upsell.sva_not_found", sva_id=sva_id)
            return NextUpsellDTO(reason=UpsellReason.SVA_NOT_FOUND.value)

        momento = moment_for(len(offered))
        log.info("upsell.offer_selected", sva_id=sva_id, momento=momento)
        return NextUpsellDTO(
            upsell=UpsellOfferDTO(
                id=sva.id,
                nome=sva.nome,
                descricao=sva.descricao,
                preco=sva.preco,
                momento=momento,
            )
        )

    @transaction.atomic
    def record_viewed(self, actor: Actor, order_id: str, sva_id: Optional[str]) -> bool:
        """Mark *sva_id* as offered; returns ``False`` when it already was."""
        sva_id = _require_sva_id(sva_id)
        order = ensure_access(self._order_repo.get_for_update(order_id), order_id, actor)
        changed = order.mark_upsell_offered(sva_id)
        if changed:
            self._order_repo.save(order)
        logger.info("upsell.viewed", order_id=str(order.id), sva_id=sva_id, changed=changed)
        return changed

    @transaction.atomic
    def record_response(
        self, actor: Actor, order_id: str, sva_id: Optional[str], accepted: bool
    ) -> UpsellResponseDTO:
        """Record the customer's answer to an offer.

        The tracking lists are persisted before any item is inserted.  A
        repeated acceptance never inserts a second item; an answer that
        contradicts an earlier one is ignored and the recorded decision is
        reported back.
        """
        sva_id = _require_sva_id(sva_id)
        order = ensure_access(self._order_repo.get_for_update(order_id), order_id, actor)
        log = logger.bind(order_id=str(order.id), sva_id=sva_id, accepted=accepted)

        changed = order.mark_upsell_offered(sva_id)
        opposite = order.upsells_refused if accepted else order.upsells_accepted
        if sva_id in (opposite or []):
            if changed:
                self._order_repo.save(order)
            log.info("upsell.response_already_decided")
            return UpsellResponseDTO(accepted=not accepted)

        if accepted:
            changed = order.mark_upsell_accepted(sva_id) or changed
        else:
            changed = order.mark_upsell_refused(sva_id) or changed
        if changed:
            self._order_repo.save(order)

        if not accepted:
            log.info("upsell.refused")
            return UpsellResponseDTO(accepted=False)

        return self._add_accepted_item(order, sva_id, log)

    def _add_accepted_item(self, order: Order, sva_id: str, log) -> UpsellResponseDTO:
        if self._order_repo.has_item_for_product(order.id, sva_id):
            log.info("upsell.item_already_present")
            return UpsellResponseDTO(accepted=True)

        sva = self._product_repo.get_by_id(sva_id)
        if sva is None:
            log.warning("upsell.accepted_sva_missing")
            return UpsellResponseDTO(accepted=True)

        self._order_repo.add_item(order, sva, quantidade=1)
        order.total = (order.total or 0) + sva.preco
        order.add_domain_event(
            UpsellAccepted(
                aggregate_id=order.id,
                sva_id=sva_id,
                preco=sva.preco,
                new_total=order.total,
            )
        )
        self._order_repo.save(order)
        log.info("upsell.accepted", preco=sva.preco, new_total=order.total)
        return UpsellResponseDTO(accepted=True, item_added=True, new_total=order.total)
