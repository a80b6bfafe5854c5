"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderLineCreated(DomainEvent):
    """Raised when a phone line is saved into one of the order's slots."""

    line_id: str = ""
    numero_final: str = ""


@dataclass(frozen=True)
class OrderLineRemoved(DomainEvent):
    """Raised when a line is deleted and its slot freed."""

    line_id: str = ""


@dataclass(frozen=True)
class UpsellAccepted(DomainEvent):
    """Raised when the customer accepts an SVA upsell offer."""

    sva_id: str = ""
    preco: int = 0
    new_total: int = 0


@dataclass(frozen=True)
class OrderStageChanged(DomainEvent):
    """Raised when an admin moves the order to another stage."""

    old_stage: str = ""
    new_stage: str = ""
