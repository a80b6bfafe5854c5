"""Cross-order phone-number uniqueness guard.

A number may be bound to lines of many orders over time, but to at most
one order that is still open.  Orders in a terminal stage
(``TERMINAL_STAGES``) release their numbers.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Optional

import structlog

from modules.orders.constants import NUMERO_MAX_DIGITS, NUMERO_MIN_DIGITS, TERMINAL_STAGES
from modules.orders.exceptions import (
    InvalidLineNumber,
    MissingLineNumber,
    NumberAlreadyInUse,
)

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderLineRepository

logger = structlog.get_logger(__name__)

_NON_DIGITS = re.compile(r"\D")


def normalize_numero(raw: Any) -> str:
    """Return the digits of *raw*, validating presence and length.

    Raises:
        MissingLineNumber: nothing was provided.
        InvalidLineNumber: not 10 (landline) or 11 (mobile) digits with DDD.
    """
    if raw is None or not str(raw).strip():
        raise MissingLineNumber()
    digits = _NON_DIGITS.sub("", str(raw))
    if not NUMERO_MIN_DIGITS <= len(digits) <= NUMERO_MAX_DIGITS:
        raise InvalidLineNumber()
    return digits


def mask_numero(numero: str) -> str:
    """Only the last four digits of a number ever reach the logs."""
    return f"***{numero[-4:]}" if numero else ""


class NumberUniquenessGuard:
    """Rejects a number already bound to a line of an open order."""

    def __init__(self, line_repository: IOrderLineRepository) -> None:
        self._line_repo = line_repository

    def ensure_available(self, numero: str, exclude_line_id: Optional[str] = None) -> None:
        """Raise ``NumberAlreadyInUse`` if *numero* is bound to an open order.

        Must run inside the caller's transaction: the number stays locked
        until it commits, so a concurrent binding waits and then sees it.
        """
        self._line_repo.lock_numero(numero)
        for line in self._line_repo.list_by_numero(numero):
            if exclude_line_id is not None and str(line.id) == str(exclude_line_id):
                continue
            if line.order.etapa in TERMINAL_STAGES:
                continue
            logger.warning(
                "order_line.number_in_use",
                numero=mask_numero(numero),
                bound_order_id=str(line.order_id),
                bound_stage=line.order.etapa,
            )
            raise NumberAlreadyInUse()
