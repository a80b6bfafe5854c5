"""SVA availability ledger.

The SVA inventory of an order is never stored: it is recomputed on every
read from the order's SVA items and the ``svas`` already saved on its
lines.  All functions here are pure and work on *slot-like* objects, i.e.
anything exposing ``saved``, ``filled``, ``svas`` and ``product_id``
(optionally ``discarded``), such as ``modules.orders.slots.Slot``.

Visibility rules:

- an interior slot only lists SVAs with units left (``total - usado > 0``);
- the last slot lists every SVA of the order, flagging exhausted ones, so
  the customer sees what was left unused.

A slot may hold at most one unit of a given SVA id.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence

from modules.orders.capacity import ProductEntry, SvaEntry
from modules.orders.exceptions import DuplicateSvaOnLine, SvaExhausted, UnknownSva


@dataclass
class SvaBalance:
    nome: str
    total: int
    usado: int = 0

    @property
    def disponivel(self) -> int:
        return self.total - self.usado


@dataclass(frozen=True)
class SvaOption:
    id: str
    nome: str
    total: int
    usado: int
    disponivel: int
    esgotado: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nome": self.nome,
            "total": self.total,
            "usado": self.usado,
            "disponivel": self.disponivel,
            "esgotado": self.esgotado,
        }


def build_sva_quantities(svas_disponiveis: Iterable[SvaEntry]) -> Dict[str, SvaBalance]:
    """Sum ``quantidade`` per SVA id; repeated ids are additive."""
    quantities: Dict[str, SvaBalance] = {}
    for entry in svas_disponiveis:
        balance = quantities.get(entry.id)
        if balance is None:
            quantities[entry.id] = SvaBalance(nome=entry.nome, total=entry.quantidade)
        else:
            balance.total += entry.quantidade
    return quantities


def _counts_towards_usage(slot: Any) -> bool:
    return bool(slot.saved) and not getattr(slot, "discarded", False)


def sva_quantities_for_slot(
    slots: Sequence[Any], index: int, svas_disponiveis: Iterable[SvaEntry]
) -> Dict[str, SvaBalance]:
    """Balances as seen from slot *index*.

    Only *other* saved slots consume units: the slot's own picks and
    unsaved slots never do.
    """
    quantities = build_sva_quantities(svas_disponiveis)
    for position, slot in enumerate(slots):
        if position == index or not _counts_towards_usage(slot):
            continue
        for sva_id in set(slot.svas or []):
            balance = quantities.get(sva_id)
            if balance is not None:
                balance.usado += 1
    return quantities


def is_last_line(slots: Sequence[Any], index: int) -> bool:
    """``True`` for the final slot or when nothing after *index* is filled."""
    if index >= len(slots) - 1:
        return True
    return all(not s.saved and not s.filled for s in slots[index + 1 :])


def available_svas(
    slots: Sequence[Any], index: int, svas_disponiveis: Iterable[SvaEntry]
) -> List[SvaOption]:
    quantities = sva_quantities_for_slot(slots, index, svas_disponiveis)
    last = is_last_line(slots, index)
    options = []
    for sva_id, balance in quantities.items():
        if not last and balance.disponivel <= 0:
            continue
        options.append(
            SvaOption(
                id=sva_id,
                nome=balance.nome,
                total=balance.total,
                usado=balance.usado,
                disponivel=balance.disponivel,
                esgotado=balance.disponivel <= 0,
            )
        )
    return options


def available_products(
    slots: Sequence[Any], index: int, produtos: Iterable[ProductEntry]
) -> List[ProductEntry]:
    """Product entries still free for slot *index*.

    Each capacity product appears ``quantidade`` times; every other slot
    that picked a product consumes one of its entries.
    """
    entries: List[ProductEntry] = []
    for produto in produtos:
        entries.extend([produto] * max(produto.quantidade, 1))

    taken = Counter(
        slot.product_id
        for position, slot in enumerate(slots)
        if position != index and slot.product_id
    )
    free = []
    for entry in entries:
        if taken[entry.id] > 0:
            taken[entry.id] -= 1
            continue
        free.append(entry)
    return free


def ensure_not_on_slot(current: Iterable[str], sva_id: str) -> None:
    """Reject a second unit of *sva_id* on the same slot."""
    if sva_id in set(current):
        raise DuplicateSvaOnLine()


def validate_sva_selection(
    requested: Sequence[str],
    svas_disponiveis: Iterable[SvaEntry],
    used_by_other_lines: Iterable[Optional[Iterable[str]]],
) -> List[str]:
    """Check a line's full SVA selection before it is persisted.

    ``used_by_other_lines`` holds the ``svas`` of every other non-discarded
    line of the order.  Returns the normalized id list.
    """
    selection: List[str] = []
    for raw in requested:
        sva_id = str(raw)
        ensure_not_on_slot(selection, sva_id)
        selection.append(sva_id)

    quantities = build_sva_quantities(svas_disponiveis)
    for other in used_by_other_lines:
        for sva_id in set(str(s) for s in (other or [])):
            balance = quantities.get(sva_id)
            if balance is not None:
                balance.usado += 1

    for sva_id in selection:
        balance = quantities.get(sva_id)
        if balance is None:
            raise UnknownSva()
        if balance.disponivel <= 0:
            raise SvaExhausted(
                f"Não há mais unidades disponíveis de {balance.nome} "
                f"({balance.usado}/{balance.total} em uso)."
            )
    return selection
