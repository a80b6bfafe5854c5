"""Slot projection of an order's phone lines.

A *slot* is a position ``0..N-1`` over the order's contracted line
capacity.  Positions ``0..k-1`` are backed by persisted lines (in creation
order), the rest are empty.  Exactly one empty slot is editable at a time,
the first one; every later empty slot stays locked until the slot before
it is saved.  The board is rebuilt from persisted state on every request
and is never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

import structlog

from modules.orders.capacity import LineCapacity, ProductEntry
from modules.orders.exceptions import SlotLocked, SvaExhausted, UnknownSva
from modules.orders.ledger import (
    SvaOption,
    available_products,
    available_svas,
    ensure_not_on_slot,
    is_last_line,
)

logger = structlog.get_logger(__name__)


@dataclass
class Slot:
    index: int
    line_id: Optional[str] = None
    product_id: Optional[str] = None
    numero: str = ""
    svas: List[str] = field(default_factory=list)
    status: Optional[str] = None
    saved: bool = False
    filled: bool = False
    editable: bool = False
    locked: bool = True
    discarded: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.saved and not self.filled


class SlotBoard:
    """Ordered slots of one order plus the SVA/product views per slot."""

    def __init__(self, capacity: LineCapacity, slots: List[Slot]) -> None:
        self.capacity = capacity
        self.slots = slots
        self._resequence()

    @classmethod
    def from_lines(cls, capacity: LineCapacity, lines: Iterable[Any]) -> SlotBoard:
        """Build the board from persisted ``OrderLine`` rows (creation order)."""
        slots = [
            Slot(
                index=position,
                line_id=str(line.id),
                product_id=str(line.product_id) if line.product_id else None,
                numero=line.numero,
                svas=[str(s) for s in (line.svas or [])],
                status=line.status,
                saved=True,
                filled=True,
                locked=False,
                discarded=line.is_discarded,
            )
            for position, line in enumerate(lines)
        ]
        empty = max(capacity.total_linhas_contratadas - len(slots), 0)
        slots.extend(Slot(index=len(slots) + i) for i in range(empty))
        return cls(capacity, slots)

    def __len__(self) -> int:
        return len(self.slots)

    # ------------------------------------------------------------------
    # Sequencing
    # ------------------------------------------------------------------

    def _resequence(self) -> None:
        """Renumber slots and unlock the first empty one only."""
        unlocked = False
        for position, slot in enumerate(self.slots):
            slot.index = position
            if not slot.is_empty:
                slot.editable = False
                slot.locked = False
                continue
            slot.editable = not unlocked
            slot.locked = unlocked
            unlocked = True

    @property
    def editable_index(self) -> Optional[int]:
        for slot in self.slots:
            if slot.editable:
                return slot.index
        return None

    def _slot(self, index: int) -> Slot:
        if index < 0 or index >= len(self.slots):
            raise IndexError(f"Slot {index} out of range (0..{len(self.slots) - 1}).")
        return self.slots[index]

    def _ensure_writable(self, slot: Slot) -> None:
        if slot.locked:
            raise SlotLocked()

    def mark_saved(
        self,
        index: int,
        line_id: str,
        *,
        numero: str = "",
        product_id: Optional[str] = None,
        svas: Optional[List[str]] = None,
    ) -> Slot:
        """Record that slot *index* was persisted as line *line_id*.

        Re-saving an already persisted slot only refreshes its data; saving
        the editable slot unlocks the next empty one.
        """
        slot = self._slot(index)
        self._ensure_writable(slot)
        slot.line_id = str(line_id)
        slot.numero = numero or slot.numero
        if product_id is not None:
            slot.product_id = str(product_id)
        if svas is not None:
            slot.svas = [str(s) for s in svas]
        slot.saved = True
        slot.filled = True
        self._resequence()
        logger.debug("slot.saved", index=index, next_editable=self.editable_index)
        return slot

    def release(self, index: int) -> None:
        """A deleted line turns back into an empty slot at the end."""
        slot = self._slot(index)
        if slot.is_empty:
            return
        self.slots.pop(index)
        self.slots.append(Slot(index=len(self.slots)))
        self._resequence()

    # ------------------------------------------------------------------
    # SVA / product selection
    # ------------------------------------------------------------------

    def available_svas(self, index: int) -> List[SvaOption]:
        self._slot(index)
        return available_svas(self.slots, index, self.capacity.svas_disponiveis)

    def available_products(self, index: int) -> List[ProductEntry]:
        self._slot(index)
        return available_products(self.slots, index, self.capacity.produtos_disponiveis)

    def is_last_line(self, index: int) -> bool:
        self._slot(index)
        return is_last_line(self.slots, index)

    def add_sva(self, index: int, sva_id: str) -> Slot:
        slot = self._slot(index)
        self._ensure_writable(slot)
        sva_id = str(sva_id)
        ensure_not_on_slot(slot.svas, sva_id)
        options = {o.id: o for o in self.available_svas(index)}
        option = options.get(sva_id)
        if option is None:
            if not any(s.id == sva_id for s in self.capacity.svas_disponiveis):
                raise UnknownSva()
            raise SvaExhausted()
        if option.esgotado:
            raise SvaExhausted()
        slot.svas.append(sva_id)
        return slot

    def remove_sva(self, index: int, sva_id: str) -> Slot:
        slot = self._slot(index)
        self._ensure_writable(slot)
        sva_id = str(sva_id)
        if sva_id in slot.svas:
            slot.svas.remove(sva_id)
        return slot

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        has_svas = bool(self.capacity.svas_disponiveis)
        return {
            "total_linhas_contratadas": self.capacity.total_linhas_contratadas,
            "editable_index": self.editable_index,
            "slots": [
                {
                    "index": slot.index,
                    "line_id": slot.line_id,
                    "product_id": slot.product_id,
                    "numero": slot.numero,
                    "svas": list(slot.svas),
                    "status": slot.status,
                    "saved": slot.saved,
                    "filled": slot.filled,
                    "editable": slot.editable,
                    "locked": slot.locked,
                    "is_last_line": self.is_last_line(slot.index),
                    "svas_disponiveis": (
                        [o.to_dict() for o in self.available_svas(slot.index)]
                        if has_svas
                        else []
                    ),
                    "produtos_disponiveis": [
                        p.to_dict() for p in self.available_products(slot.index)
                    ],
                }
                for slot in self.slots
            ],
        }
