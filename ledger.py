"""Allocation ledger: batch id -> selected quantity in the display unit.

State machine per batch
-----------------------
* unselected: the batch id is absent from the mapping.
* selected:   present with 0 < quantity <= available.

There is no "selected with 0" state: any operation that would store a value
<= 0 removes the entry instead. Any value above the batch's availability is
clamped to it before being stored. Every operation takes the batch's current
converted availability as input, is synchronous, and never raises; invalid
input degrades to "no selection".

Operations return a ``LedgerAction`` so the caller can decide which advisory
(if any) to show:

* ``selected``  value stored as given
* ``clamped``   value above availability, availability stored (over-limit)
* ``capped``    adjustment hit the ceiling from below (over-limit, once)
* ``at_max``    adjustment attempted while already at the ceiling (silent)
* ``removed``   entry deleted (zero, negative or non-numeric input)
* ``unchanged`` nothing to do
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Literal, Tuple

from domain_types import Unit
from units import convert, parse_quantity, round2

logger = logging.getLogger(__name__)

LedgerAction = Literal["selected", "clamped", "capped", "at_max", "removed", "unchanged"]


class AllocationLedger:
    """Ordered mapping of batch selections for one product session."""

    def __init__(self) -> None:
        self._selected: Dict[int, float] = {}
        self._errors: Dict[int, str] = {}

    # ------------------------------------------------------------ inspection

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, batch_id: object) -> bool:
        return batch_id in self._selected

    def __iter__(self) -> Iterator[int]:
        return iter(self._selected)

    def get(self, batch_id: int, default: float = 0.0) -> float:
        return self._selected.get(batch_id, default)

    def items(self) -> List[Tuple[int, float]]:
        """Selections in the order batches were first selected."""
        return list(self._selected.items())

    def as_dict(self) -> Dict[int, float]:
        return dict(self._selected)

    @property
    def errors(self) -> Dict[int, str]:
        """Standing over-limit messages keyed by batch id."""
        return dict(self._errors)

    # -------------------------------------------------------------- helpers

    def _store(self, batch_id: int, quantity: float) -> None:
        self._selected[batch_id] = quantity
        logger.debug("ledger: batch %s -> %s", batch_id, quantity)

    def _drop(self, batch_id: int) -> bool:
        existed = self._selected.pop(batch_id, None) is not None
        if existed:
            logger.debug("ledger: batch %s removed", batch_id)
        return existed

    @staticmethod
    def _limit(available: float) -> float:
        return max(0.0, float(available))

    # ----------------------------------------------------------- operations

    def set_quantity(self, batch_id: int, raw_value: Any, available: float) -> LedgerAction:
        """Manual entry. Non-numeric or <= 0 removes; above availability clamps."""
        self._errors.pop(batch_id, None)
        value = parse_quantity(raw_value)
        limit = self._limit(available)

        if value <= 0:
            return "removed" if self._drop(batch_id) else "unchanged"

        if value > limit:
            self._errors[batch_id] = f"Maximum available is {limit:.2f}"
            if limit > 0:
                self._store(batch_id, limit)
            else:
                self._drop(batch_id)
            logger.warning("batch %s: requested %s exceeds available %s; clamped", batch_id, value, limit)
            return "clamped"

        self._store(batch_id, value)
        return "selected"

    def adjust_quantity(self, batch_id: int, delta: float, available: float) -> LedgerAction:
        """Step the selection by ``delta`` (absent counts as 0)."""
        current = self._selected.get(batch_id, 0.0)
        new_value = round2(max(0.0, current + delta))
        limit = self._limit(available)

        if new_value <= 0:
            return "removed" if self._drop(batch_id) else "unchanged"

        if new_value > limit:
            if current < limit:
                self._store(batch_id, limit)
                return "capped"
            if limit <= 0:
                self._drop(batch_id)
            return "at_max"

        self._store(batch_id, new_value)
        return "selected"

    def select_quantity(self, batch_id: int, requested: float, available: float) -> LedgerAction:
        """Store min(requested, available) when positive; otherwise leave as is."""
        try:
            requested = float(requested)
        except (TypeError, ValueError):
            return "unchanged"
        actual = min(requested, self._limit(available))
        if not actual > 0:
            return "unchanged"
        self._store(batch_id, actual)
        return "selected"

    def select_all(self, batch_id: int, available: float) -> LedgerAction:
        return self.select_quantity(batch_id, available, available)

    def select_remaining(self, batch_id: int, remaining_needed: float, available: float) -> LedgerAction:
        """Fill the outstanding gap from this batch, as far as it can.

        An existing selection on the batch is topped up, not replaced.
        """
        if not remaining_needed > 0:
            return "unchanged"
        current = self._selected.get(batch_id, 0.0)
        return self.select_quantity(batch_id, current + remaining_needed, available)

    def remove_selection(self, batch_id: int) -> LedgerAction:
        self._errors.pop(batch_id, None)
        return "removed" if self._drop(batch_id) else "unchanged"

    # ------------------------------------------------------- bulk operations

    def clear(self) -> None:
        self._selected.clear()
        self._errors.clear()

    def replace(self, selections: Iterable[Tuple[int, float]], availability: Dict[int, float]) -> None:
        """Swap in a whole plan; each entry is clamped like select_quantity."""
        self.clear()
        for batch_id, qty in selections:
            self.select_quantity(batch_id, qty, availability.get(batch_id, 0.0))

    def reconcile(self, availability: Dict[int, float]) -> List[int]:
        """Re-validate against fresh availability (e.g. after a refetch).

        Entries for batches that are no longer available are dropped and the
        rest are clamped. Returns the ids that were dropped or clamped.
        """
        touched: List[int] = []
        for batch_id, qty in list(self._selected.items()):
            limit = self._limit(availability.get(batch_id, 0.0))
            if limit <= 0:
                self._drop(batch_id)
                self._errors.pop(batch_id, None)
                touched.append(batch_id)
            elif qty > limit:
                self._store(batch_id, limit)
                touched.append(batch_id)
        return touched

    def reexpress(self, from_unit: Unit, to_unit: Unit, availability: Dict[int, float]) -> None:
        """Convert every selection to a new display unit.

        ``availability`` must already be expressed in ``to_unit``. Converted
        values are clamped to it so float noise cannot break the ceiling.
        Over-limit messages quote the old unit and are discarded.
        """
        self._errors.clear()
        if from_unit == to_unit:
            return
        for batch_id, qty in list(self._selected.items()):
            converted = convert(qty, from_unit, to_unit)
            limit = self._limit(availability.get(batch_id, 0.0))
            converted = min(converted, limit)
            if converted > 0:
                self._selected[batch_id] = converted
            else:
                self._drop(batch_id)
