"""Batch allocation engine.

Facade over the catalog view, the ledger, the totals calculator, the session
reset controller and the propagation scheduler. One engine instance owns one
ledger; it is meant to be driven by a single UI session (no locking).

Typical flow::

    engine = BatchAllocationEngine(on_batch_select=..., signal=...)
    engine.open({"productId": 7, "targetQuantity": 10, "displayUnit": "kg"}, batches)
    engine.auto_fill()                 # FEFO
    engine.set_quantity(12, "3.5")     # manual override, clamped if needed
    engine.confirm()                   # immediate, gated by can_confirm()
"""
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Tuple

from allocation_types import (
    Advisory,
    AdvisoryKind,
    AllocationPlan,
    AllocationResult,
    EngineSettings,
    SelectedBatchDetail,
    resolve_settings,
)
from batch_catalog import compute_converted_availability, compute_eligible_batches, days_until_expiry
from domain_types import AllocationTarget, Batch, Unit
from ledger import AllocationLedger, LedgerAction
from scheduler import BatchSelectCallback, PropagationScheduler, QuantityCallback
from session import SessionResetController, SessionTransition
from solver import optimize_batch_allocation
from totals import can_confirm, compute_totals
from units import UNIT_FACTORS, convert, format_quantity_with_unit, round2, units_compatible

logger = logging.getLogger(__name__)

Strategy = Literal["fefo", "optimized"]
ConfirmedSelection = Tuple[List[int], List[float], float, Unit]

# Half a hundredth: below this the remaining need counts as met
_EPSILON = 0.005


def fefo_fill(
    eligible_batches: Iterable[Batch],
    availability: Dict[int, float],
    target_quantity: float,
) -> AllocationPlan:
    """Greedy first-expired-first-out fill.

    Walks the batches in the given (expiry) order and takes
    min(remaining, available) from each until the target is covered.
    """
    remaining = float(target_quantity)
    batch_ids: List[int] = []
    quantities: List[float] = []
    for batch in eligible_batches:
        if remaining <= _EPSILON:
            break
        take = min(remaining, availability.get(batch["id"], 0.0))
        if take > 0:
            batch_ids.append(batch["id"])
            quantities.append(take)
            remaining -= take
    total = round2(sum(quantities))
    return {
        "strategy": "fefo",
        "batchIds": batch_ids,
        "quantities": quantities,
        "totalPlanned": total,
        "shortfall": round2(max(0.0, float(target_quantity) - total)),
        "status": "GREEDY",
        "batchesUsed": len(batch_ids),
        "objective_bound_metrics": {
            "objective_value": None,
            "best_objective_bound": None,
            "gap_abs": None,
            "gap_rel": None,
        },
    }


class BatchAllocationEngine:
    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        on_quantity_change: Optional[QuantityCallback] = None,
        on_batch_select: Optional[BatchSelectCallback] = None,
        on_required_quantity_change: Optional[Callable[[float], Any]] = None,
        on_unit_change: Optional[Callable[[Unit, float], Any]] = None,
        signal: Optional[Callable[[Advisory], Any]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        today: Optional[date] = None,
    ) -> None:
        self.settings = resolve_settings(settings)
        self.ledger = AllocationLedger()
        self.session = SessionResetController(self.ledger)
        self.display_unit: Unit = "kg"
        self.eligible: List[Batch] = []
        self.availability: Dict[int, float] = {}
        self.today = today

        self._on_batch_select = on_batch_select
        self._on_required_quantity_change = on_required_quantity_change
        self._on_unit_change = on_unit_change
        self._signal = signal
        self._batches_loaded = False
        self._insufficient_signalled = False

        self.scheduler = PropagationScheduler(
            current_product=lambda: self.session.product_id,
            on_quantity_change=on_quantity_change,
            on_batch_select=on_batch_select,
            quantity_window_s=self.settings["quantity_debounce_s"],
            selection_window_s=self.settings["selection_debounce_s"],
            loop=loop,
        )

    # ------------------------------------------------------------ properties

    @property
    def product_id(self) -> Optional[int]:
        return self.session.product_id

    @property
    def target_quantity(self) -> float:
        return self.session.target_quantity

    def available(self, batch_id: int) -> float:
        """Converted availability; unknown or ineligible batches have none."""
        return self.availability.get(batch_id, 0.0)

    # -------------------------------------------------------------- session

    def open(self, target: AllocationTarget, batches: Optional[Iterable[Batch]] = None) -> SessionTransition:
        """Start (or continue) a session for ``target`` and load its batches."""
        unit = target["displayUnit"]
        if unit not in UNIT_FACTORS:
            raise ValueError(f"Unsupported display unit: {unit!r}")
        same_product = self.session.active and target["productId"] == self.session.product_id
        if unit != self.display_unit and same_product:
            # Keep selections; the caller's target below is already in the new unit
            self._switch_unit(unit)
        transition = self.sync_target(target["productId"], target["targetQuantity"])
        if unit != self.display_unit:
            self.display_unit = unit
            self._recompute_availability()
        if batches is not None:
            self.load_batches(batches)
        return transition

    def sync_target(self, product_id: int, target_quantity: float) -> SessionTransition:
        transition = self.session.sync(product_id, target_quantity)
        if transition in ("initialized", "product_changed"):
            # Batches belong to the previous product
            self.eligible = []
            self.availability = {}
            self._batches_loaded = False
            self._insufficient_signalled = False
        if transition != "unchanged":
            self._changed()
        return transition

    def load_batches(self, batches: Iterable[Batch]) -> None:
        """Take a fresh snapshot of the product's batches (e.g. after a refetch)."""
        batches = list(batches)
        if self.session.active:
            foreign = [b["id"] for b in batches if b.get("productId") != self.session.product_id]
            if foreign:
                logger.debug("ignoring batches %s not belonging to product %s", foreign, self.session.product_id)
                batches = [b for b in batches if b.get("productId") == self.session.product_id]
        self.eligible = compute_eligible_batches(batches)
        self._recompute_availability()
        self._batches_loaded = True
        dropped = self.ledger.reconcile(self.availability)
        if dropped:
            logger.info("selections re-validated after refetch: %s", dropped)
        self._changed()

    def close(self) -> None:
        """End the session; pending notifications are dropped."""
        self.scheduler.close()
        self.session.end()
        self.eligible = []
        self.availability = {}
        self._batches_loaded = False
        self._insufficient_signalled = False

    # ------------------------------------------------------ ledger operations

    def set_quantity(self, batch_id: int, raw_value: Any) -> LedgerAction:
        action = self.ledger.set_quantity(batch_id, raw_value, self.available(batch_id))
        if action == "clamped":
            self._advise("over_limit", "Quantity Adjusted", "Maximum available quantity set for this batch.", batch_id)
        self._changed()
        return action

    def adjust_quantity(self, batch_id: int, delta: Optional[float] = None) -> LedgerAction:
        if delta is None:
            delta = self.settings["adjust_step"]
        action = self.ledger.adjust_quantity(batch_id, delta, self.available(batch_id))
        if action == "capped":
            self._advise("max_reached", "Maximum Reached", "Cannot exceed available quantity.", batch_id)
        self._changed()
        return action

    def increment(self, batch_id: int) -> LedgerAction:
        return self.adjust_quantity(batch_id, self.settings["adjust_step"])

    def decrement(self, batch_id: int) -> LedgerAction:
        return self.adjust_quantity(batch_id, -self.settings["adjust_step"])

    def select_quantity(self, batch_id: int, requested: float) -> LedgerAction:
        action = self.ledger.select_quantity(batch_id, requested, self.available(batch_id))
        self._changed()
        return action

    def select_all(self, batch_id: int) -> LedgerAction:
        action = self.ledger.select_all(batch_id, self.available(batch_id))
        self._changed()
        return action

    def select_remaining(self, batch_id: int) -> LedgerAction:
        remaining = self.totals()["remainingNeeded"]
        action = self.ledger.select_remaining(batch_id, remaining, self.available(batch_id))
        self._changed()
        return action

    def remove_selection(self, batch_id: int) -> LedgerAction:
        action = self.ledger.remove_selection(batch_id)
        self._changed()
        return action

    def clear_selections(self) -> None:
        self.ledger.clear()
        self._changed()

    # ------------------------------------------------------------ auto-fill

    def plan(self, strategy: Strategy = "fefo") -> AllocationPlan:
        """Compute an auto-fill plan without touching the ledger."""
        target = self.session.target_quantity
        if strategy == "fefo":
            return fefo_fill(self.eligible, self.availability, target)
        if strategy == "optimized":
            today = self.today or date.today()
            return optimize_batch_allocation(
                [b["id"] for b in self.eligible],
                [self.availability[b["id"]] for b in self.eligible],
                [days_until_expiry(b, today) for b in self.eligible],
                target,
                w_urgency=self.settings["w_urgency"],
                w_batches=self.settings["w_batches"],
                horizon_days=self.settings["horizon_days"],
                time_limit_s=self.settings["max_time_seconds"],
            )
        raise ValueError(f"Unknown auto-fill strategy: {strategy!r}")

    def auto_fill(self, strategy: Strategy = "fefo") -> AllocationPlan:
        """Replace the current selections with an auto-fill plan."""
        plan = self.plan(strategy)
        self.ledger.replace(zip(plan["batchIds"], plan["quantities"]), self.availability)
        logger.info(
            "auto-fill (%s) for product %s: %s %s from %d batches",
            strategy, self.session.product_id, plan["totalPlanned"], self.display_unit, plan["batchesUsed"],
        )
        self._changed()
        return plan

    # ---------------------------------------------------------------- units

    def set_display_unit(self, unit: Unit) -> float:
        """Re-express availability, selections and target in ``unit``.

        Returns the converted target quantity, which is also passed to
        ``on_unit_change``.

        Raises:
            ValueError: If ``unit`` is unknown or measures a different
                dimension than the current display unit or a batch's
                native unit.
        """
        if unit == self.display_unit:
            return self.session.target_quantity
        if not units_compatible(self.display_unit, unit):
            raise ValueError(f"Cannot switch display unit from {self.display_unit!r} to {unit!r}")
        converted_target = self._switch_unit(unit)
        if self._on_unit_change is not None:
            self._on_unit_change(unit, converted_target)
        return converted_target

    def _switch_unit(self, unit: Unit) -> float:
        old_unit = self.display_unit
        # Computed before anything is mutated so an incompatible batch leaves the session intact
        availability = compute_converted_availability(self.eligible, unit)
        converted_target = convert(self.session.target_quantity, old_unit, unit)
        self.ledger.reexpress(old_unit, unit, availability)
        self.availability = availability
        self.display_unit = unit
        self.session.retarget(converted_target)
        logger.info("display unit %s -> %s (target %s %s)", old_unit, unit, converted_target, unit)
        self._changed()
        return converted_target

    def _recompute_availability(self) -> None:
        self.availability = compute_converted_availability(self.eligible, self.display_unit)

    # --------------------------------------------------------------- totals

    def totals(self) -> AllocationResult:
        return compute_totals(self.ledger.items(), self.session.target_quantity, self.availability, self.display_unit)

    def can_confirm(self) -> bool:
        return can_confirm(self.totals(), len(self.eligible))

    def selected_batch_details(self) -> List[SelectedBatchDetail]:
        by_id = {b["id"]: b for b in self.eligible}
        details: List[SelectedBatchDetail] = []
        for batch_id, qty in self.ledger.items():
            batch = by_id.get(batch_id)
            if batch is None:
                continue
            details.append({
                "id": batch_id,
                "batchNumber": batch.get("batchNumber") or "Unknown",
                "expiryDate": batch.get("expiryDate", ""),
                "quantity": qty,
                "available": self.availability.get(batch_id, 0.0),
                "unitPrice": float(batch.get("unitPrice", 0) or 0),
            })
        return details

    def advisories(self) -> List[Advisory]:
        """Standing advisories for the current state."""
        result = self.totals()
        if self._batches_loaded and result["isStockInsufficient"]:
            return [self._insufficient_advisory(result)]
        return []

    def confirm(self) -> Optional[ConfirmedSelection]:
        """Explicit confirmation: deliver the selection now, bypassing debounce.

        Returns None (and notifies nobody) when confirmation is disabled.
        """
        result = self.totals()
        if not can_confirm(result, len(self.eligible)):
            logger.info("confirmation refused for product %s", self.session.product_id)
            return None
        batch_ids = list(result["batchIds"])
        quantities = list(result["quantities"])
        total = result["totalSelected"]
        unit = result["unit"]

        if self._on_required_quantity_change is not None and total > 0:
            self._on_required_quantity_change(total)
        if self._on_batch_select is not None:
            self._on_batch_select(batch_ids, quantities, total, unit)
        if batch_ids:
            self._advise(
                "batches_selected",
                "Batches Selected",
                f"Selected {len(batch_ids)} batches with total quantity {total} {unit}",
            )
        logger.info("confirmed %s %s from batches %s", total, unit, batch_ids)
        return batch_ids, quantities, total, unit

    # ------------------------------------------------------------ internals

    def _insufficient_advisory(self, result: AllocationResult) -> Advisory:
        unit = result["unit"]
        return {
            "kind": "insufficient_stock",
            "title": "Insufficient Stock",
            "message": (
                f"Available: {format_quantity_with_unit(result['totalAvailable'], unit)} / "
                f"Required: {format_quantity_with_unit(self.session.target_quantity, unit)}"
            ),
            "transient": False,
            "dismissAfter": None,
            "batchId": None,
        }

    def _advise(self, kind: AdvisoryKind, title: str, message: str, batch_id: Optional[int] = None) -> None:
        advisory: Advisory = {
            "kind": kind,
            "title": title,
            "message": message,
            "transient": True,
            "dismissAfter": self.settings["advisory_dismiss_s"],
            "batchId": batch_id,
        }
        self._emit(advisory)

    def _emit(self, advisory: Advisory) -> None:
        logger.debug("advisory %s: %s", advisory["kind"], advisory["message"])
        if self._signal is not None:
            self._signal(advisory)

    def _changed(self) -> None:
        if not self.session.active:
            return
        result = self.totals()
        if self._batches_loaded:
            if result["isStockInsufficient"]:
                if not self._insufficient_signalled:
                    self._insufficient_signalled = True
                    self._emit(self._insufficient_advisory(result))
            else:
                self._insufficient_signalled = False
        self.scheduler.notify(self.session.product_id, result)
