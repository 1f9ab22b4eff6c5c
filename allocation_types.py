"""
Type definitions for allocation results, advisories, plans and settings.
"""
from __future__ import annotations

from typing import List, Literal, TypedDict

from domain_types import Unit


class AllocationResult(TypedDict):
    """Totals derived from the ledger and the current target.

    Never stored; always recomputed. ``batchIds`` and ``quantities`` follow
    the order in which batches were selected.
    """
    batchIds: List[int]
    quantities: List[float]
    totalSelected: float
    remainingNeeded: float
    excess: float
    isTargetMet: bool
    isStockInsufficient: bool
    totalAvailable: float
    unit: Unit


AdvisoryKind = Literal["over_limit", "max_reached", "insufficient_stock", "batches_selected"]


class Advisory(TypedDict):
    """Operator-facing notice handed to the caller's ``signal`` callback.

    Transient advisories carry ``dismissAfter`` (seconds); standing ones
    (insufficient stock) carry ``None`` and stay until the condition clears.
    """
    kind: AdvisoryKind
    title: str
    message: str
    transient: bool
    dismissAfter: float | None
    batchId: int | None


class SelectedBatchDetail(TypedDict):
    """One selected batch row as shown to the operator."""
    id: int
    batchNumber: str
    expiryDate: str
    quantity: float
    available: float
    unitPrice: float


class ObjectiveBoundMetrics(TypedDict):
    """Solver-reported objective value and bound/gap metrics."""
    objective_value: float | None
    best_objective_bound: float | None
    gap_abs: float | None
    gap_rel: float | None


class AllocationPlan(TypedDict):
    """Outcome of an auto-fill strategy, before it is written to the ledger.

    Keys:
        strategy: "fefo" or "optimized".
        batchIds / quantities: planned draws, in draw order.
        totalPlanned: sum of planned quantities (2 decimals).
        shortfall: target minus totalPlanned, floored at 0.
        status: "GREEDY" for FEFO, the CP-SAT status name otherwise.
        batchesUsed: number of batches with a non-zero draw.
        objective_bound_metrics: only meaningful for the optimized strategy.
    """
    strategy: Literal["fefo", "optimized"]
    batchIds: List[int]
    quantities: List[float]
    totalPlanned: float
    shortfall: float
    status: str
    batchesUsed: int
    objective_bound_metrics: ObjectiveBoundMetrics


class EngineSettings(TypedDict, total=False):
    """Engine configuration. Every key is optional.

    quantity_debounce_s: Quiet period of the quantity channel (default 0.5).
    selection_debounce_s: Quiet period of the selection channel (default 0.3).
    adjust_step: Default +/- step for adjust_quantity (default 0.5).
    advisory_dismiss_s: Lifetime of transient advisories (default 0.5).
    w_urgency: Optimized fill weight on expiry urgency (>=0, default 1.0).
    w_batches: Optimized fill penalty per opened batch (>=0, default 0.5).
    horizon_days: Urgency decay horizon (>=1, default 30).
    max_time_seconds: CP-SAT wall clock limit (default 5.0).
    """
    quantity_debounce_s: float
    selection_debounce_s: float
    adjust_step: float
    advisory_dismiss_s: float
    w_urgency: float
    w_batches: float
    horizon_days: int
    max_time_seconds: float


DEFAULT_SETTINGS: EngineSettings = {
    "quantity_debounce_s": 0.5,
    "selection_debounce_s": 0.3,
    "adjust_step": 0.5,
    "advisory_dismiss_s": 0.5,
    "w_urgency": 1.0,
    "w_batches": 0.5,
    "horizon_days": 30,
    "max_time_seconds": 5.0,
}


def resolve_settings(settings: EngineSettings | None = None) -> EngineSettings:
    """Return DEFAULT_SETTINGS overlaid with the given partial settings."""
    merged: EngineSettings = dict(DEFAULT_SETTINGS)  # type: ignore[assignment]
    if settings:
        merged.update(settings)
    return merged
