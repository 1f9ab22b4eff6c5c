"""Totals calculator.

Derives the AllocationResult from the ledger selections, the target and the
converted availability. Pure; recomputed on every ledger or target change.
"""
from __future__ import annotations

from typing import Dict, Iterable, Tuple

from allocation_types import AllocationResult
from domain_types import Unit
from units import round2


def compute_totals(
  ledger_items: Iterable[Tuple[int, float]],
  target_quantity: float,
  availability: Dict[int, float],
  unit: Unit,
) -> AllocationResult:
  """Compute selection totals against the target.

  Args:
    ledger_items: (batch id, selected quantity) pairs in selection order.
    target_quantity: Required quantity in the display unit. Compared at
      2 decimals, like the selected total.
    availability: batch id -> available quantity in the display unit, over
      all eligible batches (not just the selected ones).
    unit: Display unit reported back to the caller.

  Returns:
    AllocationResult. ``isTargetMet`` is sufficiency (over-allocation still
    counts as met; see ``excess``). ``isStockInsufficient`` ignores the
    ledger: it says whether any selection could satisfy the target at all.
  """
  batch_ids = []
  quantities = []
  for batch_id, qty in ledger_items:
    if qty > 0:
      batch_ids.append(batch_id)
      quantities.append(qty)

  # Every comparison happens at 2 decimals; a converted target carries float tails
  target = round2(target_quantity)
  total_selected = round2(sum(quantities))
  total_available = round2(sum(availability.values()))

  return {
    "batchIds": batch_ids,
    "quantities": quantities,
    "totalSelected": total_selected,
    "remainingNeeded": round2(max(0.0, target - total_selected)),
    "excess": round2(max(0.0, total_selected - target)),
    "isTargetMet": total_selected >= target,
    "isStockInsufficient": total_available < target,
    "totalAvailable": total_available,
    "unit": unit,
  }


def can_confirm(result: AllocationResult, eligible_count: int) -> bool:
  """Whether the explicit confirmation action is enabled.

  Disabled when no batch is eligible, when stock cannot cover the target
  whatever is selected, or when the target is not yet met.
  """
  if eligible_count <= 0:
    return False
  if result["isStockInsufficient"]:
    return False
  return result["isTargetMet"]


def progress_percent(result: AllocationResult, target_quantity: float) -> float:
  if target_quantity <= 0:
    return 0.0
  return min(100.0, result["totalSelected"] / target_quantity * 100.0)
