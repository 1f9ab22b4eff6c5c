# --------------------------- Reporting utilities ---------------------------
from typing import Dict, List, Sequence

from allocation_types import Advisory, AllocationPlan, AllocationResult
from domain_types import Batch
from units import format_quantity_with_unit


def plan_markdown(
    plan: AllocationPlan,
    eligible_batches: Sequence[Batch],
    availability: Dict[int, float],
    unit: str,
) -> str:
    """
    Render an auto-fill plan as a markdown table.

    One row per eligible batch in FEFO order, showing what the plan draws
    from it; batches the plan leaves untouched show a dash.
    """
    drawn = dict(zip(plan["batchIds"], plan["quantities"]))
    header = (
        f"### Plan ({plan['strategy']}, {plan['status']}) | batches used: {plan['batchesUsed']} | "
        f"planned: {format_quantity_with_unit(plan['totalPlanned'], unit)} | "
        f"shortfall: {format_quantity_with_unit(plan['shortfall'], unit)}\n\n"
        "| Batch | Number | Expiry | Available | Drawn |\n|---|---|---|---|---|\n"
    )
    rows: List[str] = []
    for b in eligible_batches:
        qty = drawn.get(b["id"])
        rows.append(
            f"| {b['id']} | {b.get('batchNumber', '-')} | {b['expiryDate'][:10]} | "
            f"{format_quantity_with_unit(availability.get(b['id'], 0.0), unit)} | "
            f"{format_quantity_with_unit(qty, unit) if qty else '-'} |"
        )
    if not rows:
        rows.append("| *(none)* | - | - | - | - |")
    return header + "\n".join(rows) + "\n"


def totals_markdown(result: AllocationResult, target_quantity: float) -> str:
    """Render totals as a two-column markdown table."""
    unit = result["unit"]
    lines = [
        "### Totals\n",
        "| Metric | Value |",
        "|---|---|",
        f"| Required | {format_quantity_with_unit(target_quantity, unit)} |",
        f"| Selected | {format_quantity_with_unit(result['totalSelected'], unit)} |",
        f"| Still needed | {format_quantity_with_unit(result['remainingNeeded'], unit)} |",
        f"| Excess | {format_quantity_with_unit(result['excess'], unit)} |",
        f"| Available | {format_quantity_with_unit(result['totalAvailable'], unit)} |",
        f"| Target met | {'yes' if result['isTargetMet'] else 'no'} |",
    ]
    return "\n".join(lines) + "\n"


def advisories_markdown(advisories: Sequence[Advisory]) -> str:
    if not advisories:
        return ""
    rows = [f"- **{a['title']}**: {a['message']}" for a in advisories]
    return "### Advisories\n\n" + "\n".join(rows) + "\n"
