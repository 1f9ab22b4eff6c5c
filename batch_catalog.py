"""Batch catalog view: eligibility filter, FEFO ordering, converted availability.

Everything here is a pure function of its inputs. Callers recompute on every
batch refetch and on every display-unit change; nothing is cached.
"""
from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from domain_types import Batch, Unit
from units import convert

__all__ = [
    "parse_expiry",
    "is_eligible",
    "compute_eligible_batches",
    "compute_converted_availability",
    "total_available",
    "days_until_expiry",
    "compute_expiry_urgencies",
    "DEFAULT_HORIZON_DAYS",
]

DEFAULT_HORIZON_DAYS: int = 30


def parse_expiry(value: Optional[str]) -> Optional[date]:
    """Parse an ISO date (or the date part of an ISO timestamp)."""
    if not value or not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _expiry_key(batch: Batch) -> date:
    # Missing/invalid expiry sorts last
    return parse_expiry(batch.get("expiryDate")) or date.max


def is_eligible(batch: Batch) -> bool:
    try:
        qty = float(batch.get("quantity", 0))
    except (TypeError, ValueError):
        return False
    return batch.get("status") == "active" and qty > 0


def compute_eligible_batches(all_batches: Iterable[Batch]) -> List[Batch]:
    """Filter to active batches with stock and order them first-expired-first-out.

    Python's sort is stable, so batches sharing an expiry date keep their
    input order. The input is not mutated.
    """
    return sorted((b for b in all_batches if is_eligible(b)), key=_expiry_key)


def compute_converted_availability(eligible_batches: Iterable[Batch], display_unit: Unit) -> Dict[int, float]:
    """Map batch id -> available quantity expressed in ``display_unit``."""
    return {
        b["id"]: convert(float(b["quantity"]), b["nativeUnit"], display_unit)
        for b in eligible_batches
    }


def total_available(availability: Dict[int, float]) -> float:
    return sum(availability.values())


def days_until_expiry(batch: Batch, today: date) -> Optional[int]:
    expiry = parse_expiry(batch.get("expiryDate"))
    if expiry is None:
        return None
    return (expiry - today).days


def compute_expiry_urgencies(
    days: List[Optional[int]],
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> Tuple[List[float], float, int]:
    """Turn days-until-expiry into urgency scores.

    - Future expiry: linear decay from 1.0 (expires today) to 0.0 at the
      horizon: raw = 1 - min(d, horizon)/horizon.
    - Already expired: scaled into (1, 2] relative to the most expired batch.
    - Unknown expiry counts as ``horizon_days`` away (urgency 0).

    Returns:
        raw_urgencies: one score per entry of ``days``.
        raw_max: max(raw_urgencies), 1.0 when empty.
        max_expired: largest number of days past expiry seen.

    Raises:
        ValueError: If ``horizon_days`` < 1.
    """
    if horizon_days < 1:
        raise ValueError("horizon_days must be >= 1 (use at least a 1-day horizon)")

    resolved = [horizon_days if d is None else d for d in days]
    max_expired = max((abs(d) for d in resolved if d < 0), default=0)

    raw_urgencies: List[float] = []
    for d in resolved:
        if d < 0:
            raw = 1.0 + (abs(d) / max_expired) if max_expired > 0 else 1.5
        else:
            raw = max(0.0, 1.0 - min(d, horizon_days) / horizon_days)
        raw_urgencies.append(raw)

    raw_max = max(raw_urgencies) if raw_urgencies else 1.0
    return raw_urgencies, raw_max, max_expired
