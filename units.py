"""Unit conversion table and quantity formatting helpers.

Units are grouped by dimension. Each unit carries a factor relative to the
dimension's base unit (gram for mass, millilitre for volume). Count units
(pcs, box, pack, bag) have no physical size and only convert to themselves.

``convert`` never rounds. Rounding to 2 decimals (``round2``) is applied by
callers at presentation and validation boundaries only.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Tuple, TypedDict

from domain_types import Unit

__all__ = [
    "UNIT_FACTORS",
    "MEASUREMENT_UNITS",
    "convert",
    "units_compatible",
    "round2",
    "parse_quantity",
    "format_quantity_with_unit",
    "check_stock_sufficiency",
]


# unit -> (dimension, factor to base unit of that dimension)
UNIT_FACTORS: Dict[str, Tuple[str, float]] = {
    "kg": ("mass", 1000.0),
    "g": ("mass", 1.0),
    "lb": ("mass", 453.59237),
    "oz": ("mass", 28.349523125),
    "l": ("volume", 1000.0),
    "ml": ("volume", 1.0),
    "pcs": ("count:pcs", 1.0),
    "box": ("count:box", 1.0),
    "pack": ("count:pack", 1.0),
    "bag": ("count:bag", 1.0),
}

MEASUREMENT_UNITS = [
    {"value": "kg", "label": "Kilogram (kg)"},
    {"value": "g", "label": "Gram (g)"},
    {"value": "lb", "label": "Pound (lb)"},
    {"value": "oz", "label": "Ounce (oz)"},
    {"value": "l", "label": "Liter (l)"},
    {"value": "ml", "label": "Milliliter (ml)"},
    {"value": "pcs", "label": "Pieces (pcs)"},
    {"value": "box", "label": "Box"},
    {"value": "pack", "label": "Pack"},
    {"value": "bag", "label": "Bag"},
]


def _lookup(unit: str) -> Tuple[str, float]:
    try:
        return UNIT_FACTORS[unit]
    except KeyError:
        raise ValueError(f"Unsupported unit: {unit!r}") from None


def units_compatible(from_unit: str, to_unit: str) -> bool:
    """True when a conversion between the two units exists."""
    if from_unit not in UNIT_FACTORS or to_unit not in UNIT_FACTORS:
        return False
    return UNIT_FACTORS[from_unit][0] == UNIT_FACTORS[to_unit][0]


def convert(quantity: float, from_unit: Unit, to_unit: Unit) -> float:
    """Convert ``quantity`` from one unit to another.

    Args:
        quantity: Amount expressed in ``from_unit``.
        from_unit: Source unit symbol.
        to_unit: Target unit symbol.

    Returns:
        The amount expressed in ``to_unit``. Identical units return
        ``quantity`` untouched.

    Raises:
        ValueError: If either unit is unknown or the units measure different
            dimensions (e.g. kg -> ml, pcs -> box).
    """
    if from_unit == to_unit:
        _lookup(from_unit)
        return quantity
    from_dim, from_factor = _lookup(from_unit)
    to_dim, to_factor = _lookup(to_unit)
    if from_dim != to_dim:
        raise ValueError(f"Cannot convert {from_unit!r} to {to_unit!r}: incompatible units")
    return quantity * from_factor / to_factor


def round2(value: float) -> float:
    """Round to 2 decimals (presentation/validation boundary)."""
    return round(float(value), 2)


def parse_quantity(raw: Any) -> float:
    """Parse operator input into a 2-decimal quantity.

    Anything that is not a finite number (None, blank, "abc", NaN, booleans)
    parses to 0.0, which callers treat as "no selection".
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return 0.0
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return round2(value)


def format_quantity_with_unit(quantity: float, unit: str, include_unit: bool = True) -> str:
    """Render a quantity with at most 2 decimals, trailing zeros trimmed.

    >>> format_quantity_with_unit(2.5, "kg")
    '2.5 kg'
    >>> format_quantity_with_unit(3.0, "g", include_unit=False)
    '3'
    """
    text = f"{round2(quantity):.2f}".rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return f"{text} {unit}" if include_unit else text


class StockSufficiency(TypedDict):
    isSufficient: bool
    availableInRequestedUnit: float
    shortfall: float


def check_stock_sufficiency(
    available_stock: float,
    stock_unit: Unit,
    requested_quantity: float,
    requested_unit: Unit,
) -> StockSufficiency:
    """Check whether stock recorded in one unit covers a request in another."""
    available = convert(available_stock, stock_unit, requested_unit)
    sufficient = available >= requested_quantity
    return {
        "isSufficient": sufficient,
        "availableInRequestedUnit": available,
        "shortfall": 0.0 if sufficient else round2(requested_quantity - available),
    }
