"""Input validation utilities for batch allocation.

Validates the structure and values of batch snapshots, allocation targets
and engine settings before they reach the engine.

Functions
---------
validate_batches(batches)
    Required keys present, ids unique, quantities non-negative numbers,
    units known, expiry dates in YYYY-MM-DD format, status active/inactive.
validate_target(target)
    productId, non-negative targetQuantity, known displayUnit.
validate_settings_payload(data)
    Optional engine settings with range checks; returns EngineSettings.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, List

from allocation_types import EngineSettings
from domain_types import AllocationTarget, Batch
from units import UNIT_FACTORS

__all__ = ["validate_batches", "validate_target", "validate_settings_payload"]

_BATCH_KEYS = ("id", "productId", "quantity", "nativeUnit", "expiryDate", "unitPrice", "status")


def _is_number(value: Any) -> bool:
  return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_batches(batches: List[Batch]) -> None:
  """Validate a batch snapshot.

  Args:
    batches: List of Batch dictionaries.

  Raises:
    ValueError: If the list or any batch entry is invalid.
  """
  if not isinstance(batches, list):
    raise ValueError("Batches data must be a list.")

  seen: set = set()
  for batch in batches:
    if not isinstance(batch, dict):
      raise ValueError(f"Batch entry must be an object: {batch!r}")
    missing = [k for k in _BATCH_KEYS if k not in batch]
    if missing:
      raise ValueError(f"Missing required batch fields {missing} in: {batch}")
    if batch["id"] in seen:
      raise ValueError(f"Duplicate batch id {batch['id']!r}")
    seen.add(batch["id"])
    if not _is_number(batch["quantity"]):
      raise ValueError(f"Batch quantity must be numeric (id={batch['id']} got {batch['quantity']!r})")
    if batch["quantity"] < 0:
      raise ValueError(f"Batch quantity must be >= 0 (id={batch['id']} got {batch['quantity']})")
    if not _is_number(batch["unitPrice"]) or batch["unitPrice"] < 0:
      raise ValueError(f"Batch unitPrice must be a non-negative number (id={batch['id']})")
    if batch["nativeUnit"] not in UNIT_FACTORS:
      raise ValueError(f"Unsupported nativeUnit {batch['nativeUnit']!r} (id={batch['id']})")
    if batch["status"] not in ("active", "inactive"):
      raise ValueError(f"status must be 'active' or 'inactive' (id={batch['id']} got {batch['status']!r})")
    try:
      datetime.strptime(str(batch["expiryDate"])[:10], "%Y-%m-%d")
    except ValueError:
      raise ValueError(f"expiryDate must be in yyyy-MM-dd format in: {batch}")


def validate_target(target: AllocationTarget) -> None:
  """Validate an allocation target.

  Raises:
    ValueError: If a key is missing, the quantity is negative or
      non-numeric, or the display unit is unknown.
  """
  if not isinstance(target, dict):
    raise ValueError("Target must be an object.")
  missing = [k for k in ("productId", "targetQuantity", "displayUnit") if k not in target]
  if missing:
    raise ValueError(f"Target missing keys: {missing}")
  if not _is_number(target["targetQuantity"]) or target["targetQuantity"] < 0:
    raise ValueError(f"targetQuantity must be a non-negative number (got {target['targetQuantity']!r})")
  if target["displayUnit"] not in UNIT_FACTORS:
    raise ValueError(f"Unsupported displayUnit {target['displayUnit']!r}")


def validate_settings_payload(data: dict) -> EngineSettings:
  """Validate a settings JSON payload.

  Every key is optional; unknown keys are rejected so typos do not pass
  silently.

  Returns:
    The payload, typed as EngineSettings, with numeric values normalized.

  Raises:
    ValueError: If structure or values are invalid.
  """
  if not isinstance(data, dict):
    raise ValueError("Settings file must contain a JSON object.")
  allowed = set(EngineSettings.__annotations__)
  unknown = sorted(set(data) - allowed)
  if unknown:
    raise ValueError(f"Unknown settings keys: {unknown}")

  settings: EngineSettings = {}
  for key in ("quantity_debounce_s", "selection_debounce_s", "advisory_dismiss_s", "w_urgency", "w_batches"):
    if key in data:
      if not _is_number(data[key]) or data[key] < 0:
        raise ValueError(f"{key} must be a non-negative number")
      settings[key] = float(data[key])  # type: ignore[literal-required]
  for key in ("adjust_step", "max_time_seconds"):
    if key in data:
      if not _is_number(data[key]) or data[key] <= 0:
        raise ValueError(f"{key} must be > 0")
      settings[key] = float(data[key])  # type: ignore[literal-required]
  if "horizon_days" in data:
    try:
      horizon_val = int(data["horizon_days"])
    except (TypeError, ValueError):
      raise ValueError("horizon_days must be an integer >= 1")
    if horizon_val < 1:
      raise ValueError(f"horizon_days must be >= 1 (received {horizon_val})")
    settings["horizon_days"] = horizon_val
  if "w_urgency" in settings and "w_batches" in settings:
    if settings["w_urgency"] == 0 and settings["w_batches"] == 0:
      raise ValueError("w_urgency and w_batches cannot both be 0")
  return settings
