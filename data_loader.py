"""
Data loading utilities for batch allocation.

Provides typed loaders that return the structures defined in `domain_types`
(Batch, AllocationTarget) and `allocation_types` (EngineSettings). Every
loader validates what it reads through `inputvalidations`.
"""
import json
import logging
import os
from typing import Any, List, cast

from allocation_types import EngineSettings
from domain_types import AllocationTarget, Batch
from inputvalidations import validate_batches, validate_settings_payload, validate_target

logger = logging.getLogger(__name__)


def _read_json(path: str, label: str) -> Any:
    if not os.path.isfile(path):
        raise FileNotFoundError(f"{label} file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {label.lower()} file: {path}") from exc


def load_batches(path: str) -> List[Batch]:
    """Load a batch snapshot from a JSON file.

    Args:
        path: Path to a JSON file containing either a list of batches or an
              object with a "batches" list. Each batch must include "id",
              "productId", "quantity", "nativeUnit", "expiryDate"
              (yyyy-MM-dd), "unitPrice" and "status".

    Returns:
        A list of Batch-typed dictionaries, in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the JSON does not meet schema expectations.
    """
    data = _read_json(path, "Batches")
    if isinstance(data, dict):
        if "batches" not in data:
            raise ValueError("Batches data must be a list or contain a list under 'batches' key.")
        data = data["batches"]
    validate_batches(data)
    logger.debug("loaded %d batches from %s", len(data), path)
    return cast(List[Batch], data)


def load_target(path: str) -> AllocationTarget:
    """Load an allocation target.

    Example JSON:
    {
      "productId": 7,
      "targetQuantity": 10,
      "displayUnit": "kg"
    }

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required keys are missing or invalid.
    """
    data = _read_json(path, "Target")
    validate_target(data)
    return cast(AllocationTarget, data)


def load_settings(path: str) -> EngineSettings:
    """Load engine settings (debounce windows, step, optimizer weights).

    Example JSON:
    {
      "quantity_debounce_s": 0.5,
      "selection_debounce_s": 0.3,
      "w_urgency": 1.0,
      "w_batches": 0.5
    }

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the payload is not an object or a value is invalid.
    """
    data = _read_json(path, "Settings")
    return validate_settings_payload(data)
