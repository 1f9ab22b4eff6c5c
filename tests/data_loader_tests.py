"""Unit tests for the JSON loaders in data_loader.

Each test writes its payload into a TemporaryDirectory and loads it back
through the public loader, so validation runs exactly as it does for the CLI.
"""
from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from data_loader import load_batches, load_settings, load_target


def _write_json(payload: Any, name: str = "data.json") -> tuple[Path, tempfile.TemporaryDirectory]:
    """Write ``payload`` to a temp file; keep the directory alive while testing."""
    tmpdir = tempfile.TemporaryDirectory()
    p = Path(tmpdir.name) / name
    p.write_text(payload if isinstance(payload, str) else json.dumps(payload), encoding="utf-8")
    return p, tmpdir


BATCHES = [
    {
        "id": 1, "productId": 7, "batchNumber": "LOT-1", "quantity": 4,
        "nativeUnit": "kg", "expiryDate": "2025-08-23", "unitPrice": 2.5, "status": "active",
    },
    {
        "id": 2, "productId": 7, "quantity": 8000, "nativeUnit": "g",
        "expiryDate": "2025-08-31T00:00:00Z", "unitPrice": 0, "status": "inactive",
    },
]


class TestLoadBatches(unittest.TestCase):
    def test_list_payload(self) -> None:
        p, tmp = _write_json(BATCHES)
        with tmp:
            batches = load_batches(str(p))
        self.assertEqual([b["id"] for b in batches], [1, 2])

    def test_wrapped_payload(self) -> None:
        p, tmp = _write_json({"batches": BATCHES})
        with tmp:
            self.assertEqual(len(load_batches(str(p))), 2)

    def test_object_without_batches_key(self) -> None:
        p, tmp = _write_json({"items": BATCHES})
        with tmp, self.assertRaises(ValueError):
            load_batches(str(p))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_batches("/nonexistent/batches.json")

    def test_invalid_json(self) -> None:
        p, tmp = _write_json("{not json")
        with tmp, self.assertRaises(ValueError):
            load_batches(str(p))

    def test_schema_errors_surface(self) -> None:
        bad = [dict(BATCHES[0], quantity=-1)]
        p, tmp = _write_json(bad)
        with tmp, self.assertRaises(ValueError):
            load_batches(str(p))


class TestLoadTargetAndSettings(unittest.TestCase):
    def test_load_target(self) -> None:
        p, tmp = _write_json({"productId": 7, "targetQuantity": 10, "displayUnit": "kg"})
        with tmp:
            target = load_target(str(p))
        self.assertEqual(target["targetQuantity"], 10)

    def test_load_target_rejects_unknown_unit(self) -> None:
        p, tmp = _write_json({"productId": 7, "targetQuantity": 10, "displayUnit": "stone"})
        with tmp, self.assertRaises(ValueError):
            load_target(str(p))

    def test_load_settings(self) -> None:
        p, tmp = _write_json({"quantity_debounce_s": 1, "horizon_days": 14})
        with tmp:
            settings = load_settings(str(p))
        self.assertEqual(settings, {"quantity_debounce_s": 1.0, "horizon_days": 14})

    def test_load_settings_rejects_unknown_key(self) -> None:
        p, tmp = _write_json({"quantity_debounce": 1})
        with tmp, self.assertRaises(ValueError):
            load_settings(str(p))


if __name__ == "__main__":
    unittest.main()
