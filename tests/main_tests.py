"""End-to-end tests for the command line entry point, using the sample inputs."""
import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

from main import build_parser, main
from units import MEASUREMENT_UNITS

INPUTS = Path(__file__).resolve().parent.parent / "inputs"
BATCHES = str(INPUTS / "batches-sample.json")
TARGET = str(INPUTS / "target-sample.json")
SETTINGS = str(INPUTS / "settings-sample.json")


def _run(*argv: str) -> tuple:
    buf = io.StringIO()
    with redirect_stdout(buf):
        code = main(list(argv))
    return code, buf.getvalue()


class TestMain(unittest.TestCase):
    def test_fefo_plan_from_target_file(self) -> None:
        code, out = _run("--batches-file", BATCHES, "--target-file", TARGET)
        self.assertEqual(code, 0)
        self.assertIn("### Plan (fefo, GREEDY)", out)
        self.assertIn("| 101 | LOT-2025-081 | 2025-08-23 | 4 kg | 4 kg |", out)
        self.assertIn("| 102 | LOT-2025-084 | 2025-08-31 | 8 kg | 6 kg |", out)
        self.assertNotIn("| 103 |", out)
        self.assertIn("confirmation: enabled", out)

    def test_inline_target_in_grams(self) -> None:
        code, out = _run("--batches-file", BATCHES, "--product-id", "7", "--quantity", "5000", "--unit", "g")
        self.assertEqual(code, 0)
        self.assertIn("| Selected | 5000 g |", out)

    def test_inline_target_in_pounds(self) -> None:
        code, out = _run("--batches-file", BATCHES, "--product-id", "7", "--quantity", "10", "--unit", "lb")
        self.assertEqual(code, 0)
        self.assertIn("| Required | 10 lb |", out)
        self.assertIn("| Target met | yes |", out)

    def test_unit_choices_come_from_measurement_units(self) -> None:
        action = next(a for a in build_parser()._actions if a.dest == "unit")
        self.assertEqual(action.choices, [u["value"] for u in MEASUREMENT_UNITS])
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
            build_parser().parse_args(["--batches-file", BATCHES, "--unit", "stone"])

    def test_insufficient_stock_disables_confirmation(self) -> None:
        code, out = _run("--batches-file", BATCHES, "--product-id", "7", "--quantity", "100")
        self.assertEqual(code, 1)
        self.assertIn("**Insufficient Stock**", out)
        self.assertIn("confirmation: disabled", out)

    def test_optimized_strategy_with_settings(self) -> None:
        code, out = _run(
            "--batches-file", BATCHES, "--target-file", TARGET,
            "--strategy", "optimized", "--settings-file", SETTINGS,
        )
        self.assertEqual(code, 0)
        self.assertIn("### Plan (optimized, OPTIMAL)", out)

    def test_missing_target_is_a_usage_error(self) -> None:
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit):
            main(["--batches-file", BATCHES])


if __name__ == "__main__":
    unittest.main()
