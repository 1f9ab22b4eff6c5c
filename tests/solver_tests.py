"""
Unit tests for the CP-SAT optimized batch fill.
"""
import unittest
from typing import List, Optional

from solver import optimize_batch_allocation


def _solve(available: List[float], days: List[Optional[int]], target: float, **kwargs):
    ids = list(range(1, len(available) + 1))
    kwargs.setdefault("random_seed", 1)
    kwargs.setdefault("num_search_workers", 1)
    return optimize_batch_allocation(ids, available, days, target, **kwargs)


class TestOptimizeBatchAllocation(unittest.TestCase):
    def test_fills_target_exactly_when_stock_allows(self) -> None:
        plan = _solve([4.0, 8.0], [2, 10], 10)
        self.assertEqual(plan["strategy"], "optimized")
        self.assertEqual(plan["status"], "OPTIMAL")
        self.assertEqual(plan["batchIds"], [1, 2])
        self.assertEqual(plan["quantities"], [4.0, 6.0])
        self.assertEqual(plan["totalPlanned"], 10.0)
        self.assertEqual(plan["shortfall"], 0.0)
        self.assertEqual(plan["batchesUsed"], 2)

    def test_batch_penalty_trades_off_urgency(self) -> None:
        few = _solve([4.0, 8.0], [2, 10], 8, w_batches=2.0)
        self.assertEqual(few["batchIds"], [2])
        self.assertEqual(few["quantities"], [8.0])

        urgent = _solve([4.0, 8.0], [2, 10], 8, w_batches=0.0)
        self.assertEqual(urgent["batchIds"], [1, 2])
        self.assertEqual(urgent["quantities"], [4.0, 4.0])

    def test_expired_batch_is_drained_first(self) -> None:
        plan = _solve([5.0, 5.0], [-3, 1], 5, w_batches=0.0)
        self.assertEqual(plan["batchIds"], [1])
        self.assertEqual(plan["quantities"], [5.0])

    def test_equal_expiry_prefers_earlier_rank(self) -> None:
        plan = _solve([5.0, 5.0], [4, 4], 3, w_batches=0.0)
        self.assertEqual(plan["batchIds"], [1])

    def test_shortfall_when_stock_is_insufficient(self) -> None:
        plan = _solve([3.0, 5.0], [2, 10], 10)
        self.assertEqual(plan["totalPlanned"], 8.0)
        self.assertEqual(plan["shortfall"], 2.0)

    def test_fractional_availability_is_floored_to_hundredths(self) -> None:
        plan = _solve([1.239], [2], 2)
        self.assertEqual(plan["quantities"], [1.23])

    def test_nothing_to_fill(self) -> None:
        empty = _solve([], [], 5)
        self.assertEqual(empty["status"], "NOT_SOLVED")
        self.assertEqual(empty["shortfall"], 5.0)
        zero = _solve([4.0], [2], 0)
        self.assertEqual(zero["status"], "NOT_SOLVED")
        self.assertEqual(zero["batchIds"], [])

    def test_objective_metrics_reported(self) -> None:
        metrics = _solve([4.0, 8.0], [2, 10], 10)["objective_bound_metrics"]
        self.assertIsNotNone(metrics["objective_value"])
        self.assertGreaterEqual(metrics["gap_abs"], 0.0)

    def test_invalid_inputs_raise(self) -> None:
        with self.assertRaises(ValueError):
            optimize_batch_allocation([1, 2], [1.0], [1, 2], 1)
        with self.assertRaises(ValueError):
            optimize_batch_allocation([1, 1], [1.0, 1.0], [1, 2], 1)
        with self.assertRaises(ValueError):
            _solve([1.0], [1], -1)
        with self.assertRaises(ValueError):
            _solve([1.0], [1], 1, w_batches=-0.5)
        with self.assertRaises(ValueError):
            _solve([1.0], [1], 1, w_urgency=0.0, w_batches=0.0)
        with self.assertRaises(ValueError):
            _solve([1.0], [1], 1, horizon_days=0)


if __name__ == "__main__":
    unittest.main()
