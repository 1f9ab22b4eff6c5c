"""
Unit tests for the unit conversion table and quantity helpers in units.py.
"""
import unittest

from units import (
    check_stock_sufficiency,
    convert,
    format_quantity_with_unit,
    parse_quantity,
    round2,
    units_compatible,
)


class TestConvert(unittest.TestCase):
    def test_identity_returns_quantity_unchanged(self) -> None:
        value = 1.2345678
        self.assertIs(convert(value, "kg", "kg"), value)
        self.assertEqual(convert(7, "pcs", "pcs"), 7)

    def test_kilogram_gram_factors(self) -> None:
        self.assertEqual(convert(2.5, "kg", "g"), 2500.0)
        self.assertAlmostEqual(convert(750, "g", "kg"), 0.75)

    def test_imperial_mass_units(self) -> None:
        self.assertAlmostEqual(convert(1, "lb", "kg"), 0.45359237)
        self.assertAlmostEqual(convert(1, "lb", "oz"), 16.0)

    def test_volume_units(self) -> None:
        self.assertEqual(convert(1.5, "l", "ml"), 1500.0)
        self.assertAlmostEqual(convert(250, "ml", "l"), 0.25)

    def test_incompatible_units_fail_fast(self) -> None:
        for src, dst in [("kg", "ml"), ("l", "g"), ("pcs", "box"), ("pcs", "kg")]:
            with self.subTest(src=src, dst=dst):
                with self.assertRaises(ValueError):
                    convert(1, src, dst)

    def test_unknown_unit_fails_fast(self) -> None:
        with self.assertRaises(ValueError):
            convert(1, "ton", "kg")
        with self.assertRaises(ValueError):
            convert(1, "ton", "ton")

    def test_round_trip_within_two_decimals(self) -> None:
        for q, u1, u2 in [(12.34, "kg", "g"), (3.3, "lb", "kg"), (0.75, "oz", "g"), (9.99, "l", "ml")]:
            with self.subTest(q=q, u1=u1, u2=u2):
                self.assertEqual(round2(convert(convert(q, u1, u2), u2, u1)), round2(q))

    def test_units_compatible(self) -> None:
        self.assertTrue(units_compatible("kg", "oz"))
        self.assertTrue(units_compatible("box", "box"))
        self.assertFalse(units_compatible("kg", "l"))
        self.assertFalse(units_compatible("kg", "stone"))


class TestQuantityHelpers(unittest.TestCase):
    def test_parse_quantity(self) -> None:
        self.assertEqual(parse_quantity("12"), 12.0)
        self.assertEqual(parse_quantity(" 4.5 "), 4.5)
        self.assertEqual(parse_quantity("3.456"), 3.46)
        self.assertEqual(parse_quantity(-2), -2.0)

    def test_parse_quantity_non_numeric_is_zero(self) -> None:
        for raw in [None, "", "   ", "abc", "nan", "inf", True, [1]]:
            with self.subTest(raw=raw):
                self.assertEqual(parse_quantity(raw), 0.0)

    def test_format_quantity_with_unit(self) -> None:
        self.assertEqual(format_quantity_with_unit(2.5, "kg"), "2.5 kg")
        self.assertEqual(format_quantity_with_unit(10, "kg"), "10 kg")
        self.assertEqual(format_quantity_with_unit(3.0, "g", include_unit=False), "3")
        self.assertEqual(format_quantity_with_unit(0.1 + 0.2, "l"), "0.3 l")

    def test_check_stock_sufficiency_across_units(self) -> None:
        ok = check_stock_sufficiency(2, "kg", 1500, "g")
        self.assertTrue(ok["isSufficient"])
        self.assertEqual(ok["availableInRequestedUnit"], 2000.0)
        self.assertEqual(ok["shortfall"], 0.0)

        short = check_stock_sufficiency(1, "kg", 1500, "g")
        self.assertFalse(short["isSufficient"])
        self.assertEqual(short["shortfall"], 500.0)


if __name__ == "__main__":
    unittest.main()
