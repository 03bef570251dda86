import unittest
from decimal import Decimal

from pantrylens_backend.services.inventory import (
    format_quantity,
    parse_quantity,
    sum_quantities,
)


class ParseQuantityTests(unittest.TestCase):
    def test_reads_leading_number(self):
        cases = {
            "6": Decimal("6"),
            "0.5": Decimal("0.5"),
            ".25": Decimal(".25"),
            "2 lbs": Decimal("2"),
            " 3.5kg": Decimal("3.5"),
            "-1": Decimal("-1"),
        }
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(parse_quantity(raw), expected)

    def test_accepts_numbers(self):
        self.assertEqual(parse_quantity(4), Decimal("4"))
        self.assertEqual(parse_quantity(1.5), Decimal("1.5"))

    def test_unparseable_values_return_none(self):
        for raw in (None, "", "a few", "lbs 2", True, [], {}):
            with self.subTest(raw=raw):
                self.assertIsNone(parse_quantity(raw))


class FormatQuantityTests(unittest.TestCase):
    def test_strips_trailing_zeros(self):
        self.assertEqual(format_quantity(Decimal("12")), "12")
        self.assertEqual(format_quantity(Decimal("2.50")), "2.5")
        self.assertEqual(format_quantity(Decimal("3.000")), "3")
        self.assertEqual(format_quantity(Decimal("0.00")), "0")

    def test_never_uses_exponent(self):
        self.assertEqual(format_quantity(Decimal("1E+2")), "100")


class SumQuantitiesTests(unittest.TestCase):
    def test_sums_exactly(self):
        self.assertEqual(sum_quantities("6", "6"), "12")
        self.assertEqual(sum_quantities("0.5", "0.33"), "0.83")
        self.assertEqual(sum_quantities("1.50", "1"), "2.5")

    def test_missing_existing_counts_as_zero(self):
        self.assertEqual(sum_quantities(None, "2"), "2")
        self.assertEqual(sum_quantities("some", "2"), "2")

    def test_missing_incoming_counts_as_one(self):
        self.assertEqual(sum_quantities("3", None), "4")
        self.assertEqual(sum_quantities("3", "  "), "4")

    def test_unparseable_incoming_counts_as_zero(self):
        self.assertEqual(sum_quantities("3", "lots"), "3")


if __name__ == "__main__":
    unittest.main()
