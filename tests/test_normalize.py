#!/usr/bin/env python3
"""
test_normalize.py

Unit tests for cfo_kpi.normalize

Tests:
- European amount parsing (thousands dots, decimal comma, junk)
- Column alias resolution and defaults
- Dropping of empty rows
- Store round trip used by the dashboard
"""

import math
import sys
import unittest
from pathlib import Path

import numpy as np

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from cfo_kpi.normalize import (
    DEFAULT_CATEGORY,
    WHOLE_YEAR,
    entries_frame,
    entries_from_records,
    entries_to_records,
    normalize_records,
    normalize_row,
    parse_amount,
)


class TestParseAmount(unittest.TestCase):
    """Amounts in the European format."""

    def test_thousands_and_decimal_comma(self):
        self.assertAlmostEqual(parse_amount("1.234,56"), 1234.56)
        self.assertAlmostEqual(parse_amount("1.234.567,8"), 1234567.8)

    def test_plain_and_negative(self):
        self.assertAlmostEqual(parse_amount("100000"), 100000.0)
        self.assertAlmostEqual(parse_amount("-2.500,00"), -2500.0)

    def test_dot_is_never_decimal(self):
        # "12.5" reads as 125: the dot is a thousands separator
        self.assertAlmostEqual(parse_amount("12.5"), 125.0)

    def test_trailing_junk_keeps_numeric_prefix(self):
        self.assertAlmostEqual(parse_amount("1.000,50 EUR"), 1000.5)

    def test_unparseable_is_zero(self):
        for raw in ["", "   ", "abc", "€", None, "-"]:
            with self.subTest(raw=raw):
                self.assertEqual(parse_amount(raw), 0.0)

    def test_numbers_pass_through_when_finite(self):
        self.assertEqual(parse_amount(42), 42.0)
        self.assertEqual(parse_amount(np.float64(3.5)), 3.5)
        self.assertEqual(parse_amount(float("nan")), 0.0)
        self.assertEqual(parse_amount(float("inf")), 0.0)

    def test_result_always_finite(self):
        for raw in ["1e400", "-1e999", "nan", "inf"]:
            with self.subTest(raw=raw):
                self.assertTrue(math.isfinite(parse_amount(raw)))


class TestNormalizeRow(unittest.TestCase):
    """Alias resolution and row dropping."""

    def test_italian_headers(self):
        e = normalize_row({
            "Codice CE": "R01",
            "Descrizione CE": "Ricavi da servizi",
            "Importo": "100.000,00",
            "Voce gestionale": "Ricavi operativi",
            "Anno": "2024",
            "Periodo": "Q1",
        })
        self.assertEqual(e.code, "R01")
        self.assertEqual(e.description, "Ricavi da servizi")
        self.assertAlmostEqual(e.amount, 100000.0)
        self.assertEqual(e.category_label, "Ricavi operativi")
        self.assertEqual(e.year, "2024")
        self.assertEqual(e.period, "Q1")

    def test_english_headers(self):
        e = normalize_row({
            "Code": "C10",
            "Description": "Salaries",
            "Amount": "50000",
            "Category": "Personnel costs",
            "Year": "2024",
            "Quarter": "Q2",
        })
        self.assertEqual(e.code, "C10")
        self.assertEqual(e.category_label, "Personnel costs")
        self.assertEqual(e.period, "Q2")

    def test_first_non_blank_alias_wins(self):
        e = normalize_row({"Codice CE": "", "Codice": "X1", "Amount": "1"})
        self.assertEqual(e.code, "X1")

    def test_defaults(self):
        e = normalize_row({"Code": "A", "Amount": "10"})
        self.assertEqual(e.category_label, DEFAULT_CATEGORY)
        self.assertEqual(e.period, WHOLE_YEAR)
        self.assertEqual(e.year, "")
        self.assertEqual(e.description, "")

    def test_empty_row_dropped(self):
        self.assertIsNone(normalize_row({}))
        self.assertIsNone(normalize_row({"Code": "", "Description": " ", "Amount": "0"}))
        self.assertIsNone(normalize_row({"Anno": "2024", "Voce gestionale": "Ricavi"}))

    def test_zero_amount_kept_when_labelled(self):
        e = normalize_row({"Description": "Placeholder", "Amount": "0"})
        self.assertIsNotNone(e)
        self.assertEqual(e.amount, 0.0)

    def test_malformed_amount_does_not_reject_row(self):
        e = normalize_row({"Code": "A", "Amount": "n/a"})
        self.assertIsNotNone(e)
        self.assertEqual(e.amount, 0.0)


class TestNormalizeRecords(unittest.TestCase):

    def test_filters_and_keeps_order(self):
        records = [
            {"Code": "A", "Amount": "1"},
            {},
            {"Code": "B", "Amount": "2"},
        ]
        entries = normalize_records(records)
        self.assertEqual([e.code for e in entries], ["A", "B"])

    def test_store_round_trip(self):
        entries = normalize_records([
            {"Code": "A", "Amount": "1.000,5", "Category": "Revenue", "Year": "2023", "Period": "H1"},
        ])
        self.assertEqual(entries_from_records(entries_to_records(entries)), entries)

    def test_entries_frame_columns(self):
        df = entries_frame([])
        self.assertListEqual(
            list(df.columns),
            ["code", "description", "amount", "category_label", "year", "period"],
        )


if __name__ == "__main__":
    unittest.main()
