#!/usr/bin/env python3
"""
test_dashboard.py

Tests for dashboard_app.py

Tests:
- App builds with and without preloaded entries
- Upload decoding and parse errors
- Widget values -> DashboardState (targets, sliders, inputs)
- View builders for empty and loaded states
"""

import base64
import sys
import unittest
from pathlib import Path

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

import dashboard_app
from cfo_kpi.aggregates import ALL
from cfo_kpi.config import TargetConfig
from cfo_kpi.io import LedgerParseError
from cfo_kpi.normalize import entries_to_records, normalize_records
from cfo_kpi.pipeline import evaluate
from cfo_kpi.whatif import WhatIfDeltas


LEDGER = (
    "Code;Description;Amount;Category;Year;Period\n"
    "R01;Services;100.000;Operating revenue;2024;Q1\n"
    "P01;Salaries;70.000;Personnel costs;2024;Q1\n"
)


def _upload(text):
    return "data:text/csv;base64," + base64.b64encode(text.encode("utf-8")).decode("ascii")


class TestBuildApp(unittest.TestCase):

    def test_empty_app(self):
        app = dashboard_app.build_app()
        self.assertEqual(app.title, "CFO Dashboard")
        self.assertIsNotNone(app.layout)

    def test_preloaded_app(self):
        entries = normalize_records(dashboard_app.decode_upload(_upload(LEDGER)))
        app = dashboard_app.build_app(entries, targets=TargetConfig(ebitda_pct=20))
        self.assertIsNotNone(app.layout)


class TestUpload(unittest.TestCase):

    def test_decode(self):
        records = dashboard_app.decode_upload(_upload(LEDGER))
        self.assertEqual(len(records), 2)
        self.assertEqual(records[0]["Amount"], "100.000")

    def test_bad_payload(self):
        with self.assertRaises(LedgerParseError):
            dashboard_app.decode_upload("no comma here")

    def test_empty_file(self):
        with self.assertRaises(LedgerParseError):
            dashboard_app.decode_upload(_upload(""))


class TestStateFromInputs(unittest.TestCase):

    def setUp(self):
        self.records = entries_to_records(normalize_records(dashboard_app.decode_upload(_upload(LEDGER))))

    def test_defaults(self):
        state = dashboard_app.state_from_inputs(None, None, None, None, None, None, [None] * 4)
        self.assertEqual(state.entries, ())
        self.assertEqual(state.year, ALL)
        self.assertEqual(state.period, ALL)
        self.assertEqual(state.targets, TargetConfig())
        self.assertEqual(state.deltas, WhatIfDeltas())

    def test_values_flow_through(self):
        state = dashboard_app.state_from_inputs(
            self.records, "2024", "Q1", "100.000", "4", {"ebitda_pct": 25, "ros_pct": "x"}, [10, 0, -5, 60],
        )
        self.assertEqual(len(state.entries), 2)
        self.assertEqual(state.targets.ebitda_pct, 25.0)
        self.assertEqual(state.targets.ros_pct, 12.0)
        self.assertEqual(state.deltas.revenue, 10.0)
        self.assertEqual(state.deltas.fixed_costs, -5.0)
        # sliders are clamped to the allowed range
        self.assertEqual(state.deltas.personnel_costs, 50.0)

        result = evaluate(state)
        self.assertAlmostEqual(result.kpis.arpu, 25000.0)
        self.assertEqual(result.alerts.red[0].id, "personnel-cost-red")


class TestViews(unittest.TestCase):

    def test_empty_views(self):
        result = evaluate(dashboard_app.state_from_inputs(None, None, None, None, None, None, [0] * 4))
        self.assertIsNotNone(dashboard_app.kpi_tiles(result.kpis))
        self.assertIsNotNone(dashboard_app.pnl_table(result.kpis))
        fig = dashboard_app.trend_figure(result.trend)
        self.assertEqual(len(fig.data), 0)
        blocks = dashboard_app.alert_blocks(result.alerts, has_data=False)
        self.assertIn("Upload a CSV", blocks.children)

    def test_loaded_views(self):
        records = entries_to_records(normalize_records(dashboard_app.decode_upload(_upload(LEDGER))))
        state = dashboard_app.state_from_inputs(records, ALL, ALL, "", "", None, [0] * 4)
        result = evaluate(state)
        fig = dashboard_app.trend_figure(result.trend)
        self.assertEqual(len(fig.data), 2)
        groups = dashboard_app.alert_blocks(result.alerts, has_data=True)
        # one block per non-empty tier
        self.assertEqual(len(groups.children), 2)
        self.assertIsNotNone(dashboard_app.whatif_summary(result.simulation))


if __name__ == "__main__":
    unittest.main()
