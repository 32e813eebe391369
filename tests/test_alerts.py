#!/usr/bin/env python3
"""
test_alerts.py

Unit tests for kpi_alerts (alert engine and narrative)

Tests:
- Healthy ledger: four green alerts
- Personnel overrun: red alert with suggested reduction
- No data: only the EBITDA check runs
- Tier boundaries and ordering
- Narrative rules
"""

import sys
import unittest
from pathlib import Path

# Add code directory to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "code"))

from cfo_kpi.aggregates import BaseMetrics
from cfo_kpi.config import TargetConfig
from cfo_kpi.metrics import compute_kpis
from kpi_alerts import GREEN, RED, YELLOW, alerts_table, build_alerts, build_narrative
from kpi_alerts.engine import cost_overrun_tier, margin_shortfall_tier, round_half_up
from kpi_alerts.narrative import (
    BALANCED,
    HEAVY_PERSONNEL,
    HEAVY_VARIABLE,
    HIGH_EBITDA,
    LOW_EBITDA,
    NET_LOSS,
    NO_DATA,
)


def _kpis(**totals):
    return compute_kpis(BaseMetrics(**totals))


class TestBuildAlerts(unittest.TestCase):

    def test_healthy_services_business_all_green(self):
        k = _kpis(revenue=100000, personnel_costs=50000, variable_costs=20000)
        alerts = build_alerts(k, TargetConfig())
        self.assertEqual(alerts.red, ())
        self.assertEqual(alerts.yellow, ())
        self.assertListEqual(
            [a.id for a in alerts.green],
            ["personnel-cost-green", "ebitda-green", "variable-costs-green", "ros-green"],
        )

    def test_personnel_overrun_red_with_reduction(self):
        k = _kpis(revenue=100000, personnel_costs=70000)
        alerts = build_alerts(k, TargetConfig())
        self.assertEqual(len(alerts.red), 1)
        red = alerts.red[0]
        self.assertEqual(red.id, "personnel-cost-red")
        self.assertTrue(red.title.startswith("CRITICAL RED"))
        self.assertIn("70.0%", red.title)
        self.assertEqual(red.actions[0], "Reduce personnel cost by about 20.000,00 € per year.")

    def test_no_data_only_ebitda(self):
        alerts = build_alerts(_kpis(), TargetConfig())
        self.assertEqual(len(alerts.all()), 1)
        self.assertEqual(alerts.red[0].id, "ebitda-red")

    def test_variable_cost_red_reduction(self):
        k = _kpis(revenue=200000, variable_costs=110000)
        alerts = build_alerts(k, TargetConfig())
        red = {a.id: a for a in alerts.red}
        self.assertIn("variable-costs-red", red)
        # (55 - 40) / 100 * 200000
        self.assertEqual(red["variable-costs-red"].actions[0], "Reduce variable costs by about 30.000,00 € per year.")

    def test_yellow_band(self):
        k = _kpis(revenue=100000, personnel_costs=55000)
        alerts = build_alerts(k, TargetConfig())
        self.assertIn("personnel-cost-yellow", [a.id for a in alerts.yellow])

    def test_targets_drive_tiers(self):
        k = _kpis(revenue=100000, personnel_costs=50000, variable_costs=20000)
        strict = TargetConfig().with_value("ebitda_pct", 40).with_value("ros_pct", 31)
        alerts = build_alerts(k, strict)
        self.assertIn("ebitda-red", [a.id for a in alerts.red])
        self.assertIn("ros-yellow", [a.id for a in alerts.yellow])

    def test_each_metric_at_most_once(self):
        k = _kpis(revenue=100000, personnel_costs=90000, variable_costs=60000)
        ids = [a.id.rsplit("-", 1)[0] for a in build_alerts(k, TargetConfig()).all()]
        self.assertEqual(len(ids), len(set(ids)))

    def test_alerts_table(self):
        alerts = build_alerts(_kpis(revenue=100000, personnel_costs=70000), TargetConfig())
        df = alerts_table(alerts)
        self.assertListEqual(list(df.columns), ["Tier", "ID", "Title", "Subtitle", "Actions"])
        self.assertEqual(df.iloc[0]["Tier"], RED)
        self.assertEqual(len(df), len(alerts.all()))


class TestTiers(unittest.TestCase):

    def test_cost_overrun_boundaries(self):
        self.assertEqual(cost_overrun_tier(0), GREEN)
        self.assertEqual(cost_overrun_tier(-3), GREEN)
        self.assertEqual(cost_overrun_tier(0.1), YELLOW)
        self.assertEqual(cost_overrun_tier(10), YELLOW)
        self.assertEqual(cost_overrun_tier(10.01), RED)

    def test_margin_shortfall_boundaries(self):
        self.assertEqual(margin_shortfall_tier(18, 18, 5), GREEN)
        self.assertEqual(margin_shortfall_tier(13, 18, 5), YELLOW)
        self.assertEqual(margin_shortfall_tier(12.9, 18, 5), RED)

    def test_tier_monotonic_in_overrun(self):
        order = {GREEN: 0, YELLOW: 1, RED: 2}
        ranks = [order[cost_overrun_tier(d / 2)] for d in range(-10, 40)]
        self.assertEqual(ranks, sorted(ranks))

    def test_tier_monotonic_in_shortfall(self):
        order = {GREEN: 0, YELLOW: 1, RED: 2}
        for target, red_band in [(18, 5), (12, 4)]:
            with self.subTest(target=target, red_band=red_band):
                # actual margin falling from well above target to well below
                actuals = [target + 10 - step / 2 for step in range(0, 60)]
                ranks = [order[margin_shortfall_tier(a, target, red_band)] for a in actuals]
                self.assertEqual(ranks, sorted(ranks))
                self.assertEqual(ranks[0], 0)
                self.assertEqual(ranks[-1], 2)

    def test_round_half_up(self):
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(3.5), 4)
        self.assertEqual(round_half_up(2.49), 2)


class TestNarrative(unittest.TestCase):

    def test_no_data(self):
        self.assertEqual(build_narrative(_kpis(), has_data=False), NO_DATA)

    def test_balanced(self):
        k = _kpis(revenue=100000, personnel_costs=35000, variable_costs=20000, fixed_costs=30000)
        self.assertEqual(build_narrative(k), BALANCED)

    def test_rules_combine_in_order(self):
        k = _kpis(revenue=100000, personnel_costs=45000, variable_costs=60000)
        text = build_narrative(k)
        self.assertEqual(text, " ".join([LOW_EBITDA, HEAVY_PERSONNEL, HEAVY_VARIABLE, NET_LOSS]))

    def test_high_ebitda(self):
        k = _kpis(revenue=100000, personnel_costs=30000)
        self.assertTrue(build_narrative(k).startswith(HIGH_EBITDA))


if __name__ == "__main__":
    unittest.main()
