"""
engine.py

Traffic-light alerting on four monitored ratios.

Checks (fixed evaluation order)
-------------------------------
1. Personnel cost % of revenue   (only when revenue > 0)
   Red: delta > 10   Yellow: 0 < delta <= 10   Green: delta <= 0
2. EBITDA %                      (always)
   Red: actual < target - 5   Yellow: actual < target   Green: otherwise
3. Variable cost incidence %     (only when revenue > 0)
   Red: delta > 10   Yellow: 0 < delta <= 10   Green: delta <= 0
4. ROS %                         (only when ROS is defined)
   Red: actual < target - 4   Yellow: actual < target   Green: otherwise

delta = actual - target, in percentage points.

Red personnel / variable-cost alerts lead with a suggested annual adjustment:
(delta / 100) * revenue, rounded half-up to whole euros.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import pandas as pd

from cfo_kpi.config import TargetConfig
from cfo_kpi.formatting import format_euro
from cfo_kpi.metrics import Kpis

RED = "RED"
YELLOW = "YELLOW"
GREEN = "GREEN"

TIER_LABELS = {
    RED: "CRITICAL RED",
    YELLOW: "WARNING YELLOW",
    GREEN: "OK GREEN",
}


@dataclass(frozen=True)
class Alert:
    tier: str
    id: str
    title: str
    subtitle: str
    actions: Tuple[str, ...]


@dataclass(frozen=True)
class AlertSet:
    red: Tuple[Alert, ...] = field(default_factory=tuple)
    yellow: Tuple[Alert, ...] = field(default_factory=tuple)
    green: Tuple[Alert, ...] = field(default_factory=tuple)

    def all(self) -> Tuple[Alert, ...]:
        return self.red + self.yellow + self.green

    def by_tier(self, tier: str) -> Tuple[Alert, ...]:
        return {RED: self.red, YELLOW: self.yellow, GREEN: self.green}[tier]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _pct(value: float) -> str:
    return f"{value:.1f}"


def _alert(tier: str, metric: str, title: str, subtitle: str, actions: List[Optional[str]]) -> Alert:
    return Alert(
        tier=tier,
        id=f"{metric}-{tier.lower()}",
        title=f"{TIER_LABELS[tier]}: {title}",
        subtitle=subtitle,
        actions=tuple(a for a in actions if a),
    )


# ======================================================
# TIER RULES
# ======================================================

def cost_overrun_tier(delta: float) -> str:
    """Tier for cost ratios where exceeding the target is bad."""
    if delta > 10:
        return RED
    if delta > 0:
        return YELLOW
    return GREEN


def margin_shortfall_tier(actual: float, target: float, red_band: float) -> str:
    """Tier for margin ratios where falling short of the target is bad."""
    if actual < target - red_band:
        return RED
    if actual < target:
        return YELLOW
    return GREEN


# ======================================================
# CHECKS
# ======================================================

def _personnel_alert(actual: float, target: float, revenue: float) -> Alert:
    delta = actual - target
    tier = cost_overrun_tier(delta)

    if tier == RED:
        reduction = (delta / 100) * revenue if delta > 0 else 0
        return _alert(
            RED, "personnel-cost",
            f"Personnel cost critical: {_pct(actual)}%",
            f"Personnel cost is {_pct(delta)} points above the {_pct(target)}% target "
            f"for a services business.",
            [
                f"Reduce personnel cost by about {format_euro(round_half_up(reduction))} per year."
                if reduction > 0 else None,
                "Introduce a larger variable, results-linked pay component.",
                "Analyse productivity per FTE (full-time equivalent) to find low-yield areas.",
            ],
        )
    if tier == YELLOW:
        return _alert(
            YELLOW, "personnel-cost",
            f"Personnel cost above target: {_pct(actual)}%",
            f"Personnel cost is {_pct(delta)} points above the {_pct(target)}% target. "
            f"Monitor closely.",
            [
                "Avoid new structural hires until the margin improves.",
                "Consider targeted outsourcing for workload peaks.",
            ],
        )
    return _alert(
        GREEN, "personnel-cost",
        f"Personnel cost under control ({_pct(actual)}%)",
        f"Personnel cost is within the {_pct(target)}% target.",
        [
            "Keep the current level of efficiency.",
            "Consider new hires only when tied to recurring revenue.",
        ],
    )


def _ebitda_alert(actual: float, target: float) -> Alert:
    delta = actual - target
    tier = margin_shortfall_tier(actual, target, red_band=5)

    if tier == RED:
        return _alert(
            RED, "ebitda",
            f"Weak EBITDA: {_pct(actual)}%",
            f"EBITDA is {_pct(abs(delta))} points below the {_pct(target)}% target. "
            f"Operating profitability is insufficient for a services business.",
            [
                "Review pricing and discounts on unprofitable projects.",
                "Cut non-strategic variable costs (subcontracting, one-off consulting).",
                "Analyse the lowest-margin clients and projects and act on them.",
            ],
        )
    if tier == YELLOW:
        return _alert(
            YELLOW, "ebitda",
            f"EBITDA below objective: {_pct(actual)}%",
            f"EBITDA is slightly below the {_pct(target)}% target.",
            [
                "Raise the effective billing rate (billable vs non-billable hours).",
                "Allocate resources to the most profitable projects.",
            ],
        )
    return _alert(
        GREEN, "ebitda",
        f"Healthy EBITDA: {_pct(actual)}%",
        f"EBITDA is above the {_pct(target)}% target. Good operating margin.",
        [
            "Consider investing in product, R&D or client acquisition.",
            "Consolidate the processes generating this margin.",
        ],
    )


def _variable_cost_alert(actual: float, target: float, revenue: float) -> Alert:
    delta = actual - target
    tier = cost_overrun_tier(delta)

    if tier == RED:
        reduction = (delta / 100) * revenue if delta > 0 else 0
        return _alert(
            RED, "variable-costs",
            f"High variable costs: {_pct(actual)}%",
            f"Variable costs are {_pct(delta)} points above the {_pct(target)}% target. "
            f"Project margins risk being squeezed.",
            [
                f"Reduce variable costs by about {format_euro(round_half_up(reduction))} per year."
                if reduction > 0 else None,
                "Renegotiate rates with subcontractors and technical partners.",
                "Standardise the technology stack and delivery model.",
            ],
        )
    if tier == YELLOW:
        return _alert(
            YELLOW, "variable-costs",
            f"Variable costs rising: {_pct(actual)}%",
            f"Variable costs have exceeded the {_pct(target)}% target.",
            [
                "Track which projects generate the most external costs.",
                "Evaluate make-or-buy on repetitive activities.",
            ],
        )
    return _alert(
        GREEN, "variable-costs",
        f"Variable costs in line ({_pct(actual)}%)",
        f"Variable cost incidence is within the {_pct(target)}% target.",
        [
            "Keep discipline on estimates and external hours.",
        ],
    )


def _ros_alert(actual: float, target: float) -> Alert:
    delta = actual - target
    tier = margin_shortfall_tier(actual, target, red_band=4)

    if tier == RED:
        return _alert(
            RED, "ros",
            f"Low ROS: {_pct(actual)}%",
            f"ROS is {_pct(abs(delta))} points below the {_pct(target)}% target. "
            f"Final profitability on sales is too low.",
            [
                "Drop or reprice structurally loss-making clients and projects.",
                "Align price lists with the value actually delivered (custom development above all).",
            ],
        )
    if tier == YELLOW:
        return _alert(
            YELLOW, "ros",
            f"ROS below objective: {_pct(actual)}%",
            f"ROS is slightly below the {_pct(target)}% target.",
            [
                "Cut non-core costs that do not affect delivery.",
                "Push services and products with better margin multiples.",
            ],
        )
    return _alert(
        GREEN, "ros",
        f"ROS in line: {_pct(actual)}%",
        "Return on sales is at or above target.",
        [
            "Keep discipline on discounts and contract terms.",
        ],
    )


def build_alerts(kpi: Kpis, targets: TargetConfig) -> AlertSet:
    """Evaluate the four checks and bucket the alerts by tier, in check order."""
    revenue = kpi.revenue or 0
    alerts: List[Alert] = []

    if revenue > 0:
        personnel_pct = (kpi.personnel_costs / revenue) * 100
        alerts.append(_personnel_alert(personnel_pct, targets.personnel_pct, revenue))

    alerts.append(_ebitda_alert(kpi.ebitda_pct * 100, targets.ebitda_pct))

    if revenue > 0:
        alerts.append(_variable_cost_alert(kpi.variable_incidence * 100, targets.variable_pct, revenue))

    if kpi.ros is not None:
        alerts.append(_ros_alert(kpi.ros * 100, targets.ros_pct))

    return AlertSet(
        red=tuple(a for a in alerts if a.tier == RED),
        yellow=tuple(a for a in alerts if a.tier == YELLOW),
        green=tuple(a for a in alerts if a.tier == GREEN),
    )


def alerts_table(alert_set: AlertSet) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Tier": a.tier,
                "ID": a.id,
                "Title": a.title,
                "Subtitle": a.subtitle,
                "Actions": " | ".join(a.actions),
            }
            for a in alert_set.all()
        ],
        columns=["Tier", "ID", "Title", "Subtitle", "Actions"],
    )
