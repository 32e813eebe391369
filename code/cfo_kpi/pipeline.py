"""
pipeline.py

One pass from ledger entries to everything the dashboard and the batch report
show. The whole input is an explicit DashboardState value; evaluate() holds no
state between calls, so any input change (new import, filter, target edit,
what-if slider) is handled by calling it again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import pandas as pd

from kpi_alerts import AlertSet, build_alerts, build_narrative

from .aggregates import ALL, BaseMetrics, aggregate_metrics, filter_entries, period_trend
from .classify import RULES, Rule, build_rules
from .config import TargetConfig
from .metrics import Kpis, compute_kpis
from .normalize import LedgerEntry
from .whatif import SimulationResult, WhatIfDeltas, simulate


@dataclass(frozen=True)
class DashboardState:
    entries: Tuple[LedgerEntry, ...] = ()
    year: str = ALL
    period: str = ALL
    invested_capital: str = ""
    client_count: str = ""
    targets: TargetConfig = field(default_factory=TargetConfig)
    deltas: WhatIfDeltas = field(default_factory=WhatIfDeltas)
    fold_unclassified: bool = True


@dataclass(frozen=True)
class PipelineResult:
    filtered: List[LedgerEntry]
    totals: BaseMetrics
    kpis: Kpis
    simulation: SimulationResult
    alerts: AlertSet
    narrative: str
    trend: pd.DataFrame


def _rules_for(state: DashboardState) -> List[Rule]:
    return RULES if state.fold_unclassified else build_rules(fold_unclassified=False)


def evaluate(state: DashboardState) -> PipelineResult:
    rules = _rules_for(state)
    filtered = filter_entries(state.entries, state.year, state.period)
    totals = aggregate_metrics(filtered, rules=rules)
    kpis = compute_kpis(totals, state.invested_capital, state.client_count)

    return PipelineResult(
        filtered=filtered,
        totals=totals,
        kpis=kpis,
        simulation=simulate(totals, state.deltas, state.invested_capital, state.client_count),
        alerts=build_alerts(kpis, state.targets),
        narrative=build_narrative(kpis, has_data=bool(state.entries)),
        trend=period_trend(filtered, rules=rules),
    )
