from __future__ import annotations

from dataclasses import dataclass, fields, replace

from .aggregates import BaseMetrics
from .metrics import Kpis, compute_kpis

DELTA_MIN = -50.0
DELTA_MAX = 50.0


@dataclass(frozen=True)
class WhatIfDeltas:
    """Percentage shocks for the scenario simulator, each within [-50, 50]."""
    revenue: float = 0.0
    fixed_costs: float = 0.0
    variable_costs: float = 0.0
    personnel_costs: float = 0.0

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not DELTA_MIN <= value <= DELTA_MAX:
                raise ValueError(
                    f"What-if delta {f.name}={value} outside [{DELTA_MIN:g}, {DELTA_MAX:g}]"
                )


@dataclass(frozen=True)
class SimulationResult:
    totals: BaseMetrics
    kpis: Kpis


def _shock(value: float, delta_pct: float) -> float:
    return value * (1 + delta_pct / 100)


def simulate(
    base: BaseMetrics,
    deltas: WhatIfDeltas,
    invested_capital: object = None,
    client_count: object = None,
) -> SimulationResult:
    """
    Apply the deltas to revenue, variable, fixed and personnel costs and rerun
    the KPI chain. Every other total is held at its baseline value.
    """
    shocked = replace(
        base,
        revenue=_shock(base.revenue, deltas.revenue),
        variable_costs=_shock(base.variable_costs, deltas.variable_costs),
        fixed_costs=_shock(base.fixed_costs, deltas.fixed_costs),
        personnel_costs=_shock(base.personnel_costs, deltas.personnel_costs),
    )
    return SimulationResult(
        totals=shocked,
        kpis=compute_kpis(shocked, invested_capital, client_count),
    )
