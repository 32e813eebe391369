"""
metrics.py

Reclassified P&L and KPI chain for a services business.

Ratios are stored as fractions (0.30 == 30%). Two zero-revenue policies exist
and are kept apart on purpose:
- incidence ratios (EBITDA %, variable/fixed/personnel incidence) fall back to 0;
- ROI, ROS and ARPU become None ("not available"), never 0.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Optional

import pandas as pd

from .aggregates import BaseMetrics
from .normalize import parse_amount


@dataclass(frozen=True)
class Kpis:
    revenue: float
    variable_costs: float
    fixed_costs: float
    commercial_costs: float
    personnel_costs: float
    overhead_costs: float
    depreciation: float
    financial_result: float
    taxes: float
    operating_costs: float
    contribution_margin: float
    contribution_margin_pct: float
    ebitda: float
    ebitda_pct: float
    ebit: float
    pretax_result: float
    net_income: float
    personnel_incidence: float
    variable_incidence: float
    fixed_incidence: float
    roi: Optional[float]
    ros: Optional[float]
    arpu: Optional[float]

    def to_dict(self) -> dict:
        return asdict(self)


def parse_user_number(value: object) -> float:
    """Free-text user inputs (invested capital, client count) use the ledger's number format."""
    return parse_amount(value)


def compute_kpis(
    base: BaseMetrics,
    invested_capital: object = None,
    client_count: object = None,
) -> Kpis:
    r = base.revenue
    v = base.variable_costs
    f = base.fixed_costs
    c = base.commercial_costs
    p = base.personnel_costs
    g = base.overhead_costs
    d = base.depreciation
    fin = base.financial_result
    t = base.taxes

    capital = parse_user_number(invested_capital)
    clients = parse_user_number(client_count)

    operating_costs = v + f + c + p + g
    contribution_margin = r - v
    ebitda = r - operating_costs
    ebit = ebitda - d
    pretax_result = ebit + fin
    net_income = pretax_result - t

    return Kpis(
        revenue=r,
        variable_costs=v,
        fixed_costs=f,
        commercial_costs=c,
        personnel_costs=p,
        overhead_costs=g,
        depreciation=d,
        financial_result=fin,
        taxes=t,
        operating_costs=operating_costs,
        contribution_margin=contribution_margin,
        contribution_margin_pct=contribution_margin / r if r else 0.0,
        ebitda=ebitda,
        ebitda_pct=ebitda / r if r else 0.0,
        ebit=ebit,
        pretax_result=pretax_result,
        net_income=net_income,
        personnel_incidence=p / r if r else 0.0,
        variable_incidence=v / r if r else 0.0,
        fixed_incidence=f / r if r else 0.0,
        roi=ebit / capital if capital > 0 else None,
        ros=ebit / r if r else None,
        arpu=r / clients if clients > 0 else None,
    )


# ======================================================
# REPORTING VIEWS
# ======================================================

def pnl_statement(k: Kpis) -> pd.DataFrame:
    """Condensed reclassified income statement, top to bottom."""
    lines = [
        ("Operating revenue", k.revenue),
        ("Direct variable costs", k.variable_costs),
        ("Contribution margin", k.contribution_margin),
        ("Fixed + general + commercial costs", k.fixed_costs + k.overhead_costs + k.commercial_costs),
        ("Personnel costs", k.personnel_costs),
        ("EBITDA", k.ebitda),
        ("Depreciation/amortization", k.depreciation),
        ("EBIT", k.ebit),
        ("Financial income/expense", k.financial_result),
        ("Pre-tax result", k.pretax_result),
        ("Income taxes", k.taxes),
        ("Net income", k.net_income),
    ]
    return pd.DataFrame(lines, columns=["Line", "Amount"])


def kpi_table(k: Kpis) -> pd.DataFrame:
    return pd.DataFrame(
        [{"KPI": name, "Value": value} for name, value in k.to_dict().items()]
    )
