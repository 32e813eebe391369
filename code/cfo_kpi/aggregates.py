from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

import pandas as pd

from .classify import (
    COMMERCIAL_COST,
    DEPRECIATION,
    FINANCIAL_RESULT,
    FIXED_COST,
    OVERHEAD_COST,
    PERSONNEL_COST,
    REVENUE,
    RULES,
    TAXES,
    VARIABLE_COST,
    Rule,
    classify_category,
)
from .normalize import WHOLE_YEAR, LedgerEntry

ALL = "ALL"


@dataclass(frozen=True)
class BaseMetrics:
    revenue: float = 0.0
    variable_costs: float = 0.0
    fixed_costs: float = 0.0
    commercial_costs: float = 0.0
    personnel_costs: float = 0.0
    overhead_costs: float = 0.0
    depreciation: float = 0.0
    financial_result: float = 0.0
    taxes: float = 0.0


_BUCKET_FIELDS = {
    REVENUE: "revenue",
    VARIABLE_COST: "variable_costs",
    FIXED_COST: "fixed_costs",
    COMMERCIAL_COST: "commercial_costs",
    PERSONNEL_COST: "personnel_costs",
    OVERHEAD_COST: "overhead_costs",
    DEPRECIATION: "depreciation",
    FINANCIAL_RESULT: "financial_result",
    TAXES: "taxes",
}


def filter_entries(
    entries: Iterable[LedgerEntry],
    year: object = ALL,
    period: object = ALL,
) -> List[LedgerEntry]:
    year = ALL if year is None else str(year)
    period = ALL if period is None else str(period)
    return [
        e for e in entries
        if (year == ALL or e.year == year) and (period == ALL or e.period == period)
    ]


def aggregate_metrics(
    entries: Iterable[LedgerEntry],
    year: object = ALL,
    period: object = ALL,
    rules: Sequence[Rule] = RULES,
) -> BaseMetrics:
    """Sum amounts per bucket over the filtered entries. Unclassified lines are skipped."""
    totals = {name: 0.0 for name in _BUCKET_FIELDS.values()}
    for e in filter_entries(entries, year, period):
        name = _BUCKET_FIELDS.get(classify_category(e.category_label, rules))
        if name is not None:
            totals[name] += e.amount
    return BaseMetrics(**totals)


def _distinct(values: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(v for v in values if v))


def year_options(entries: Sequence[LedgerEntry]) -> List[str]:
    return [ALL] + _distinct(e.year for e in entries)


def period_options(entries: Sequence[LedgerEntry]) -> List[str]:
    return [ALL] + _distinct(e.period for e in entries)


def period_trend(entries: Sequence[LedgerEntry], rules: Sequence[Rule] = RULES) -> pd.DataFrame:
    """
    Revenue vs costs per period, periods in first-seen order.

    Revenue is the revenue bucket; every other line counts as cost.
    """
    if not entries:
        return pd.DataFrame(columns=["Period", "Revenue", "Costs"])

    df = pd.DataFrame(
        {
            "Period": [e.period or WHOLE_YEAR for e in entries],
            "Amount": [e.amount for e in entries],
            "Is_Revenue": [classify_category(e.category_label, rules) == REVENUE for e in entries],
        }
    )
    df["Revenue"] = df["Amount"].where(df["Is_Revenue"], 0.0)
    df["Costs"] = df["Amount"].where(~df["Is_Revenue"], 0.0)

    return (
        df.groupby("Period", sort=False)[["Revenue", "Costs"]]
          .sum()
          .reset_index()
    )
