from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Optional, Tuple


WORKBOOK_NAME = "cfo_kpi_analysis.xlsx"
TREND_CHART_NAME = "period_trend.png"


@dataclass(frozen=True)
class Settings:
    """Ledger input and the batch report layout under one output directory."""
    input_csv: Path
    output_dir: Path
    tables_dir: Path
    charts_dir: Path
    workbook: Path
    trend_chart: Path

    @property
    def report_dirs(self) -> Tuple[Path, ...]:
        return (self.output_dir, self.tables_dir, self.charts_dir)

    def table_path(self, name: str) -> Path:
        return self.tables_dir / f"{name}.csv"


def build_settings(input_csv: str, output_dir: str) -> Settings:
    root = Path(output_dir)
    charts = root / "charts"
    return Settings(
        input_csv=Path(input_csv),
        output_dir=root,
        tables_dir=root / "tables",
        charts_dir=charts,
        workbook=root / WORKBOOK_NAME,
        trend_chart=charts / TREND_CHART_NAME,
    )


# ======================================================
# KPI TARGETS (services / software house benchmarks)
# ======================================================

@dataclass(frozen=True)
class TargetConfig:
    """
    Thresholds the alert engine compares against, all in percent of revenue.

    Values are replaced, never mutated: use with_value() to apply an edit.
    """
    ebitda_pct: float = 18.0
    personnel_pct: float = 50.0
    variable_pct: float = 40.0
    fixed_pct: float = 25.0
    ros_pct: float = 12.0

    def with_value(self, field: str, value: object) -> "TargetConfig":
        """
        Return a copy with one target replaced.

        Non-numeric input is ignored and the current value is kept.
        """
        if field not in TARGET_FIELDS:
            raise KeyError(f"Unknown target field: {field}")
        num = _coerce_target(value)
        if num is None:
            return self
        return replace(self, **{field: num})


TARGET_FIELDS = tuple(f.name for f in fields(TargetConfig))

HEALTHY_RANGES: Dict[str, str] = {
    "ebitda_pct": "18–22%",
    "personnel_pct": "<= 50–55%",
    "variable_pct": "<= 40%",
    "fixed_pct": "<= 25–30%",
    "ros_pct": ">= 12%",
}

TARGET_LABELS: Dict[str, str] = {
    "ebitda_pct": "Target EBITDA %",
    "personnel_pct": "Target personnel cost % of revenue",
    "variable_pct": "Target variable cost incidence %",
    "fixed_pct": "Target fixed cost incidence %",
    "ros_pct": "Target ROS %",
}

_TARGET_ENV = {
    "ebitda_pct": "KPI_TARGET_EBITDA_PCT",
    "personnel_pct": "KPI_TARGET_PERSONNEL_PCT",
    "variable_pct": "KPI_TARGET_VARIABLE_PCT",
    "fixed_pct": "KPI_TARGET_FIXED_PCT",
    "ros_pct": "KPI_TARGET_ROS_PCT",
}

_FALSE_FLAGS = {"0", "FALSE", "NO", "N", "OFF"}


def _coerce_target(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        s = str(value).strip()
        if not s:
            return None
        try:
            num = float(s)
        except ValueError:
            return None
    if num != num or num in (float("inf"), float("-inf")):
        return None
    return num


def targets_from_env(base: Optional[TargetConfig] = None) -> TargetConfig:
    """Apply KPI_TARGET_* overrides on top of the defaults (invalid values ignored)."""
    targets = base or TargetConfig()
    for field, env_name in _TARGET_ENV.items():
        raw = os.getenv(env_name)
        if raw is not None:
            targets = targets.with_value(field, raw)
    return targets


def fold_unclassified_from_env() -> bool:
    raw = os.getenv("KPI_FOLD_UNCLASSIFIED", "").strip().upper()
    return raw not in _FALSE_FLAGS
