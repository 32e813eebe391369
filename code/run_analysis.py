#!/usr/bin/env python3
"""
run_analysis.py

Batch run of the KPI pipeline on one ledger CSV.

Writes to the output directory:
- tables/KPI_Summary.csv, PnL_Statement.csv, Alerts.csv, Period_Trend.csv, Classification.csv
- cfo_kpi_analysis.xlsx (all tables, one sheet each)
- charts/period_trend.png

Env (CLI arguments take precedence)
- ANALYSIS_INPUT_CSV, ANALYSIS_OUTPUT_DIR
- KPI_TARGET_*_PCT, KPI_FOLD_UNCLASSIFIED
"""

from __future__ import annotations

import argparse
import sys

from cfo_kpi.aggregates import ALL
from cfo_kpi.charts import plot_trend
from cfo_kpi.classify import build_rules, classification_summary
from cfo_kpi.config import fold_unclassified_from_env, targets_from_env
from cfo_kpi.formatting import format_euro, format_optional_pct, format_pct
from cfo_kpi.io import LedgerParseError, ensure_dirs, load_settings, read_ledger_records
from cfo_kpi.metrics import kpi_table, pnl_statement
from cfo_kpi.normalize import normalize_records
from cfo_kpi.pipeline import DashboardState, evaluate
from cfo_kpi.report import write_report
from kpi_alerts import alerts_table


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Compute P&L KPIs, alerts and trend tables from a ledger CSV.")
    ap.add_argument("--input", type=str, help="Ledger CSV (default: ANALYSIS_INPUT_CSV)")
    ap.add_argument("--output-dir", type=str, help="Output directory (default: ANALYSIS_OUTPUT_DIR)")
    ap.add_argument("--year", type=str, default=ALL, help="Year filter (default: ALL)")
    ap.add_argument("--period", type=str, default=ALL, help="Period filter (default: ALL)")
    ap.add_argument("--invested-capital", type=str, default="", help="Invested capital, for ROI")
    ap.add_argument("--clients", type=str, default="", help="Number of clients, for ARPU")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    s = load_settings(args.input, args.output_dir)
    ensure_dirs(s)

    print(f"[INFO] Loading ledger from: {s.input_csv}")
    try:
        records = read_ledger_records(s.input_csv)
    except (FileNotFoundError, LedgerParseError) as e:
        print(f"[ERROR] {e}")
        return 1

    entries = normalize_records(records)
    print(f"[INFO] Loaded {len(records)} rows, {len(entries)} ledger entries kept")

    fold = fold_unclassified_from_env()
    state = DashboardState(
        entries=entries,
        year=args.year,
        period=args.period,
        invested_capital=args.invested_capital,
        client_count=args.clients,
        targets=targets_from_env(),
        fold_unclassified=fold,
    )
    result = evaluate(state)
    k = result.kpis

    if not result.filtered:
        print(f"[WARNING] No entries match year={args.year} period={args.period}")

    tables = {
        "KPI_Summary": kpi_table(k),
        "PnL_Statement": pnl_statement(k),
        "Alerts": alerts_table(result.alerts),
        "Period_Trend": result.trend,
        "Classification": classification_summary(result.filtered, build_rules(fold)),
    }

    written = write_report(tables, s)
    print(f"[OK] Wrote {len(written)} report files")

    if result.trend.empty:
        print("[INFO] No periods to chart")
    else:
        plot_trend(result.trend, s.trend_chart, "Revenue vs costs by period")

    print(f"[OK] Revenue: {format_euro(k.revenue)}  EBITDA: {format_euro(k.ebitda)} ({format_pct(k.ebitda_pct)})")
    print(f"[OK] Net income: {format_euro(k.net_income)}  ROS: {format_optional_pct(k.ros)}")
    print(
        f"[OK] Alerts: {len(result.alerts.red)} red, "
        f"{len(result.alerts.yellow)} yellow, {len(result.alerts.green)} green"
    )
    print(f"\n{result.narrative}\n")
    print(f"Wrote outputs to: {s.output_dir.resolve()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
