#!/usr/bin/env python3
"""
dashboard_app.py

Dash dashboard: reclassified P&L, KPIs, traffic-light alerts and what-if
simulation for a services business.

Design goals
- Every figure on screen comes from cfo_kpi.pipeline.evaluate() on an explicit
  DashboardState; callbacks only translate widget values into that state.
- Imported entries live in a dcc.Store (browser side). A new upload replaces
  them wholesale; a failed upload keeps the previous set and shows a banner.
- Undefined ratios (ROI, ROS, ARPU) are shown as a prompt, never as 0.

Env
- ANALYSIS_INPUT_CSV (optional): ledger CSV preloaded at startup
- DASH_HOST (optional): default 127.0.0.1
- DASH_PORT (optional): default 8050
- KPI_TARGET_*_PCT (optional): initial targets
"""

from __future__ import annotations

import base64
import binascii
import os
from typing import List, Optional, Sequence, Tuple

import plotly.graph_objects as go
from dash import Dash, Input, Output, State, dcc, html

from cfo_kpi.aggregates import ALL, period_options, year_options
from cfo_kpi.config import (
    HEALTHY_RANGES,
    TARGET_FIELDS,
    TARGET_LABELS,
    TargetConfig,
    fold_unclassified_from_env,
    targets_from_env,
)
from cfo_kpi.formatting import format_euro, format_optional_euro, format_optional_pct, format_pct
from cfo_kpi.io import LedgerParseError, load_env_file, parse_ledger_bytes, read_ledger_records
from cfo_kpi.metrics import Kpis
from cfo_kpi.normalize import LedgerEntry, entries_from_records, entries_to_records, normalize_records
from cfo_kpi.pipeline import DashboardState, evaluate
from cfo_kpi.whatif import DELTA_MAX, DELTA_MIN, SimulationResult, WhatIfDeltas
from kpi_alerts import GREEN, RED, YELLOW, AlertSet


# ======================================================
# SETTINGS
# ======================================================

FONT_STACK = "Inter, -apple-system, BlinkMacSystemFont, \"Segoe UI\", Roboto, Helvetica, Arial, sans-serif"

COLORS = {
    "primary_blue": "#004990",
    "accent_teal": "#00838f",
    "positive_green": "#16a34a",
    "warning_amber": "#d97706",
    "negative_red": "#dc2626",
    "neutral_gray": "#64748b",
    "dark_text": "#1e293b",
    "light_text": "#94a3b8",
    "bg_primary": "#ffffff",
    "bg_secondary": "#f8fafc",
    "border": "#e2e8f0",
    "header_bg": "#004990",
}

TIER_COLORS = {
    RED: COLORS["negative_red"],
    YELLOW: COLORS["warning_amber"],
    GREEN: COLORS["positive_green"],
}

TIER_HEADINGS = {
    RED: ("CRITICAL RED", "RECOMMENDED ACTIONS:"),
    YELLOW: ("WARNING YELLOW", "RECOMMENDED ACTIONS:"),
    GREEN: ("OK GREEN", "NOTES:"),
}

WHATIF_SLIDERS = [
    ("revenue", "Δ Revenue (%)"),
    ("variable_costs", "Δ Variable costs (%)"),
    ("fixed_costs", "Δ Fixed costs (%)"),
    ("personnel_costs", "Δ Personnel cost (%)"),
]


def load_settings() -> Tuple[Optional[str], str, int]:
    input_csv = os.getenv("ANALYSIS_INPUT_CSV", "").strip() or None
    host = os.getenv("DASH_HOST", "127.0.0.1").strip()
    port = int(os.getenv("DASH_PORT", "8050").strip())
    return input_csv, host, port


# ======================================================
# WIDGET VALUES -> PIPELINE STATE
# ======================================================

def decode_upload(contents: str) -> List[dict]:
    """Decode a dcc.Upload payload ('data:<mime>;base64,<data>') into raw records."""
    try:
        _, encoded = contents.split(",", 1)
        raw = base64.b64decode(encoded, validate=False)
    except (ValueError, binascii.Error) as e:
        raise LedgerParseError(f"Upload could not be decoded: {e}") from e
    return parse_ledger_bytes(raw)


def targets_from_store(data: Optional[dict]) -> TargetConfig:
    targets = TargetConfig()
    for name, value in (data or {}).items():
        if name in TARGET_FIELDS:
            targets = targets.with_value(name, value)
    return targets


def deltas_from_sliders(values: Sequence[object]) -> WhatIfDeltas:
    clamped = []
    for v in values:
        num = float(v) if v is not None else 0.0
        clamped.append(min(max(num, DELTA_MIN), DELTA_MAX))
    return WhatIfDeltas(**dict(zip([k for k, _ in WHATIF_SLIDERS], clamped)))


def state_from_inputs(
    entries_data: Optional[List[dict]],
    year: Optional[str],
    period: Optional[str],
    invested_capital: Optional[str],
    client_count: Optional[str],
    targets_data: Optional[dict],
    slider_values: Sequence[object],
    fold_unclassified: bool = True,
) -> DashboardState:
    return DashboardState(
        entries=entries_from_records(entries_data or []),
        year=year or ALL,
        period=period or ALL,
        invested_capital=invested_capital or "",
        client_count=client_count or "",
        targets=targets_from_store(targets_data),
        deltas=deltas_from_sliders(slider_values),
        fold_unclassified=fold_unclassified,
    )


def _options(values: List[str]) -> List[dict]:
    return [{"label": "All" if v == ALL else v, "value": v} for v in values]


# ======================================================
# VIEW BUILDERS
# ======================================================

def _kpi_tile(label: str, value: str, highlight: bool = False) -> html.Div:
    return html.Div(
        [
            html.Div(label, style={
                "fontSize": "11px",
                "color": COLORS["neutral_gray"],
                "fontWeight": "600",
                "textTransform": "uppercase",
                "letterSpacing": "0.5px",
                "marginBottom": "4px",
            }),
            html.Div(value, style={
                "fontSize": "22px",
                "fontWeight": "700",
                "color": COLORS["primary_blue"] if highlight else COLORS["dark_text"],
                "lineHeight": "1.1",
            }),
        ],
        className="kpi-tile",
        style={
            "backgroundColor": COLORS["bg_primary"],
            "padding": "14px 16px",
            "borderRadius": "8px",
            "border": f"1px solid {COLORS['border']}",
        },
    )


def kpi_tiles(k: Kpis) -> html.Div:
    tiles = [
        _kpi_tile("Total revenue", format_euro(k.revenue)),
        _kpi_tile("Operating costs", format_euro(k.operating_costs)),
        _kpi_tile("Contribution margin", format_euro(k.contribution_margin)),
        _kpi_tile("Contribution margin %", format_pct(k.contribution_margin_pct)),
        _kpi_tile("EBITDA", format_euro(k.ebitda), highlight=True),
        _kpi_tile("EBITDA %", format_pct(k.ebitda_pct), highlight=True),
        _kpi_tile("EBIT", format_euro(k.ebit)),
        _kpi_tile("Net income", format_euro(k.net_income)),
        _kpi_tile("Variable cost incidence", format_pct(k.variable_incidence)),
        _kpi_tile("Fixed cost incidence", format_pct(k.fixed_incidence)),
        _kpi_tile("ROI", format_optional_pct(k.roi, missing="Enter invested capital")),
        _kpi_tile("ROS", format_optional_pct(k.ros)),
        _kpi_tile("ARPU", format_optional_euro(k.arpu, missing="Enter number of clients")),
    ]
    return html.Div(tiles, className="kpi-grid", style={
        "display": "grid",
        "gridTemplateColumns": "repeat(auto-fill, minmax(180px, 1fr))",
        "gap": "12px",
    })


def pnl_table(k: Kpis) -> html.Table:
    rows = [
        ("Operating revenue", k.revenue, False),
        ("Direct variable costs", k.variable_costs, False),
        ("Contribution margin", k.contribution_margin, True),
        ("Fixed + general + commercial costs", k.fixed_costs + k.overhead_costs + k.commercial_costs, False),
        ("Personnel costs", k.personnel_costs, False),
        ("EBITDA", k.ebitda, True),
        ("Depreciation/amortization", k.depreciation, False),
        ("EBIT", k.ebit, False),
        ("Financial income/expense", k.financial_result, False),
        ("Pre-tax result", k.pretax_result, False),
        ("Income taxes", k.taxes, False),
        ("Net income", k.net_income, True),
    ]
    body = [
        html.Tr(
            [
                html.Td(label, style={"fontWeight": "700" if bold else "400", "padding": "4px 8px"}),
                html.Td(format_euro(value), style={
                    "fontWeight": "700" if bold else "400",
                    "textAlign": "right",
                    "padding": "4px 8px",
                }),
            ],
            style={"borderBottom": f"1px solid {COLORS['border']}"},
        )
        for label, value, bold in rows
    ]
    return html.Table(html.Tbody(body), className="ce-table", style={"width": "100%", "fontSize": "13px"})


def trend_figure(trend) -> go.Figure:
    fig = go.Figure()
    if trend.empty:
        fig.add_annotation(
            text="Load data to see the chart",
            x=0.5, y=0.5,
            xref="paper", yref="paper",
            showarrow=False,
            font=dict(size=14, color=COLORS["neutral_gray"]),
        )
    else:
        fig.add_trace(go.Bar(x=trend["Period"], y=trend["Revenue"], name="Revenue",
                             marker_color=COLORS["primary_blue"]))
        fig.add_trace(go.Bar(x=trend["Period"], y=trend["Costs"], name="Costs",
                             marker_color=COLORS["accent_teal"]))
    fig.update_layout(
        title=dict(text="Revenue / costs trend by period", font=dict(size=14, color=COLORS["dark_text"])),
        font=dict(family=FONT_STACK, size=12, color=COLORS["dark_text"]),
        plot_bgcolor=COLORS["bg_primary"],
        paper_bgcolor=COLORS["bg_primary"],
        barmode="group",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
    )
    fig.update_xaxes(gridcolor=COLORS["border"])
    fig.update_yaxes(gridcolor=COLORS["border"], tickformat=",.0f")
    return fig


def whatif_summary(sim: SimulationResult) -> html.Div:
    k = sim.kpis
    items = [
        f"Simulated revenue: {format_euro(k.revenue)}",
        f"Simulated operating costs: {format_euro(k.operating_costs)}",
        f"Contribution margin: {format_euro(k.contribution_margin)}",
        f"Simulated EBITDA: {format_euro(k.ebitda)}",
        f"Simulated EBITDA %: {format_pct(k.ebitda_pct)}",
        f"Simulated EBIT: {format_euro(k.ebit)}",
        f"Simulated net income: {format_euro(k.net_income)}",
    ]
    return html.Div([
        html.H3("Simulated scenario", className="section-heading"),
        html.Ul([html.Li(text) for text in items]),
    ])


def alert_blocks(alert_set: AlertSet, has_data: bool) -> html.Div:
    if not has_data:
        return html.P("Upload a CSV to see alerts and recommended actions.", style={
            "color": COLORS["neutral_gray"],
            "fontSize": "13px",
        })

    blocks = []
    for tier in (RED, YELLOW, GREEN):
        alerts = alert_set.by_tier(tier)
        if not alerts:
            continue
        heading, actions_label = TIER_HEADINGS[tier]
        items = [
            html.Div([
                html.Div(a.title, style={"fontWeight": "600"}),
                html.Div(a.subtitle, style={"fontSize": "12px", "color": COLORS["neutral_gray"]}),
                html.Div(actions_label, style={"fontSize": "11px", "fontWeight": "600", "marginTop": "6px"}),
                html.Ul([html.Li(act) for act in a.actions], style={"fontSize": "12px"}),
            ], id=f"alert-{a.id}", className="alert-item", style={"marginBottom": "10px"})
            for a in alerts
        ]
        blocks.append(html.Div(
            [html.H4(heading, style={"color": TIER_COLORS[tier], "margin": "0 0 8px 0"})] + items,
            className=f"alert-block alert-{tier.lower()}",
            style={
                "borderLeft": f"4px solid {TIER_COLORS[tier]}",
                "padding": "8px 12px",
                "marginBottom": "12px",
                "backgroundColor": COLORS["bg_primary"],
            },
        ))
    return html.Div(blocks, className="alert-groups")


def _card(title: str, children, flex: str = "1") -> html.Div:
    return html.Div([
        html.H3(title, className="section-heading", style={"fontSize": "15px", "marginTop": "0"}),
        html.Div(children),
    ], className="card", style={
        "backgroundColor": COLORS["bg_primary"],
        "padding": "16px 20px",
        "borderRadius": "12px",
        "border": f"1px solid {COLORS['border']}",
        "marginBottom": "20px",
        "flex": flex,
    })


def _field(label: str, control, hint: str = "") -> html.Div:
    children = [html.Label(label, style={"fontWeight": "600", "fontSize": "12px", "color": COLORS["dark_text"]}), control]
    if hint:
        children.append(html.Small(hint, style={"color": COLORS["light_text"], "fontSize": "11px"}))
    return html.Div(children, style={"display": "flex", "flexDirection": "column", "gap": "4px"})


# ======================================================
# APP
# ======================================================

def build_app(
    entries: Sequence[LedgerEntry] = (),
    targets: Optional[TargetConfig] = None,
    fold_unclassified: bool = True,
) -> Dash:
    targets = targets or TargetConfig()
    entries = tuple(entries)

    app = Dash(__name__, suppress_callback_exceptions=False)
    app.title = "CFO Dashboard"

    grid = {"display": "grid", "gridTemplateColumns": "repeat(auto-fill, minmax(200px, 1fr))", "gap": "14px"}

    app.layout = html.Div(
        [
            html.Div([
                html.H1("CFO Dashboard", style={
                    "color": COLORS["bg_primary"],
                    "fontSize": "24px",
                    "fontWeight": "700",
                    "margin": "0",
                }),
                html.Div("Reclassified P&L, KPIs and what-if simulations", style={
                    "color": COLORS["light_text"],
                    "fontSize": "12px",
                    "marginTop": "4px",
                }),
            ], style={"backgroundColor": COLORS["header_bg"], "padding": "16px 24px"}),

            dcc.Store(id="entries_store", data=entries_to_records(entries)),
            dcc.Store(id="targets_store", data={f: getattr(targets, f) for f in TARGET_FIELDS}),

            html.Div([
                _card("Input data", [
                    dcc.Upload(
                        id="upload",
                        children=html.Div(["Drop or ", html.A("select a ledger CSV")]),
                        accept=".csv",
                        multiple=False,
                        style={
                            "border": f"1px dashed {COLORS['neutral_gray']}",
                            "borderRadius": "8px",
                            "padding": "14px",
                            "textAlign": "center",
                            "marginBottom": "8px",
                        },
                    ),
                    html.Div(id="upload_banner"),
                    html.Small(
                        "Expected columns: Codice CE, Descrizione CE, Importo, Voce gestionale, Anno, Periodo "
                        "(English headers Code, Description, Amount, Category, Year, Period also work).",
                        style={"color": COLORS["light_text"]},
                    ),
                    html.Div([
                        _field("Year", dcc.Dropdown(id="year_filter", options=_options(year_options(entries)),
                                                    value=ALL, clearable=False)),
                        _field("Period", dcc.Dropdown(id="period_filter", options=_options(period_options(entries)),
                                                      value=ALL, clearable=False)),
                        _field("Invested capital (for ROI)",
                               dcc.Input(id="invested_capital", type="text", placeholder="e.g. 150000", debounce=True)),
                        _field("Number of clients (for ARPU)",
                               dcc.Input(id="client_count", type="text", placeholder="e.g. 120", debounce=True)),
                    ], style={**grid, "marginTop": "12px"}),
                ]),

                _card("KPI targets (services business)", html.Div([
                    _field(
                        TARGET_LABELS[f],
                        dcc.Input(id=f"target_{f}", type="number", value=getattr(targets, f), debounce=True),
                        hint=f"Healthy range: {HEALTHY_RANGES[f]}",
                    )
                    for f in TARGET_FIELDS
                ], style=grid)),

                _card("Key KPIs", html.Div(id="kpi_tiles")),

                html.Div([
                    _card("Reclassified income statement (summary)", html.Div(id="pnl_table")),
                    _card("Trend", dcc.Graph(id="trend_chart", style={"height": "320px"},
                                             config={"responsive": True})),
                ], style={"display": "flex", "gap": "20px", "flexWrap": "wrap"}),

                _card("What-if simulation", html.Div([
                    html.Div([
                        _field(label, dcc.Slider(
                            id=f"whatif_{name}",
                            min=DELTA_MIN,
                            max=DELTA_MAX,
                            step=1,
                            value=0,
                            marks={-50: "-50%", 0: "0", 50: "+50%"},
                        ))
                        for name, label in WHATIF_SLIDERS
                    ], style={"flex": "1"}),
                    html.Div(id="whatif_summary", style={"flex": "1"}),
                ], style={"display": "flex", "gap": "24px", "flexWrap": "wrap"})),

                html.Div([
                    _card("Alerts & actions: KPI traffic light", html.Div(id="alerts_section")),
                    _card("CFO insight", html.P(id="narrative", style={"fontSize": "13px", "lineHeight": "1.5"})),
                ], style={"display": "flex", "gap": "20px", "flexWrap": "wrap"}),
            ], style={"padding": "20px 24px"}),
        ],
        style={
            "fontFamily": FONT_STACK,
            "backgroundColor": COLORS["bg_secondary"],
            "margin": "0",
            "minHeight": "100vh",
        },
    )

    # ---------- upload ----------
    @app.callback(
        Output("entries_store", "data"),
        Output("upload_banner", "children"),
        Input("upload", "contents"),
        State("upload", "filename"),
        State("entries_store", "data"),
        prevent_initial_call=True,
    )
    def on_upload(contents, filename, current):
        if not contents:
            return current, ""
        try:
            records = decode_upload(contents)
        except LedgerParseError as e:
            return current, html.Div(
                f"Error parsing {filename or 'file'}: {e}. Check the file.",
                style={"color": COLORS["negative_red"], "fontSize": "12px"},
            )
        new_entries = normalize_records(records)
        return entries_to_records(new_entries), html.Div(
            f"Loaded {filename}: {len(new_entries)} ledger lines.",
            style={"color": COLORS["positive_green"], "fontSize": "12px"},
        )

    # ---------- filter options ----------
    @app.callback(
        Output("year_filter", "options"),
        Output("year_filter", "value"),
        Output("period_filter", "options"),
        Output("period_filter", "value"),
        Input("entries_store", "data"),
    )
    def refresh_filters(entries_data):
        current = entries_from_records(entries_data or [])
        return _options(year_options(current)), ALL, _options(period_options(current)), ALL

    # ---------- targets ----------
    @app.callback(
        Output("targets_store", "data"),
        [Input(f"target_{f}", "value") for f in TARGET_FIELDS],
        State("targets_store", "data"),
    )
    def on_targets(*args):
        values, stored = args[:-1], args[-1]
        new = targets_from_store(stored)
        for name, value in zip(TARGET_FIELDS, values):
            new = new.with_value(name, value)
        return {f: getattr(new, f) for f in TARGET_FIELDS}

    # ---------- everything derived ----------
    @app.callback(
        Output("kpi_tiles", "children"),
        Output("pnl_table", "children"),
        Output("trend_chart", "figure"),
        Output("whatif_summary", "children"),
        Output("alerts_section", "children"),
        Output("narrative", "children"),
        Input("entries_store", "data"),
        Input("year_filter", "value"),
        Input("period_filter", "value"),
        Input("invested_capital", "value"),
        Input("client_count", "value"),
        Input("targets_store", "data"),
        [Input(f"whatif_{name}", "value") for name, _ in WHATIF_SLIDERS],
    )
    def refresh(entries_data, year, period, capital, clients, targets_data, *sliders):
        state = state_from_inputs(
            entries_data, year, period, capital, clients, targets_data, sliders,
            fold_unclassified=fold_unclassified,
        )
        result = evaluate(state)
        has_data = bool(state.entries)
        return (
            kpi_tiles(result.kpis),
            pnl_table(result.kpis),
            trend_figure(result.trend),
            whatif_summary(result.simulation),
            alert_blocks(result.alerts, has_data),
            result.narrative,
        )

    return app


def main():
    load_env_file()
    input_csv, host, port = load_settings()

    entries: Tuple[LedgerEntry, ...] = ()
    if input_csv:
        try:
            entries = normalize_records(read_ledger_records(input_csv))
            print(f"[OK] Loaded ledger: {len(entries)} entries from {input_csv}")
        except (FileNotFoundError, LedgerParseError) as e:
            print(f"[WARNING] Could not load ledger: {e}")
    else:
        print("[INFO] No ANALYSIS_INPUT_CSV set; upload a ledger from the dashboard")

    targets = targets_from_env()
    print(f"[INFO] Targets: {targets}")

    app = build_app(entries, targets=targets, fold_unclassified=fold_unclassified_from_env())
    app.run(debug=False, host=host, port=port)


if __name__ == "__main__":
    main()
