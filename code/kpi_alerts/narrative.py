from __future__ import annotations

from typing import List

from cfo_kpi.metrics import Kpis

NO_DATA = "Upload a ledger CSV to start the analysis."

LOW_EBITDA = (
    "EBITDA % is below 10%: operating margins are too compressed. Review the mix of "
    "pricing, variable costs and fixed structure right away."
)
HIGH_EBITDA = (
    "EBITDA % is above 20%: excellent profitability. Consider investing in growth, "
    "technology or client acquisition."
)
HEAVY_PERSONNEL = (
    "Personnel cost exceeds 40% of revenue: look into resource utilisation, "
    "automation and on-demand external staff."
)
HEAVY_VARIABLE = (
    "Variable cost incidence is high: work on supplier contracts, service "
    "standardisation and a higher average value per client."
)
NET_LOSS = (
    "Net income is negative: first bring EBITDA back into the green, then act on "
    "financial charges and taxation."
)
BALANCED = (
    "The economic structure is broadly balanced. Focus can shift to selective revenue "
    "growth and a better client mix."
)


def build_narrative(kpi: Kpis, has_data: bool = True) -> str:
    if not has_data:
        return NO_DATA

    parts: List[str] = []

    if kpi.ebitda_pct < 0.1:
        parts.append(LOW_EBITDA)
    elif kpi.ebitda_pct > 0.2:
        parts.append(HIGH_EBITDA)

    if kpi.personnel_costs > kpi.revenue * 0.4:
        parts.append(HEAVY_PERSONNEL)

    if kpi.variable_incidence > 0.5:
        parts.append(HEAVY_VARIABLE)

    if kpi.net_income < 0:
        parts.append(NET_LOSS)

    if not parts:
        parts.append(BALANCED)

    return " ".join(parts)
