"""
Traffic-light KPI alerts and the advisory narrative built on top of computed KPIs.
"""

from .engine import (
    GREEN,
    RED,
    YELLOW,
    Alert,
    AlertSet,
    alerts_table,
    build_alerts,
)
from .narrative import build_narrative

__all__ = [
    "GREEN",
    "RED",
    "YELLOW",
    "Alert",
    "AlertSet",
    "alerts_table",
    "build_alerts",
    "build_narrative",
]
