from __future__ import annotations

from typing import Optional

NOT_AVAILABLE = "N/A"


def format_euro(value: float) -> str:
    """Italian-style currency: 1.234.567,89 €"""
    s = f"{value:,.2f}"
    s = s.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{s} €"


def format_pct(ratio: float, decimals: int = 1) -> str:
    """Render a fraction as a percentage: 0.305 -> '30.5 %'."""
    return f"{ratio * 100:.{decimals}f} %"


def format_optional_pct(ratio: Optional[float], missing: str = NOT_AVAILABLE) -> str:
    return missing if ratio is None else format_pct(ratio)


def format_optional_euro(value: Optional[float], missing: str = NOT_AVAILABLE) -> str:
    return missing if value is None else format_euro(value)
