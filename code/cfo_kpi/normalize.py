"""
normalize.py

Turns raw ledger records (one dict per CSV row, any column naming) into
canonical LedgerEntry values.

Column naming drifts between exports (Italian management reports, English
templates, lowercase variants), so every canonical field is resolved from an
ordered alias list: the first alias holding a non-blank value wins.

Amounts follow the European convention: "." groups thousands, "," separates
decimals. A malformed amount becomes 0.0; a row is never rejected for it.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd


WHOLE_YEAR = "YEAR"
DEFAULT_CATEGORY = "UNCLASSIFIED"

CODE_ALIASES = ("Codice CE", "Codice", "Codice_CE", "codice", "Code", "code")
DESCRIPTION_ALIASES = ("Descrizione CE", "Descrizione", "Descrizione_CE", "descrizione", "Description", "description")
AMOUNT_ALIASES = ("Importo", "Valore", "Amount", "importo", "amount")
CATEGORY_ALIASES = ("Voce gestionale", "Categoria", "Categoria CE", "categoria", "Category", "category")
YEAR_ALIASES = ("Anno", "Year", "anno", "year")
PERIOD_ALIASES = ("Periodo", "Quarter", "periodo", "Period", "period")

# Leading float literal, as a lenient parser would read it ("12.5abc" -> 12.5)
_FLOAT_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


@dataclass(frozen=True)
class LedgerEntry:
    code: str
    description: str
    amount: float
    category_label: str
    year: str
    period: str


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _first_present(record: Mapping[str, object], aliases: Tuple[str, ...]) -> Optional[object]:
    for alias in aliases:
        value = record.get(alias)
        if not _is_blank(value):
            return value
    return None


def _as_text(value: object, default: str = "") -> str:
    if _is_blank(value):
        return default
    return str(value).strip()


def parse_amount(value: object) -> float:
    """
    Parse a European-formatted amount ("1.234,56") into a finite float.

    None, NaN, blanks and unparseable text all yield 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, np.integer, np.floating)):
        num = float(value)
        return num if math.isfinite(num) else 0.0

    s = str(value).strip()
    if not s:
        return 0.0

    s = s.replace(".", "").replace(",", ".", 1)
    m = _FLOAT_PREFIX.match(s)
    if not m:
        return 0.0
    try:
        num = float(m.group(0))
    except ValueError:
        return 0.0
    return num if math.isfinite(num) else 0.0


def normalize_row(record: Mapping[str, object]) -> Optional[LedgerEntry]:
    """
    Build a LedgerEntry from one raw record, or None when the row carries no
    code, no description and a zero amount.
    """
    code = _as_text(_first_present(record, CODE_ALIASES))
    description = _as_text(_first_present(record, DESCRIPTION_ALIASES))
    amount = parse_amount(_first_present(record, AMOUNT_ALIASES))
    category = _as_text(_first_present(record, CATEGORY_ALIASES), DEFAULT_CATEGORY)
    year = _as_text(_first_present(record, YEAR_ALIASES))
    period = _as_text(_first_present(record, PERIOD_ALIASES), WHOLE_YEAR)

    if not code and not description and not amount:
        return None

    return LedgerEntry(
        code=code,
        description=description,
        amount=amount,
        category_label=category,
        year=year,
        period=period,
    )


def normalize_records(records: Iterable[Mapping[str, object]]) -> Tuple[LedgerEntry, ...]:
    entries = (normalize_row(r) for r in records)
    return tuple(e for e in entries if e is not None)


def entries_to_records(entries: Iterable[LedgerEntry]) -> List[dict]:
    """Plain dicts for JSON stores (dcc.Store) and DataFrames."""
    return [
        {
            "code": e.code,
            "description": e.description,
            "amount": e.amount,
            "category_label": e.category_label,
            "year": e.year,
            "period": e.period,
        }
        for e in entries
    ]


def entries_from_records(records: Iterable[Mapping[str, object]]) -> Tuple[LedgerEntry, ...]:
    """Inverse of entries_to_records; the records are already canonical."""
    return tuple(
        LedgerEntry(
            code=str(r.get("code", "")),
            description=str(r.get("description", "")),
            amount=parse_amount(r.get("amount")),
            category_label=str(r.get("category_label", DEFAULT_CATEGORY)),
            year=str(r.get("year", "")),
            period=str(r.get("period", WHOLE_YEAR)),
        )
        for r in records
    )


def entries_frame(entries: Iterable[LedgerEntry]) -> pd.DataFrame:
    return pd.DataFrame(
        entries_to_records(entries),
        columns=["code", "description", "amount", "category_label", "year", "period"],
    )
