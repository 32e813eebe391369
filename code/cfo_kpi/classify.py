"""
classify.py

Maps the free-text management category ("Voce gestionale") of a ledger line to
one fixed P&L bucket.

Rules are substring tests evaluated top to bottom; the first rule that matches
wins. Keywords overlap across rules ("revenue" also appears in longer labels),
so the order of RULES is part of the contract.
"""

from __future__ import annotations

from typing import Iterable, List, Tuple

import pandas as pd

from .normalize import entries_frame


# ======================================================
# TAXONOMY
# ======================================================

REVENUE = "REVENUE"
VARIABLE_COST = "VARIABLE_COST"
FIXED_COST = "FIXED_COST"
COMMERCIAL_COST = "COMMERCIAL_COST"
PERSONNEL_COST = "PERSONNEL_COST"
OVERHEAD_COST = "OVERHEAD_COST"
DEPRECIATION = "DEPRECIATION"
FINANCIAL_RESULT = "FINANCIAL_RESULT"
TAXES = "TAXES"
UNCLASSIFIED = "UNCLASSIFIED"

BUCKETS = (
    REVENUE,
    VARIABLE_COST,
    FIXED_COST,
    COMMERCIAL_COST,
    PERSONNEL_COST,
    OVERHEAD_COST,
    DEPRECIATION,
    FINANCIAL_RESULT,
    TAXES,
    UNCLASSIFIED,
)

_BUCKET_ORDER = {bucket: i for i, bucket in enumerate(BUCKETS)}

# Labels that mean "no category given"; folded into revenue unless disabled.
UNCLASSIFIED_KEYWORDS = ("unclassified", "non classificato")

Rule = Tuple[Tuple[str, ...], str]


def build_rules(fold_unclassified: bool = True) -> List[Rule]:
    revenue_keywords: Tuple[str, ...] = (
        "operating revenue",
        "revenue",
        "ricavi operativi",
        "ricavi",
    )
    if fold_unclassified:
        revenue_keywords = revenue_keywords + UNCLASSIFIED_KEYWORDS

    return [
        (revenue_keywords, REVENUE),
        (("variable costs", "costi variabili"), VARIABLE_COST),
        (("fixed costs", "costi fissi"), FIXED_COST),
        (("commercial costs", "costi commerciali"), COMMERCIAL_COST),
        (("personnel costs", "costi del personale"), PERSONNEL_COST),
        (("general costs", "costi generali"), OVERHEAD_COST),
        (("depreciation/amortization", "ammortamenti"), DEPRECIATION),
        (("financial income/", "financial expense", "proventi/", "oneri finan"), FINANCIAL_RESULT),
        (("taxes", "imposte"), TAXES),
    ]


RULES: List[Rule] = build_rules()


def classify_category(label: object, rules: Iterable[Rule] = RULES) -> str:
    text = str(label).lower() if label is not None else ""
    for keywords, bucket in rules:
        if any(k in text for k in keywords):
            return bucket
    return UNCLASSIFIED


def classification_summary(entries, rules: Iterable[Rule] = RULES) -> pd.DataFrame:
    """
    One row per distinct category label: the bucket it landed in, how many
    ledger lines carry it and their summed amount.

    Rows follow BUCKETS order; labels within a bucket keep first-seen order.
    """
    rules = list(rules)
    df = entries_frame(entries)
    if df.empty:
        return pd.DataFrame(columns=["Category", "Bucket", "Rows", "Amount"])

    df["Bucket"] = [classify_category(label, rules) for label in df["category_label"]]
    out = (
        df.groupby(["category_label", "Bucket"], sort=False)
          .agg(Rows=("amount", "size"), Amount=("amount", "sum"))
          .reset_index()
          .rename(columns={"category_label": "Category"})
    )
    out["_order"] = out["Bucket"].map(_BUCKET_ORDER)
    out = out.sort_values("_order", kind="stable").drop(columns="_order")
    return out.reset_index(drop=True)
