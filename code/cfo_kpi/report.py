from pathlib import Path
from typing import Dict, List

import pandas as pd

from .config import Settings

# Excel caps sheet names at 31 characters
_SHEET_NAME_MAX = 31


def save_csv(df: pd.DataFrame, path: Path) -> None:
    df.to_csv(path, index=False)


def save_excel(tables: Dict[str, pd.DataFrame], path: Path) -> None:
    """One sheet per table, columns widened to fit their longest cell."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for name, df in tables.items():
            sheet = name[:_SHEET_NAME_MAX]
            df.to_excel(writer, sheet_name=sheet, index=False)
            ws = writer.sheets[sheet]
            for idx, col in enumerate(df.columns, start=1):
                cells = [str(col)] + [str(v) for v in df[col].tolist()]
                width = min(max(len(c) for c in cells) + 2, 80)
                ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width


def write_report(tables: Dict[str, pd.DataFrame], s: Settings) -> List[Path]:
    """Write every table to tables/<name>.csv plus the combined workbook."""
    written = []
    for name, df in tables.items():
        path = s.table_path(name)
        save_csv(df, path)
        written.append(path)

    save_excel(tables, s.workbook)
    written.append(s.workbook)
    return written
