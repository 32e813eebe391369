import os
from io import StringIO
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
from dotenv import load_dotenv

from .config import Settings, build_settings


class LedgerParseError(ValueError):
    """Raised when a ledger source cannot be read as tabular data at all."""
    pass


def load_env_file() -> None:
    """
    Load a .env file if present: current working directory first, then the
    directory holding the scripts. Real environment variables win.
    """
    cwd_env = Path.cwd() / ".env"
    script_env = Path(__file__).resolve().parents[1] / ".env"

    if cwd_env.exists():
        load_dotenv(dotenv_path=cwd_env, override=False)
    elif script_env.exists():
        load_dotenv(dotenv_path=script_env, override=False)


def load_settings(input_csv: Optional[str] = None, output_dir: Optional[str] = None) -> Settings:
    """CLI arguments first, then the environment (.env included)."""
    load_env_file()
    values = {
        "ANALYSIS_INPUT_CSV": input_csv or os.getenv("ANALYSIS_INPUT_CSV"),
        "ANALYSIS_OUTPUT_DIR": output_dir or os.getenv("ANALYSIS_OUTPUT_DIR"),
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ValueError(f"Missing required setting(s): {', '.join(missing)}")
    return build_settings(values["ANALYSIS_INPUT_CSV"], values["ANALYSIS_OUTPUT_DIR"])


def ensure_dirs(s: Settings):
    for d in s.report_dirs:
        d.mkdir(parents=True, exist_ok=True)


def _sniff_delimiter(text: str) -> str:
    """Pick the delimiter from the header line, which never holds decimal commas."""
    header = next((line for line in text.splitlines() if line.strip()), "")
    counts = {d: header.count(d) for d in (";", "\t", ",")}
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


def parse_ledger_text(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into string-keyed records. Every cell stays a string; blank
    lines are skipped. Amount parsing happens later, row by row.

    Columns stay aligned with the header: a trailing delimiter on data rows
    adds a field that is discarded, never shifted into an index.
    """
    if not text.strip():
        raise LedgerParseError("Ledger file is empty")

    try:
        df = pd.read_csv(
            StringIO(text),
            sep=_sniff_delimiter(text),
            index_col=False,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise LedgerParseError(f"Could not parse ledger CSV: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    if df.columns.empty:
        raise LedgerParseError("Ledger CSV has no header row")
    return df.to_dict("records")


def parse_ledger_bytes(content: bytes) -> List[Dict[str, str]]:
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        try:
            text = content.decode("cp1252")
        except UnicodeDecodeError as e:
            raise LedgerParseError(f"Ledger file is not valid text: {e}") from e
    return parse_ledger_text(text)


def read_ledger_records(path: Path) -> List[Dict[str, str]]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Ledger file not found: {path}")
    return parse_ledger_bytes(path.read_bytes())
