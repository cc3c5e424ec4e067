# utils/file_processor.py
import io
import logging
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from utils.result_models import TimedOperationRecord

logger = logging.getLogger(__name__)

# CSV header -> record field
COLUMN_MAP = {
    "Page": "operation_name",
    "Date": "timestamp",
    "Computer Name": "machine_name",
    "Version": "version",
    "Method": "method",
    "Time(Seconds)": "elapsed_seconds",
}
REQUIRED_COLUMNS = ["Page", "Time(Seconds)"]

# Row numbers listed in an error message before truncating
MAX_REPORTED_ROWS = 10


class ParseError(ValueError):
    """The results CSV could not be decoded into records."""


# -----------------------------------------------
# File loading functions
# -----------------------------------------------
def _read_frame(source: Union[bytes, str, Path]) -> pd.DataFrame:
    """Read every column as text; blank lines are skipped."""
    if isinstance(source, Path):
        buffer = source
    elif isinstance(source, bytes):
        buffer = io.BytesIO(source)
    else:
        buffer = io.StringIO(source)

    try:
        return pd.read_csv(buffer, dtype=str, keep_default_na=False, skip_blank_lines=True)
    except pd.errors.EmptyDataError:
        raise ParseError("CSV input is empty")
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ParseError(f"CSV input could not be read: {e}")


def _format_rows(rows: List[int]) -> str:
    shown = ", ".join(str(r) for r in rows[:MAX_REPORTED_ROWS])
    if len(rows) > MAX_REPORTED_ROWS:
        shown += f" (+{len(rows) - MAX_REPORTED_ROWS} more)"
    return shown


def parse_results_csv(source: Union[bytes, str, Path]) -> List[TimedOperationRecord]:
    """
    Decode a results CSV into timed-operation records.

    Args:
        source: Raw bytes, CSV text, or a path to a CSV file.

    Returns:
        Records in file order.

    Raises:
        ParseError: If the input is unreadable, lacks the 'Page' or
            'Time(Seconds)' column, or has rows with a blank name or a
            missing, non-numeric or negative time. Row numbers in the
            message are 1-based data rows (the header is not counted).
    """
    df = _read_frame(source).fillna("")
    df.columns = [str(c).strip() for c in df.columns]

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ParseError(f"Missing required column(s): {', '.join(missing)}")

    # Names are kept verbatim; stripping only detects blank ones
    names = df["Page"]
    blank_rows = [i + 1 for i, name in enumerate(names.str.strip()) if not name]
    if blank_rows:
        raise ParseError(f"Blank 'Page' value in row(s): {_format_rows(blank_rows)}")

    elapsed = pd.to_numeric(df["Time(Seconds)"].str.strip(), errors="coerce").astype("float64")
    invalid = ~np.isfinite(elapsed.to_numpy()) | (elapsed.to_numpy() < 0)
    bad_rows = [int(i) + 1 for i in np.flatnonzero(invalid)]
    if bad_rows:
        raise ParseError(
            f"Invalid 'Time(Seconds)' value in row(s): {_format_rows(bad_rows)}"
        )

    def text_column(header: str) -> List[str]:
        if header not in df.columns:
            return [""] * len(df)
        return df[header].tolist()

    records = [
        TimedOperationRecord(
            operation_name=name,
            elapsed_seconds=float(value),
            timestamp=timestamp,
            machine_name=machine,
            version=version,
            method=method,
        )
        for name, value, timestamp, machine, version, method in zip(
            names.tolist(),
            elapsed.tolist(),
            text_column("Date"),
            text_column("Computer Name"),
            text_column("Version"),
            text_column("Method"),
        )
    ]
    logger.debug("Parsed %d records.", len(records))
    return records


def load_results_file(file_path: Path) -> List[TimedOperationRecord]:
    """Load records from a CSV file on disk."""
    if not file_path.exists():
        raise FileNotFoundError(f"Results file not found: {file_path}")
    return parse_results_csv(file_path)
