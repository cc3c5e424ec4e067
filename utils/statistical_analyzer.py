# utils/statistical_analyzer.py
import logging
from typing import Dict, List, Sequence

import pandas as pd

from utils.grouping import ensure_finite_elapsed
from utils.result_models import (
    PHASE_PRIORITY,
    Phase,
    PhaseTotals,
    SingleDatasetMetrics,
    TimedOperationRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 5

NAME_COLUMN = "operation_name"
ELAPSED_COLUMN = "elapsed_seconds"


# -----------------------------------------------
# DataFrame helpers
# -----------------------------------------------
def records_to_frame(records: Sequence[TimedOperationRecord]) -> pd.DataFrame:
    """Build a two-column frame (name, elapsed) preserving record order."""
    ensure_finite_elapsed(records)
    return pd.DataFrame(
        {
            NAME_COLUMN: pd.Series([r.operation_name for r in records], dtype="object"),
            ELAPSED_COLUMN: pd.Series([r.elapsed_seconds for r in records], dtype="float64"),
        }
    )


def phase_subset(df: pd.DataFrame, phase: Phase) -> pd.DataFrame:
    """Rows whose name contains the phase marker (literal, case-sensitive)."""
    if df.empty:
        return df
    mask = df[NAME_COLUMN].str.contains(phase.value, regex=False)
    return df[mask]


def total_elapsed(df: pd.DataFrame) -> float:
    if df.empty:
        return 0.0
    return float(df[ELAPSED_COLUMN].sum())


def phase_totals(df: pd.DataFrame) -> PhaseTotals:
    """Overall and per-phase sums of elapsed time."""
    return PhaseTotals(
        overall=total_elapsed(df),
        load=total_elapsed(phase_subset(df, Phase.LOAD)),
        run=total_elapsed(phase_subset(df, Phase.RUN)),
        save=total_elapsed(phase_subset(df, Phase.SAVE)),
    )


def phase_counts(df: pd.DataFrame) -> Dict[Phase, int]:
    """Number of records per phase marker; unmarked records are not counted."""
    return {phase: int(len(phase_subset(df, phase))) for phase in PHASE_PRIORITY}


# -----------------------------------------------
# Descriptive statistics
# -----------------------------------------------
def mean_elapsed(df: pd.DataFrame) -> float:
    """Arithmetic mean, 0.0 when there is nothing to average."""
    if df.empty:
        return 0.0
    return float(df[ELAPSED_COLUMN].mean())


def median_elapsed(df: pd.DataFrame) -> float:
    """
    Median of elapsed time, 0.0 for an empty frame.

    Even-sized inputs average the two central values after an ascending sort.
    """
    if df.empty:
        return 0.0
    return float(df[ELAPSED_COLUMN].median())


def top_slowest(records: Sequence[TimedOperationRecord], df: pd.DataFrame,
                top_n: int = DEFAULT_TOP_N) -> List[TimedOperationRecord]:
    """
    The top_n records with the greatest elapsed time, slowest first.

    Ties keep their original relative order (stable sort on elapsed only).
    """
    if df.empty or top_n <= 0:
        return []
    ranked = df.sort_values(ELAPSED_COLUMN, ascending=False, kind="stable").head(top_n)
    return [records[position] for position in ranked.index]


# -----------------------------------------------
# Single dataset analysis
# -----------------------------------------------
def compute_metrics(records: Sequence[TimedOperationRecord],
                    top_n: int = DEFAULT_TOP_N) -> SingleDatasetMetrics:
    """
    Compute the descriptive statistics of one dataset.

    Args:
        records: Validated records in upload order.
        top_n: How many of the slowest records to rank.

    Returns:
        SingleDatasetMetrics; all zeros and an empty ranking for empty input.

    Raises:
        ValueError: If any record has a non-finite elapsed time.
    """
    records = list(records)
    df = records_to_frame(records)
    load_df = phase_subset(df, Phase.LOAD)

    metrics = SingleDatasetMetrics(
        total_duration=total_elapsed(df),
        average_load_time=mean_elapsed(load_df),
        median_load_time=median_elapsed(load_df),
        counts_by_phase=phase_counts(df),
        top_slowest=top_slowest(records, df, top_n),
    )
    logger.debug(
        "Computed metrics for %d records (%d load records).", len(records), len(load_df)
    )
    return metrics
