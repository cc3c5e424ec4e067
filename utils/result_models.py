# utils/result_models.py
"""
Shared data shapes for timed-operation results.

Records come from the results CSV (one row per timed operation). Everything
else in this module is derived from a sequence of records by the grouping,
metrics and comparison engines, and is rebuilt from scratch on every upload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class Phase(Enum):
    """Category of a timed operation, inferred from a marker in its name."""
    LOAD = "Load"
    RUN = "Run"
    SAVE = "Save"
    UNCLASSIFIED = "unclassified"


# Markers are tested in this order; the first hit wins.
PHASE_PRIORITY = (Phase.LOAD, Phase.RUN, Phase.SAVE)


class Severity(Enum):
    """Band for the magnitude of a percentage difference."""
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class TimedOperationRecord:
    operation_name: str
    elapsed_seconds: float
    timestamp: str = ""
    machine_name: str = ""
    version: str = ""
    method: str = ""


@dataclass(frozen=True)
class SubjectSummary:
    subject_id: str
    load_time: float = 0.0
    run_time: float = 0.0
    save_time: float = 0.0


@dataclass(frozen=True)
class SingleDatasetMetrics:
    total_duration: float
    average_load_time: float
    median_load_time: float
    counts_by_phase: Dict[Phase, int]
    top_slowest: List[TimedOperationRecord]


@dataclass(frozen=True)
class PhaseTotals:
    """Summed elapsed time of one dataset, overall and per phase."""
    overall: float
    load: float
    run: float
    save: float


@dataclass(frozen=True)
class Differences:
    """Percentage change of the candidate relative to the baseline."""
    overall: float
    load: float
    save: float


@dataclass(frozen=True)
class DifferenceSeverities:
    overall: Optional[Severity]
    load: Optional[Severity]
    save: Optional[Severity]


@dataclass(frozen=True)
class PairedTest:
    name: str
    phase: Phase
    time_a: float
    time_b: float
    delta: float


@dataclass(frozen=True)
class ChartPoint:
    name: str
    baseline: float
    candidate: float


@dataclass(frozen=True)
class ComparisonMetrics:
    baseline_totals: PhaseTotals
    candidate_totals: PhaseTotals
    baseline_counts: Dict[Phase, int]
    candidate_counts: Dict[Phase, int]
    differences: Differences
    severities: DifferenceSeverities
    absolute_differences: PhaseTotals
    count_mismatch: Dict[Phase, bool]
    significant_deviation: bool
    paired_tests: List[PairedTest] = field(default_factory=list)
