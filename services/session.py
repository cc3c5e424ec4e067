"""
Per-upload session values.

Each upload produces a new immutable DatasetSession; a comparison holds two
of them. Re-uploading a side replaces that side's session instead of
mutating it, so derived data can never outlive the records it came from.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

from utils.comparison_analyzer import (
    CRITICAL_THRESHOLD_PCT,
    WARNING_THRESHOLD_PCT,
    compare,
    filter_by_name,
)
from utils.file_processor import ParseError, load_results_file, parse_results_csv
from utils.grouping import DEFAULT_SUBJECT_DELIMITER, group_by_subject
from utils.result_models import (
    ComparisonMetrics,
    SingleDatasetMetrics,
    SubjectSummary,
    TimedOperationRecord,
)
from utils.statistical_analyzer import DEFAULT_TOP_N, compute_metrics

UNKNOWN_VERSION = "Unknown"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class SessionStatus(Enum):
    """Upload workflow status."""
    IDLE = "idle"
    ANALYZED = "analyzed"
    ERROR = "error"


def dataset_version(records: List[TimedOperationRecord]) -> str:
    """Version label of a dataset, taken from its first record."""
    if not records:
        return UNKNOWN_VERSION
    return records[0].version or UNKNOWN_VERSION


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DatasetSession:
    source_name: str = ""
    records: Tuple[TimedOperationRecord, ...] = ()
    summaries: Tuple[SubjectSummary, ...] = ()
    version_label: str = UNKNOWN_VERSION
    status: SessionStatus = SessionStatus.IDLE
    error: Optional[str] = None

    @classmethod
    def from_upload(cls, source: Union[bytes, str, Path], source_name: str = "",
                    delimiter: str = DEFAULT_SUBJECT_DELIMITER) -> "DatasetSession":
        """
        Parse an uploaded CSV and build a fresh session from it.

        A parse failure yields an ERROR session carrying the message instead
        of raising, mirroring how the upload form reports it.

        Raises:
            FileNotFoundError: If source is a Path that does not exist.
        """
        loader = load_results_file if isinstance(source, Path) else parse_results_csv
        try:
            records = loader(source)
        except ParseError as e:
            return cls(source_name=source_name, status=SessionStatus.ERROR,
                       error=f"CSV Parse Error: {e}")
        return cls.from_records(records, source_name, delimiter)

    @classmethod
    def from_records(cls, records: List[TimedOperationRecord], source_name: str = "",
                     delimiter: str = DEFAULT_SUBJECT_DELIMITER) -> "DatasetSession":
        records = list(records)
        return cls(
            source_name=source_name,
            records=tuple(records),
            summaries=tuple(group_by_subject(records, delimiter)),
            version_label=dataset_version(records),
            status=SessionStatus.ANALYZED,
        )

    @property
    def is_analyzed(self) -> bool:
        return self.status is SessionStatus.ANALYZED

    def metrics(self, top_n: int = DEFAULT_TOP_N) -> SingleDatasetMetrics:
        """Recomputed on every call."""
        return compute_metrics(self.records, top_n)

    def filter(self, search_term: str) -> List[TimedOperationRecord]:
        return filter_by_name(self.records, search_term)


@dataclass(frozen=True)
class ComparisonSession:
    baseline: DatasetSession = field(default_factory=DatasetSession)
    candidate: DatasetSession = field(default_factory=DatasetSession)

    def with_baseline(self, session: DatasetSession) -> "ComparisonSession":
        return replace(self, baseline=session)

    def with_candidate(self, session: DatasetSession) -> "ComparisonSession":
        return replace(self, candidate=session)

    @property
    def is_ready(self) -> bool:
        return self.baseline.is_analyzed and self.candidate.is_analyzed

    @property
    def error(self) -> Optional[str]:
        """First error of either side, baseline first."""
        return self.baseline.error or self.candidate.error

    def metrics(self, warning_pct: float = WARNING_THRESHOLD_PCT,
                critical_pct: float = CRITICAL_THRESHOLD_PCT) -> Optional[ComparisonMetrics]:
        """
        Comparison of candidate against baseline, or None until both sides
        are analyzed and non-empty.
        """
        if not self.is_ready:
            return None
        return compare(self.baseline.records, self.candidate.records,
                       warning_pct=warning_pct, critical_pct=critical_pct)
