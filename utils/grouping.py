# utils/grouping.py
"""
Phase classification and per-subject grouping of timed-operation records.

Operation names follow the '<subject>_<rest>' convention, where <rest>
carries one of the case-sensitive phase markers 'Load', 'Run' or 'Save'.
"""

import logging
import math
from typing import Dict, Iterable, List, Sequence

from utils.result_models import (
    PHASE_PRIORITY,
    Phase,
    SubjectSummary,
    TimedOperationRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT_DELIMITER = "_"

_PHASE_FIELDS = {
    Phase.LOAD: "load_time",
    Phase.RUN: "run_time",
    Phase.SAVE: "save_time",
}


# -----------------------------------------------
# Name helpers
# -----------------------------------------------
def has_phase_marker(operation_name: str, phase: Phase) -> bool:
    """Plain substring test, no word boundaries."""
    return phase.value in operation_name


def classify_phase(operation_name: str) -> Phase:
    """
    Return the first phase whose marker occurs in the name.

    Markers are tested in the fixed order Load, Run, Save, so a name such as
    'ReloadRun' is a Load operation.
    """
    for phase in PHASE_PRIORITY:
        if has_phase_marker(operation_name, phase):
            return phase
    return Phase.UNCLASSIFIED


def subject_id_of(operation_name: str, delimiter: str = DEFAULT_SUBJECT_DELIMITER) -> str:
    """Prefix of the name before the first delimiter (whole name if absent)."""
    return operation_name.split(delimiter, 1)[0]


def ensure_finite_elapsed(records: Iterable[TimedOperationRecord]) -> None:
    """
    Reject records whose elapsed time cannot be aggregated.

    Raises:
        ValueError: If any elapsed_seconds is not a finite number.
    """
    for index, record in enumerate(records):
        value = record.elapsed_seconds
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(
                f"Record {index} ('{record.operation_name}') has a non-finite "
                f"elapsed time: {value!r}"
            )


# -----------------------------------------------
# Grouping
# -----------------------------------------------
def group_by_subject(records: Sequence[TimedOperationRecord],
                     delimiter: str = DEFAULT_SUBJECT_DELIMITER) -> List[SubjectSummary]:
    """
    Fold records into one summary per subject.

    Subjects appear in first-seen order. For each record the first matching
    phase field is overwritten, so when a subject has several records for the
    same phase only the last one survives. Records without a phase marker
    still create their subject but leave all three times untouched.

    Args:
        records: Records in upload order.
        delimiter: Separator between the subject id and the rest of the name.

    Returns:
        List of SubjectSummary, empty for empty input.
    """
    ensure_finite_elapsed(records)

    # subject id -> {phase field: elapsed}, in first-seen order
    grouped: Dict[str, Dict[str, float]] = {}
    for record in records:
        times = grouped.setdefault(subject_id_of(record.operation_name, delimiter), {})

        phase = classify_phase(record.operation_name)
        if phase is not Phase.UNCLASSIFIED:
            times[_PHASE_FIELDS[phase]] = float(record.elapsed_seconds)

    logger.debug("Grouped %d records into %d subjects.", len(records), len(grouped))
    return [SubjectSummary(subject_id=subject_id, **times) for subject_id, times in grouped.items()]
