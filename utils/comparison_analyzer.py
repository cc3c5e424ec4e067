# utils/comparison_analyzer.py
"""
Baseline vs. candidate comparison of two result datasets.

The baseline (A) and candidate (B) are joined on exact operation name,
totals are computed independently per side, and the relative change of B
against A is banded into ok / warning / critical.
"""

import logging
import math
from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Dict, List, Optional, Sequence

from utils.grouping import classify_phase, ensure_finite_elapsed, has_phase_marker
from utils.result_models import (
    PHASE_PRIORITY,
    ChartPoint,
    ComparisonMetrics,
    DifferenceSeverities,
    Differences,
    PairedTest,
    Phase,
    PhaseTotals,
    Severity,
    TimedOperationRecord,
)
from utils.statistical_analyzer import phase_counts, phase_totals, records_to_frame

logger = logging.getLogger(__name__)

WARNING_THRESHOLD_PCT = 10.0
CRITICAL_THRESHOLD_PCT = 20.0

# Sort rank for the paired-test table
_PHASE_ORDER = {phase: rank for rank, phase in enumerate(PHASE_PRIORITY + (Phase.UNCLASSIFIED,))}


# ===== CALCULATION HELPERS =====

def round_half_away(value: float, places: int = 2) -> float:
    """
    Round on the exact binary value, halves away from zero.

    Non-finite values pass through unchanged.
    """
    if not math.isfinite(value):
        return value
    exact = Decimal(value)
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as context:
        # quantize needs every integer digit plus the kept decimals
        context.prec = max(context.prec, exact.adjusted() + places + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


def percentage_difference(baseline_sum: float, candidate_sum: float) -> float:
    """
    Percentage change of candidate_sum relative to baseline_sum.

    A zero baseline is not special-cased beyond IEEE division: the result is
    nan when both sums are zero and signed infinity otherwise. Callers must
    check math.isfinite before using the value.
    """
    if baseline_sum == 0:
        if candidate_sum == 0:
            return math.nan
        return math.copysign(math.inf, candidate_sum)
    return round_half_away((candidate_sum / baseline_sum - 1) * 100)


def classify_severity(difference_pct: float,
                      warning_pct: float = WARNING_THRESHOLD_PCT,
                      critical_pct: float = CRITICAL_THRESHOLD_PCT) -> Optional[Severity]:
    """
    Band the magnitude of a percentage difference.

    Returns None for nan/inf, which have no meaningful band.
    """
    if difference_pct is None or not math.isfinite(difference_pct):
        return None
    magnitude = abs(difference_pct)
    if magnitude > critical_pct:
        return Severity.CRITICAL
    if magnitude > warning_pct:
        return Severity.WARNING
    return Severity.OK


def is_significant_deviation(differences: Differences,
                             critical_pct: float = CRITICAL_THRESHOLD_PCT) -> bool:
    """
    True when any difference shows a slowdown above critical_pct.

    A phase missing from the baseline but present in the candidate (+inf)
    alerts; nan never does.
    """
    values = (differences.overall, differences.load, differences.save)
    return any(not math.isnan(v) and v > critical_pct for v in values)


def count_mismatches(baseline_counts: Dict[Phase, int],
                     candidate_counts: Dict[Phase, int]) -> Dict[Phase, bool]:
    return {
        phase: baseline_counts.get(phase, 0) != candidate_counts.get(phase, 0)
        for phase in PHASE_PRIORITY
    }


# ===== JOIN =====

def _first_match_index(records: Sequence[TimedOperationRecord]) -> Dict[str, TimedOperationRecord]:
    """Name -> first record carrying that name."""
    index: Dict[str, TimedOperationRecord] = {}
    for record in records:
        index.setdefault(record.operation_name, record)
    return index


def pair_tests(baseline: Sequence[TimedOperationRecord],
               candidate: Sequence[TimedOperationRecord]) -> List[PairedTest]:
    """
    Join baseline records to candidate records by exact operation name.

    When the candidate holds duplicate names the first one is used. Baseline
    records with no match, and candidate-only records, are left out. The
    table is ordered by phase (Load, Run, Save, unclassified) and then name.
    """
    lookup = _first_match_index(candidate)
    paired: List[PairedTest] = []
    for record_a in baseline:
        record_b = lookup.get(record_a.operation_name)
        if record_b is None:
            continue
        time_a = float(record_a.elapsed_seconds)
        time_b = float(record_b.elapsed_seconds)
        paired.append(PairedTest(
            name=record_a.operation_name,
            phase=classify_phase(record_a.operation_name),
            time_a=time_a,
            time_b=time_b,
            delta=time_b - time_a,
        ))

    paired.sort(key=lambda test: (_PHASE_ORDER[test.phase], test.name))
    return paired


def degraded_tests(paired: Sequence[PairedTest]) -> List[PairedTest]:
    """Paired tests that got slower in the candidate, in table order."""
    return [test for test in paired if test.time_b > test.time_a]


def filter_by_name(records: Sequence[TimedOperationRecord], search_term: str) -> List[TimedOperationRecord]:
    """Records whose name contains search_term, ignoring case."""
    needle = (search_term or "").lower()
    return [r for r in records if needle in r.operation_name.lower()]


def phase_comparison_series(baseline: Sequence[TimedOperationRecord],
                            candidate: Sequence[TimedOperationRecord],
                            phase: Phase,
                            search_term: str = "") -> List[ChartPoint]:
    """
    Side-by-side times for one phase, slowest baseline first.

    Selection uses the plain marker test, so a name carrying two markers
    appears in both series.
    """
    ensure_finite_elapsed(baseline)
    ensure_finite_elapsed(candidate)
    lookup = _first_match_index(candidate)

    points: List[ChartPoint] = []
    for record_a in filter_by_name(baseline, search_term):
        if not has_phase_marker(record_a.operation_name, phase):
            continue
        record_b = lookup.get(record_a.operation_name)
        if record_b is None:
            continue
        points.append(ChartPoint(
            name=record_a.operation_name,
            baseline=float(record_a.elapsed_seconds),
            candidate=float(record_b.elapsed_seconds),
        ))

    points.sort(key=lambda point: point.baseline, reverse=True)
    return points


# ===== COMPARISON =====

def compare(baseline: Sequence[TimedOperationRecord],
            candidate: Sequence[TimedOperationRecord],
            warning_pct: float = WARNING_THRESHOLD_PCT,
            critical_pct: float = CRITICAL_THRESHOLD_PCT) -> Optional[ComparisonMetrics]:
    """
    Compare a candidate dataset against a baseline.

    Args:
        baseline: Records of the reference run (A).
        candidate: Records of the run under evaluation (B).
        warning_pct: Lower bound (exclusive) of the warning band.
        critical_pct: Lower bound (exclusive) of the critical band.

    Returns:
        ComparisonMetrics, or None when either side is empty.

    Raises:
        ValueError: If any record has a non-finite elapsed time.
    """
    baseline = list(baseline)
    candidate = list(candidate)
    if not baseline or not candidate:
        logger.debug("Comparison skipped: baseline=%d, candidate=%d records.",
                     len(baseline), len(candidate))
        return None

    df_a = records_to_frame(baseline)
    df_b = records_to_frame(candidate)

    totals_a = phase_totals(df_a)
    totals_b = phase_totals(df_b)
    counts_a = phase_counts(df_a)
    counts_b = phase_counts(df_b)

    differences = Differences(
        overall=percentage_difference(totals_a.overall, totals_b.overall),
        load=percentage_difference(totals_a.load, totals_b.load),
        save=percentage_difference(totals_a.save, totals_b.save),
    )
    severities = DifferenceSeverities(
        overall=classify_severity(differences.overall, warning_pct, critical_pct),
        load=classify_severity(differences.load, warning_pct, critical_pct),
        save=classify_severity(differences.save, warning_pct, critical_pct),
    )
    absolute = PhaseTotals(
        overall=totals_b.overall - totals_a.overall,
        load=totals_b.load - totals_a.load,
        run=totals_b.run - totals_a.run,
        save=totals_b.save - totals_a.save,
    )
    paired = pair_tests(baseline, candidate)

    logger.debug("Compared %d baseline and %d candidate records; %d paired.",
                 len(baseline), len(candidate), len(paired))

    return ComparisonMetrics(
        baseline_totals=totals_a,
        candidate_totals=totals_b,
        baseline_counts=counts_a,
        candidate_counts=counts_b,
        differences=differences,
        severities=severities,
        absolute_differences=absolute,
        count_mismatch=count_mismatches(counts_a, counts_b),
        significant_deviation=is_significant_deviation(differences, critical_pct),
        paired_tests=paired,
    )
