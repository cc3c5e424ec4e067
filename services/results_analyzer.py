# services/results_analyzer.py
import math
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Optional

from fastmcp import Context     # ✅ FastMCP 2.x import

from services.session import ComparisonSession, DatasetSession, SessionStatus
from utils.comparison_analyzer import (
    CRITICAL_THRESHOLD_PCT,
    WARNING_THRESHOLD_PCT,
    classify_severity,
    degraded_tests,
    phase_comparison_series,
)
from utils.config import load_config
from utils.grouping import DEFAULT_SUBJECT_DELIMITER
from utils.result_models import (
    PHASE_PRIORITY,
    ChartPoint,
    ComparisonMetrics,
    PairedTest,
    Phase,
    Severity,
    SingleDatasetMetrics,
    SubjectSummary,
    TimedOperationRecord,
)
from utils.statistical_analyzer import DEFAULT_TOP_N

# Load configuration globally
CONFIG = load_config()


def _compare_config() -> Dict[str, Any]:
    return CONFIG.get('perf_compare', {})


def _severity_thresholds() -> Dict[str, float]:
    severity = _compare_config().get('severity', {})
    return {
        "warning_pct": severity.get('warning_pct', WARNING_THRESHOLD_PCT),
        "critical_pct": severity.get('critical_pct', CRITICAL_THRESHOLD_PCT),
    }


# -----------------------------------------------
# Main Functions for the PerfCompare MCP
# -----------------------------------------------
async def analyze_results_file(csv_path: str, ctx: Context) -> Dict[str, Any]:
    """
    Analyze a single results CSV.

    Args:
        csv_path: Path to the CSV (relative paths resolve against general.data_path)
        ctx: FastMCP workflow context

    Returns:
        Dictionary with metrics, per-subject summaries and the version label
    """
    try:
        await ctx.info(f"Starting results analysis for {csv_path}")

        session, error = await _load_session(csv_path, ctx)
        if error:
            return error

        if not session.records:
            await ctx.warning(f"{session.source_name} contains no records")

        metrics = session.metrics(_compare_config().get('top_n', DEFAULT_TOP_N))

        await ctx.info(f"Results analysis completed for {len(session.records)} records "
                       f"across {len(session.summaries)} subjects")
        return {
            "status": "success",
            "source": session.source_name,
            "version": session.version_label,
            "record_count": len(session.records),
            "metrics": metrics_to_dict(metrics),
            "subjects": [summary_to_dict(s) for s in session.summaries],
        }

    except Exception as e:
        error_msg = f"Results analysis failed: {str(e)}"
        await ctx.error(error_msg)
        return {"error": error_msg, "status": "failed"}


async def group_results_file(csv_path: str, ctx: Context) -> Dict[str, Any]:
    """
    Group a results CSV into Load/Run/Save times per subject.
    """
    try:
        session, error = await _load_session(csv_path, ctx)
        if error:
            return error

        await ctx.info(f"Grouped {len(session.records)} records into {len(session.summaries)} subjects")
        return {
            "status": "success",
            "source": session.source_name,
            "version": session.version_label,
            "subjects": [summary_to_dict(s) for s in session.summaries],
        }

    except Exception as e:
        error_msg = f"Grouping failed: {str(e)}"
        await ctx.error(error_msg)
        return {"error": error_msg, "status": "failed"}


async def compare_results_files(baseline_csv_path: str, candidate_csv_path: str,
                                search_term: str, ctx: Context) -> Dict[str, Any]:
    """
    Compare a candidate results CSV against a baseline results CSV.

    Args:
        baseline_csv_path: Path to the reference run CSV
        candidate_csv_path: Path to the run under evaluation
        search_term: Optional case-insensitive name filter for the chart series
        ctx: FastMCP workflow context

    Returns:
        Dictionary with totals, differences, severity bands, mismatch flags,
        the paired-test table and per-phase chart series
    """
    try:
        await ctx.info(f"Starting comparison: {baseline_csv_path} vs {candidate_csv_path}")

        baseline, error = await _load_session(baseline_csv_path, ctx)
        if error:
            return error
        candidate, error = await _load_session(candidate_csv_path, ctx)
        if error:
            return error

        session = ComparisonSession().with_baseline(baseline).with_candidate(candidate)
        metrics = session.metrics(**_severity_thresholds())

        result: Dict[str, Any] = {
            "baseline": {"source": baseline.source_name, "version": baseline.version_label,
                         "record_count": len(baseline.records)},
            "candidate": {"source": candidate.source_name, "version": candidate.version_label,
                          "record_count": len(candidate.records)},
        }

        if metrics is None:
            await ctx.warning("Comparison requires records in both datasets")
            result.update({"status": "insufficient_data", "comparison": None})
            return result

        for phase, mismatch in metrics.count_mismatch.items():
            if mismatch:
                await ctx.warning(
                    f"Test count mismatch for {phase.value}: "
                    f"{metrics.baseline_counts[phase]} vs {metrics.candidate_counts[phase]}"
                )
        if metrics.significant_deviation:
            await ctx.warning("Significant performance deviation detected! "
                              "Some metrics show more than "
                              f"{_severity_thresholds()['critical_pct']}% difference.")

        series = {
            phase.value.lower(): [
                chart_point_to_dict(p)
                for p in phase_comparison_series(baseline.records, candidate.records, phase, search_term)
            ]
            for phase in PHASE_PRIORITY
        }

        await ctx.info(f"Comparison completed: {len(metrics.paired_tests)} paired tests")
        result.update({
            "status": "success",
            "comparison": comparison_to_dict(metrics),
            "degraded_tests": [paired_test_to_dict(t) for t in degraded_tests(metrics.paired_tests)],
            "chart_series": series,
        })
        return result

    except Exception as e:
        error_msg = f"Results comparison failed: {str(e)}"
        await ctx.error(error_msg)
        return {"error": error_msg, "status": "failed"}


async def classify_difference_value(difference_pct: float, ctx: Context) -> Dict[str, Any]:
    """Severity band of a percentage difference under the configured thresholds."""
    severity = classify_severity(difference_pct, **_severity_thresholds())
    if severity is None:
        await ctx.warning(f"Difference {difference_pct} is not finite and cannot be classified")
    return {
        "status": "success",
        "difference_pct": finite_or_none(difference_pct),
        "severity": severity_value(severity),
    }


# -----------------------------------------------
# Helper Functions for loading
# -----------------------------------------------
def resolve_csv_path(csv_path: str) -> Path:
    """Absolute paths are kept; relative ones resolve against general.data_path."""
    path = Path(csv_path).expanduser()
    if path.is_absolute():
        return path
    data_path = CONFIG.get('general', {}).get('data_path') or '.'
    return Path(data_path) / path


async def _load_session(csv_path: str, ctx: Context):
    """
    Returns:
        (DatasetSession, None) on success, (None, error dict) otherwise
    """
    path = resolve_csv_path(csv_path)
    try:
        session = DatasetSession.from_upload(
            path, path.name, _compare_config().get('subject_delimiter', DEFAULT_SUBJECT_DELIMITER)
        )
    except FileNotFoundError as e:
        error_msg = str(e)
        await ctx.error(error_msg)
        return None, {"error": error_msg, "status": "file_not_found", "expected_file": str(path)}

    if session.status is SessionStatus.ERROR:
        await ctx.error(session.error)
        return None, {"error": session.error, "status": "failed", "source": path.name}
    return session, None


# -----------------------------------------------
# Serialization functions
# -----------------------------------------------
def finite_or_none(value: Optional[float]) -> Optional[float]:
    """JSON has no nan/inf; they become null."""
    if value is None or not math.isfinite(value):
        return None
    return float(value)


def severity_value(severity: Optional[Severity]) -> Optional[str]:
    return severity.value if severity is not None else None


def _phase_map(values: Dict[Phase, Any]) -> Dict[str, Any]:
    return {phase.value.lower(): value for phase, value in values.items()}


def record_to_dict(record: TimedOperationRecord) -> Dict[str, Any]:
    return asdict(record)


def summary_to_dict(summary: SubjectSummary) -> Dict[str, Any]:
    return asdict(summary)


def chart_point_to_dict(point: ChartPoint) -> Dict[str, Any]:
    return asdict(point)


def paired_test_to_dict(test: PairedTest) -> Dict[str, Any]:
    return {
        "name": test.name,
        "phase": test.phase.value,
        "time_a": test.time_a,
        "time_b": test.time_b,
        "delta": test.delta,
    }


def metrics_to_dict(metrics: SingleDatasetMetrics) -> Dict[str, Any]:
    return {
        "total_duration": metrics.total_duration,
        "average_load_time": metrics.average_load_time,
        "median_load_time": metrics.median_load_time,
        "counts_by_phase": _phase_map(metrics.counts_by_phase),
        "top_slowest": [record_to_dict(r) for r in metrics.top_slowest],
    }


def comparison_to_dict(metrics: ComparisonMetrics) -> Dict[str, Any]:
    differences = metrics.differences
    severities = metrics.severities
    return {
        "total_time": {
            "baseline": asdict(metrics.baseline_totals),
            "candidate": asdict(metrics.candidate_totals),
        },
        "test_counts": {
            "baseline": _phase_map(metrics.baseline_counts),
            "candidate": _phase_map(metrics.candidate_counts),
        },
        "count_mismatch": _phase_map(metrics.count_mismatch),
        "differences": {
            "overall": finite_or_none(differences.overall),
            "load": finite_or_none(differences.load),
            "save": finite_or_none(differences.save),
        },
        "severity": {
            "overall": severity_value(severities.overall),
            "load": severity_value(severities.load),
            "save": severity_value(severities.save),
        },
        "absolute_differences": asdict(metrics.absolute_differences),
        "significant_deviation": metrics.significant_deviation,
        "paired_tests": [paired_test_to_dict(t) for t in metrics.paired_tests],
    }
