# perfcompare.py
import logging
from typing import Any, Dict

from fastmcp import FastMCP, Context    # ✅ FastMCP 2.x import

from services.results_analyzer import (
    CONFIG,
    analyze_results_file,
    classify_difference_value,
    compare_results_files,
    group_results_file,
)

logging.basicConfig(level=CONFIG.get('logging', {}).get('log_level', 'INFO'))

mcp = FastMCP(name="perfcompare")

@mcp.tool()
async def analyze_results(csv_path: str, ctx: Context) -> Dict[str, Any]:
    """
    Analyze a single performance results CSV (Page, Date, Computer Name, Version, Method, Time(Seconds))

    Args:
        csv_path: Path to the results CSV
        ctx: FastMCP workflow context for chaining

    Returns:
        Dictionary with total duration, Load average/median, per-phase counts,
        the slowest operations and per-subject Load/Run/Save times
    """
    return await analyze_results_file(csv_path, ctx)

@mcp.tool()
async def group_results(csv_path: str, ctx: Context) -> Dict[str, Any]:
    """
    Group a results CSV into Load/Run/Save times per subject

    Args:
        csv_path: Path to the results CSV
        ctx: FastMCP workflow context for chaining

    Returns:
        Dictionary containing one summary per subject, in first-seen order
    """
    return await group_results_file(csv_path, ctx)

@mcp.tool()
async def compare_results(baseline_csv_path: str, candidate_csv_path: str, search_term: str = "", ctx: Context = None) -> Dict[str, Any]:
    """
    Compare a candidate results CSV against a baseline results CSV

    Args:
        baseline_csv_path: Path to the reference (previous version) CSV
        candidate_csv_path: Path to the CSV under evaluation (latest version)
        search_term: Optional case-insensitive filter applied to the chart series
        ctx: FastMCP workflow context for chaining

    Returns:
        Dictionary containing totals, percentage differences with severity,
        test count mismatches, paired tests and degraded tests
    """
    return await compare_results_files(baseline_csv_path, candidate_csv_path, search_term, ctx)

@mcp.tool()
async def classify_difference(difference_pct: float, ctx: Context) -> Dict[str, Any]:
    """
    Classify a percentage difference as ok, warning or critical

    Args:
        difference_pct: Percentage change of a candidate relative to a baseline
        ctx: FastMCP workflow context for chaining

    Returns:
        Dictionary containing the severity band (null for non-finite input)
    """
    return await classify_difference_value(difference_pct, ctx)

if __name__ == "__main__":
    try:
        mcp.run("stdio")
    except KeyboardInterrupt:
        print("Shutting down PerfCompare MCP…")
