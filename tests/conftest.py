"""
Pytest configuration and shared fixtures
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from utils.result_models import TimedOperationRecord

CSV_HEADER = "Page,Date,Computer Name,Version,Method,Time(Seconds)\n"


def make_record(name, seconds, version="1.0"):
    """Build a record with placeholder metadata."""
    return TimedOperationRecord(
        operation_name=name,
        elapsed_seconds=seconds,
        timestamp="2024-05-01 10:00:00",
        machine_name="BUILD-01",
        version=version,
        method="UI",
    )


def make_records(pairs, version="1.0"):
    return [make_record(name, seconds, version) for name, seconds in pairs]


def csv_text(pairs, version="1.0"):
    """Results CSV text for (name, seconds) pairs."""
    rows = [
        f"{name},2024-05-01 10:00:00,BUILD-01,{version},UI,{seconds}\n"
        for name, seconds in pairs
    ]
    return CSV_HEADER + "".join(rows)


@pytest.fixture
def mock_ctx():
    """FastMCP context stand-in with awaitable logging methods."""
    ctx = MagicMock()
    ctx.info = AsyncMock()
    ctx.warning = AsyncMock()
    ctx.error = AsyncMock()
    return ctx


@pytest.fixture
def baseline_records():
    return make_records([
        ("Login_Load", 2.0),
        ("Login_Run", 4.0),
        ("Login_Save", 1.0),
        ("Home_Load", 3.0),
        ("Home_Run", 5.0),
    ], version="2.3.0")


@pytest.fixture
def candidate_records():
    return make_records([
        ("Login_Load", 3.0),
        ("Login_Run", 4.0),
        ("Login_Save", 1.5),
        ("Home_Load", 3.0),
        ("Home_Run", 4.0),
    ], version="2.4.0")


@pytest.fixture
def write_csv(tmp_path):
    """Write a results CSV into tmp_path and return its path."""
    def _write(filename, pairs, version="1.0"):
        path = tmp_path / filename
        path.write_text(csv_text(pairs, version), encoding="utf-8")
        return path
    return _write
