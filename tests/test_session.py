"""
Tests for dataset and comparison sessions
"""

import dataclasses

import pytest

from conftest import csv_text, make_records
from services.session import (
    UNKNOWN_VERSION,
    ComparisonSession,
    DatasetSession,
    SessionStatus,
    dataset_version,
)


class TestDatasetSession:
    """Test building a session from an upload."""

    def test_default_is_idle(self):
        session = DatasetSession()

        assert session.status is SessionStatus.IDLE
        assert not session.is_analyzed
        assert session.version_label == UNKNOWN_VERSION

    def test_from_upload(self):
        text = csv_text([("Home_Load", 1.0), ("Home_Run", 2.0)], version="2.3.0")

        session = DatasetSession.from_upload(text, "baseline.csv")

        assert session.is_analyzed
        assert session.source_name == "baseline.csv"
        assert len(session.records) == 2
        assert session.version_label == "2.3.0"
        assert [s.subject_id for s in session.summaries] == ["Home"]
        assert session.error is None

    def test_parse_error_gives_error_session(self):
        session = DatasetSession.from_upload("Page\nA_Load\n", "bad.csv")

        assert session.status is SessionStatus.ERROR
        assert session.error.startswith("CSV Parse Error:")
        assert session.records == ()

    def test_from_upload_path(self, write_csv):
        path = write_csv("run.csv", [("Home_Load", 1.0)], version="3.1")

        session = DatasetSession.from_upload(path, path.name)

        assert session.is_analyzed
        assert session.version_label == "3.1"

    def test_from_upload_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Results file not found"):
            DatasetSession.from_upload(tmp_path / "missing.csv", "missing.csv")

    def test_custom_delimiter(self):
        records = make_records([("Home-Load", 1.0), ("Home-Run", 2.0)])

        session = DatasetSession.from_records(records, delimiter="-")

        assert [s.subject_id for s in session.summaries] == ["Home"]

    def test_is_immutable(self, baseline_records):
        session = DatasetSession.from_records(baseline_records)

        with pytest.raises(dataclasses.FrozenInstanceError):
            session.status = SessionStatus.IDLE

    def test_metrics(self, baseline_records):
        metrics = DatasetSession.from_records(baseline_records).metrics(top_n=2)

        assert metrics.total_duration == 15.0
        assert [r.operation_name for r in metrics.top_slowest] == ["Home_Run", "Login_Run"]

    def test_filter(self, baseline_records):
        session = DatasetSession.from_records(baseline_records)

        assert [r.operation_name for r in session.filter("login_")] == [
            "Login_Load", "Login_Run", "Login_Save",
        ]


class TestDatasetVersion:
    """Test the dataset version label."""

    def test_first_record_wins(self):
        records = make_records([("A", 1.0)], version="1.0") + make_records([("B", 1.0)], version="2.0")

        assert dataset_version(records) == "1.0"

    def test_empty_dataset(self):
        assert dataset_version([]) == UNKNOWN_VERSION

    def test_blank_version(self):
        assert dataset_version(make_records([("A", 1.0)], version="")) == UNKNOWN_VERSION


class TestComparisonSession:
    """Test pairing two dataset sessions."""

    def test_not_ready_until_both_sides_analyzed(self, baseline_records):
        session = ComparisonSession().with_baseline(DatasetSession.from_records(baseline_records))

        assert not session.is_ready
        assert session.metrics() is None

    def test_replacing_a_side_returns_new_session(self, baseline_records, candidate_records):
        empty = ComparisonSession()

        updated = empty.with_baseline(DatasetSession.from_records(baseline_records))

        assert updated is not empty
        assert empty.baseline.status is SessionStatus.IDLE
        assert updated.baseline.is_analyzed

    def test_metrics(self, baseline_records, candidate_records):
        session = (
            ComparisonSession()
            .with_baseline(DatasetSession.from_records(baseline_records))
            .with_candidate(DatasetSession.from_records(candidate_records))
        )

        metrics = session.metrics()

        assert session.is_ready
        assert metrics.baseline_totals.overall == 15.0
        assert metrics.candidate_totals.overall == 15.5

    def test_empty_side_gives_no_metrics(self, baseline_records):
        session = (
            ComparisonSession()
            .with_baseline(DatasetSession.from_records(baseline_records))
            .with_candidate(DatasetSession.from_records([]))
        )

        assert session.is_ready
        assert session.metrics() is None

    def test_error_reports_failed_side(self, baseline_records):
        failed = DatasetSession.from_upload("", "empty.csv")
        session = (
            ComparisonSession()
            .with_baseline(DatasetSession.from_records(baseline_records))
            .with_candidate(failed)
        )

        assert not session.is_ready
        assert session.error == failed.error
        assert session.metrics() is None
