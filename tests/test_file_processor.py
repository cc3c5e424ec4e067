"""
Tests for results CSV parsing
"""

import pytest

from conftest import CSV_HEADER, csv_text
from utils.file_processor import ParseError, load_results_file, parse_results_csv


class TestParseResultsCsv:
    """Test decoding of results CSV input."""

    def test_parses_all_columns(self):
        records = parse_results_csv(csv_text([("Login_Load", 2.5)], version="2.3.0"))

        assert len(records) == 1
        record = records[0]
        assert record.operation_name == "Login_Load"
        assert record.elapsed_seconds == 2.5
        assert record.timestamp == "2024-05-01 10:00:00"
        assert record.machine_name == "BUILD-01"
        assert record.version == "2.3.0"
        assert record.method == "UI"

    def test_accepts_bytes(self):
        records = parse_results_csv(csv_text([("A_Load", 1.0), ("A_Run", 2.0)]).encode("utf-8"))

        assert [r.operation_name for r in records] == ["A_Load", "A_Run"]

    def test_accepts_path(self, write_csv):
        path = write_csv("results.csv", [("A_Save", 3.0)])

        assert parse_results_csv(path)[0].elapsed_seconds == 3.0

    def test_keeps_file_order_and_duplicates(self):
        pairs = [("B_Run", 2.0), ("A_Load", 1.0), ("B_Run", 5.0)]

        records = parse_results_csv(csv_text(pairs))

        assert [(r.operation_name, r.elapsed_seconds) for r in records] == pairs

    def test_names_are_not_trimmed(self):
        records = parse_results_csv("Page,Time(Seconds)\n Login_Load,1\nLogin_Load ,2\n")

        assert [r.operation_name for r in records] == [" Login_Load", "Login_Load "]

    def test_only_required_columns(self):
        records = parse_results_csv("Page,Time(Seconds)\nA_Load,1.25\n")

        assert records[0].elapsed_seconds == 1.25
        assert records[0].version == ""
        assert records[0].machine_name == ""

    def test_column_order_does_not_matter(self):
        records = parse_results_csv("Time(Seconds),Version,Page\n4,9.1,A_Run\n")

        assert records[0].operation_name == "A_Run"
        assert records[0].version == "9.1"

    def test_header_only_gives_no_records(self):
        assert parse_results_csv(CSV_HEADER) == []

    def test_skips_blank_lines(self):
        text = CSV_HEADER + "\nA_Load,d,m,1,UI,1\n\n"

        assert len(parse_results_csv(text)) == 1

    def test_version_kept_as_text(self):
        records = parse_results_csv(csv_text([("A_Load", 1.0)], version="01.10"))

        assert records[0].version == "01.10"

    def test_integer_time_becomes_float(self):
        record = parse_results_csv("Page,Time(Seconds)\nA_Load,3\n")[0]

        assert isinstance(record.elapsed_seconds, float)


class TestParseErrors:
    """Test rejection of malformed input."""

    def test_empty_input(self):
        with pytest.raises(ParseError, match="empty"):
            parse_results_csv("")

    def test_missing_time_column(self):
        with pytest.raises(ParseError, match="Time\\(Seconds\\)"):
            parse_results_csv("Page,Version\nA_Load,1.0\n")

    def test_missing_both_required_columns(self):
        with pytest.raises(ParseError) as excinfo:
            parse_results_csv("Name,Seconds\nA_Load,1.0\n")

        assert "Page" in str(excinfo.value)
        assert "Time(Seconds)" in str(excinfo.value)

    def test_blank_page(self):
        with pytest.raises(ParseError, match="row\\(s\\): 2"):
            parse_results_csv("Page,Time(Seconds)\nA_Load,1\n  ,2\n")

    @pytest.mark.parametrize("value", ["abc", "", "nan", "inf", "-1"])
    def test_invalid_time(self, value):
        with pytest.raises(ParseError, match="Invalid 'Time\\(Seconds\\)'"):
            parse_results_csv(f"Page,Time(Seconds)\nA_Load,1\nB_Load,{value}\n")

    def test_lists_every_bad_row(self):
        text = "Page,Time(Seconds)\nA,x\nB,1\nC,y\n"

        with pytest.raises(ParseError, match="row\\(s\\): 1, 3$"):
            parse_results_csv(text)

    def test_truncates_long_row_list(self):
        text = "Page,Time(Seconds)\n" + "".join(f"T{i},bad\n" for i in range(12))

        with pytest.raises(ParseError, match="\\(\\+2 more\\)"):
            parse_results_csv(text)

    def test_parse_error_is_value_error(self):
        assert issubclass(ParseError, ValueError)


class TestLoadResultsFile:
    """Test loading from disk."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_results_file(tmp_path / "missing.csv")

    def test_existing_file(self, write_csv):
        path = write_csv("run.csv", [("A_Load", 1.0), ("A_Run", 2.0)])

        assert len(load_results_file(path)) == 2
