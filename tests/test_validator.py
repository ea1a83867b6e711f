"""
Tests for natsci_data/validator.py and natsci_data/profiling.py.

Each dataset check is reported independently: a missing file or an
unparseable table fails the dataset, while rule failures and report
rendering problems only show up in the report (unless the strict success
policy is selected).
"""

import math
import os
import re

import numpy as np
import pandas as pd
import pytest

from natsci_data import validator
from natsci_data.config import ValidationConfig
from natsci_data.pipeline_types import RuleStatus
from natsci_data.profiling import (
    UnsupportedFormatError,
    check_primary_key,
    load_table,
    profile_table,
    summarize_columns,
)
from natsci_data.rules import value_range
from natsci_data.validator import (
    build_combined_table,
    validate_all,
    validate_dataset,
    write_combined_report,
)


class TestProfiling:

    def test_counts_and_missing_share(self, sample_csv):
        profile = profile_table(load_table(sample_csv))
        assert (profile.n_rows, profile.n_cols, profile.n_missing) == (3, 2, 1)
        assert profile.pct_missing == pytest.approx(100 / 6)

    def test_empty_table_has_zero_missing_share(self):
        profile = profile_table(pd.DataFrame({"a": []}))
        assert profile.n_rows == 0
        assert profile.pct_missing == 0.0

    def test_column_types(self, sample_csv):
        profile = profile_table(load_table(sample_csv))
        assert list(profile.column_types) == ["a", "b"]
        assert profile.column_types["a"] == "int64"

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "t.json"
        path.write_text("{}")
        with pytest.raises(UnsupportedFormatError):
            load_table(path)

    def test_xlsx_round_trip(self, tmp_path):
        path = tmp_path / "t.xlsx"
        pd.DataFrame({"a": [1, 2], "b": ["x", None]}).to_excel(path, index=False)
        profile = profile_table(load_table(path))
        assert (profile.n_rows, profile.n_cols, profile.n_missing) == (2, 2, 1)

    def test_primary_key(self):
        df = pd.DataFrame({"id": [1, 2, 2], "v": [1, 2, 3]})
        assert check_primary_key(df, "v") == (True, 3)
        assert check_primary_key(df, "id") == (False, 2)
        assert check_primary_key(df, "missing") == (None, None)

    def test_summary_numeric_and_text(self):
        df = pd.DataFrame({"x": [1.0, 2.0, 3.0, np.nan], "s": ["a", "b", "b", None]})
        summary = summarize_columns(df).set_index("column")
        assert summary.loc["x", "n_missing"] == 1
        assert summary.loc["x", "complete_rate"] == pytest.approx(0.75)
        assert summary.loc["x", "mean"] == pytest.approx(2.0)
        assert summary.loc["x", "p0"] == 1.0
        assert summary.loc["x", "p50"] == 2.0
        assert summary.loc["x", "p100"] == 3.0
        assert summary.loc["s", "n_unique"] == 2
        assert math.isnan(summary.loc["s", "mean"])


class TestValidateDataset:

    def test_structural_success(self, sample_csv, entry_for, validation_config, capture_info):
        report = validate_dataset(entry_for(sample_csv), validation_config)

        assert report.ok
        assert report.error is None
        assert (report.n_rows, report.n_cols, report.n_missing) == (3, 2, 1)
        assert report.md5 is not None
        assert report.file_size_kb == round(os.path.getsize(sample_csv) / 1024, 2)
        assert "Data dimensions: 3 rows x 2 columns" in capture_info.text
        assert "Missing values: 1 (16.7%)" in capture_info.text

    def test_missing_file(self, data_root, entry_for, validation_config):
        path = data_root / "nope" / "nope.csv"
        report = validate_dataset(entry_for(path), validation_config)
        assert not report.ok
        assert report.error == f"File '{path}' not found"

    def test_unsupported_format(self, data_root, entry_for, validation_config):
        path = data_root / "t.parquet"
        path.write_bytes(b"PAR1")
        report = validate_dataset(entry_for(path), validation_config)
        assert not report.ok
        assert "Unsupported file format" in report.error
        # File facts are still gathered before the format check.
        assert report.md5 is not None

    def test_empty_file_fails_to_parse(self, data_root, entry_for, validation_config):
        path = data_root / "empty.csv"
        path.write_bytes(b"")
        report = validate_dataset(entry_for(path), validation_config)
        assert not report.ok
        assert report.error.startswith("Failed to read file")

    def test_primary_key_reported(self, write_table, entry_for, validation_config, capture_info):
        path = write_table(pd.DataFrame({"binomial_name": ["a", "b", "b"]}))
        report = validate_dataset(entry_for(path, primary_key="binomial_name"),
                                  validation_config)
        assert report.ok
        assert report.primary_key_unique is False
        assert report.n_unique_key == 2
        assert "FAILED - Only 2 unique values out of 3 rows" in capture_info.text

    def test_missing_primary_key_column_is_skipped(self, sample_csv, entry_for,
                                                   validation_config):
        report = validate_dataset(entry_for(sample_csv, primary_key="id"), validation_config)
        assert report.ok
        assert report.primary_key_unique is None

    def test_rule_failure_keeps_structural_success(self, write_table, entry_for,
                                                   validation_config):
        path = write_table(pd.DataFrame({"X": [1, -2, 3]}))
        rules = [value_range("X must be non-negative", "X", min_value=0)]

        report = validate_dataset(entry_for(path), validation_config, rules=rules)

        assert report.ok
        assert [r.status for r in report.rule_results] == [RuleStatus.FAIL]
        assert report.passed("structural")
        assert not report.passed("strict")

    def test_report_written(self, sample_csv, entry_for, data_root):
        config = ValidationConfig(data_dir=str(data_root), log_file=None,
                                  combined_report=False)
        report = validate_dataset(entry_for(sample_csv), config)

        expected = data_root / "t" / "validation" / "T_validation_report.html"
        assert report.report_path == str(expected)
        html = expected.read_text()
        assert "T Validation Report" in html
        assert "data:image/png;base64," in html

    def test_report_failure_is_not_fatal(self, sample_csv, entry_for, data_root,
                                         monkeypatch, capture_info):
        def boom(*args, **kwargs):
            raise RuntimeError("renderer exploded")

        monkeypatch.setattr(validator, "render_dataset_report", boom)
        config = ValidationConfig(data_dir=str(data_root), log_file=None,
                                  combined_report=False)

        report = validate_dataset(entry_for(sample_csv), config)

        assert report.ok
        assert report.report_path is None
        assert "Error generating report: renderer exploded" in capture_info.text


class TestValidateAll:

    def test_batch_order_and_summary(self, sample_csv, data_root, entry_for,
                                     validation_config, capture_info):
        entries = [
            entry_for(sample_csv, name="A"),
            entry_for(data_root / "missing.csv", name="B"),
        ]
        batch = validate_all(entries, validation_config)

        assert list(batch.results) == ["A", "B"]
        assert batch.results == {"A": True, "B": False}
        assert "Successfully validated 1 of 2 datasets (50.0%)" in capture_info.text
        assert re.search(r"B\s+: FAILED", capture_info.text)

    def test_strict_policy_counts_rule_failures(self, write_table, entry_for, data_root):
        path = write_table(pd.DataFrame({"X": [1, -2, 3]}), name="neg")
        entries = [entry_for(path, name="Neg", ruleset="custom")]
        rulesets = {"custom": [value_range("X must be non-negative", "X", min_value=0)]}

        lenient = ValidationConfig(data_dir=str(data_root), log_file=None,
                                   write_reports=False, combined_report=False)
        strict = ValidationConfig(data_dir=str(data_root), log_file=None,
                                  write_reports=False, combined_report=False,
                                  success_policy="strict")

        assert validate_all(entries, lenient, rulesets).results == {"Neg": True}
        assert validate_all(entries, strict, rulesets).results == {"Neg": False}

    def test_step_results_carry_output_summary(self, write_table, entry_for,
                                               validation_config):
        path = write_table(pd.DataFrame({"X": [1, -2, 3]}), name="neg")
        rulesets = {"custom": [value_range("X must be non-negative", "X", min_value=0)]}

        batch = validate_all([entry_for(path, name="Neg", ruleset="custom")],
                             validation_config, rulesets)

        [step] = batch.step_results
        assert step.step_name == "validate:Neg"
        assert step.output_summary == {"ok": True, "rows": 3, "cols": 1, "rules_failed": 1}

    def test_unknown_ruleset_is_ignored(self, sample_csv, entry_for, validation_config,
                                        capture_info):
        batch = validate_all([entry_for(sample_csv, ruleset="nope")], validation_config, {})
        assert batch.all_ok
        assert batch.details["T"].rule_results == []
        assert "Unknown rule set 'nope'" in capture_info.text

    def test_unexpected_crash_is_contained(self, sample_csv, entry_for,
                                           validation_config, monkeypatch):
        def crash(df):
            raise RuntimeError("profiler bug")

        monkeypatch.setattr(validator, "summarize_columns", crash)
        batch = validate_all([entry_for(sample_csv)], validation_config)

        assert batch.results == {"T": False}
        assert "profiler bug" in batch.details["T"].error

    def test_run_log_written(self, tmp_path, sample_csv, entry_for, data_root):
        log_file = tmp_path / "data_validation_log.txt"
        config = ValidationConfig(data_dir=str(data_root), log_file=str(log_file),
                                  write_reports=False, combined_report=False)
        validate_all([entry_for(sample_csv)], config)

        text = log_file.read_text()
        assert text.startswith("# Data Analysis in Natural Sciences - Data Validation Log")
        assert "## Validating T dataset ##" in text


class TestCombinedReport:

    def test_combined_table(self, write_table, entry_for, validation_config):
        a = write_table(pd.DataFrame({"x": [1, 2]}), name="a")
        b = write_table(pd.DataFrame({"y": ["p"]}), name="b")
        reports = [
            validate_dataset(entry_for(a, name="A"), validation_config),
            validate_dataset(entry_for(b, name="B"), validation_config),
        ]

        combined = build_combined_table(reports)

        assert list(combined.columns)[0] == "dataset_source"
        assert list(combined["dataset_source"]) == ["A", "A", "B"]
        assert set(combined.columns) == {"dataset_source", "x", "y"}

    def test_no_valid_datasets(self, data_root, entry_for, validation_config):
        report = validate_dataset(entry_for(data_root / "missing.csv"), validation_config)
        assert build_combined_table([report]) is None
        assert write_combined_report([report], str(data_root)) is None

    def test_combined_report_path(self, sample_csv, entry_for, data_root, validation_config):
        report = validate_dataset(entry_for(sample_csv), validation_config)
        path = write_combined_report([report], str(data_root), timestamp="20240102030405")

        assert path == os.path.join(
            str(data_root), "validation_reports",
            "combined_validation_report_20240102030405.html",
        )
        assert "Combined Dataset Validation Report" in open(path).read()

    def test_combined_failure_is_not_fatal(self, sample_csv, entry_for, data_root,
                                           validation_config, monkeypatch, capture_info):
        report = validate_dataset(entry_for(sample_csv), validation_config)
        os.remove(sample_csv)

        assert write_combined_report([report], str(data_root)) is None
        assert "Error creating combined report" in capture_info.text


class TestCli:

    def test_exit_status(self, tmp_path, sample_csv, monkeypatch, make_descriptor):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        d = make_descriptor()
        monkeypatch.setattr(validator, "select", lambda names: (d,))
        levels = []
        monkeypatch.setattr(validator, "setup_logging",
                            lambda console_level: levels.append(console_level))
        argv = ["--data-dir", str(sample_csv.parent.parent), "--no-reports",
                "--no-combined", "--log-file", str(tmp_path / "v.txt")]

        assert validator.main(argv) == 0
        os.remove(sample_csv)
        assert validator.main(argv) == 1
        assert levels == ["INFO", "INFO"]

        assert validator.main(argv + ["--log-level", "DEBUG"]) == 1
        assert levels[-1] == "DEBUG"
