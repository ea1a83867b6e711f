#!/usr/bin/env python3
"""
Check the integrity and quality of downloaded datasets.

For every dataset the Validator confirms the file exists, records its size,
modification time and MD5, parses it, profiles dimensions, missing values
and column types, checks primary-key uniqueness, builds summary statistics,
confronts the table with its declared rule set, and writes an HTML report
next to the data. A dataset that fails is reported and the batch moves on.

Usage:
    python -m natsci_data.validator
    python -m natsci_data.validator --only Forestry --strict-rules
    python -m natsci_data.validator --data-dir ./data --no-combined
"""

import argparse
import os
import sys
import zipfile
from datetime import datetime

import pandas as pd

from natsci_data import config as cfg
from natsci_data.config import ValidationConfig
from natsci_data.datasets import select, validation_entries
from natsci_data.file_utils import file_info
from natsci_data.logging_config import (
    StepTimer,
    get_pipeline_logger,
    run_log,
    setup_logging,
)
from natsci_data.pipeline_types import BatchResult, RuleStatus, ValidationReport
from natsci_data.profiling import (
    UnsupportedFormatError,
    check_primary_key,
    load_table,
    profile_table,
    summarize_columns,
)
from natsci_data.report import render_combined_report, render_dataset_report
from natsci_data.rules import confront
from natsci_data.schemas import get_ruleset
from natsci_data.step_runner import run_step

log = get_pipeline_logger(__name__)

# Parse failures reported as "Failed to read file".
_READ_ERRORS = (
    pd.errors.ParserError,
    pd.errors.EmptyDataError,
    UnicodeDecodeError,
    zipfile.BadZipFile,
    ValueError,
    OSError,
)


# ── Single dataset ───────────────────────────────────────────────────────


def _log_profile(report):
    log.info("Data dimensions: %d rows x %d columns", report.n_rows, report.n_cols)
    log.info("Missing values: %d (%.1f%%)", report.n_missing, report.pct_missing)
    log.info("Column data types:")
    for col, dtype in report.column_types.items():
        log.info("  - %s: %s", col, dtype)


def _log_primary_key(report):
    key = report.primary_key
    if report.primary_key_unique is None:
        log.warning("Primary key check (%s): SKIPPED - column not found", key)
    elif report.primary_key_unique:
        log.info("Primary key check (%s): PASSED - All values are unique", key)
    else:
        log.warning(
            "Primary key check (%s): FAILED - Only %d unique values out of %d rows",
            key, report.n_unique_key, report.n_rows,
        )


def _log_rules(report):
    for r in report.rule_results:
        if r.status == RuleStatus.FAIL:
            log.warning("Rule FAILED: %s (%s)", r.rule, r.detail)
        elif r.status == RuleStatus.SKIPPED:
            log.info("Rule skipped: %s (%s)", r.rule, r.detail)
        else:
            log.info("Rule passed: %s", r.rule)
    log.info(
        "Rules: %d passed, %d failed, %d skipped",
        len(report.rule_results) - len(report.rules_failed) - len(report.rules_skipped),
        len(report.rules_failed), len(report.rules_skipped),
    )


def validate_dataset(entry, config=None, rules=None):
    """Validate one dataset file.

    Parameters
    ----------
    entry : ValidationEntry
        Name, path and optional primary key of the dataset.
    config : ValidationConfig, optional
    rules : list[ValidationRule], optional
        Rule set to confront the table with.

    Returns
    -------
    ValidationReport
        ``ok`` is True when the file existed, parsed and was profiled.
        Rule failures and report-rendering failures leave ``ok`` untouched.
    """
    config = config or ValidationConfig()
    path = entry.path
    report = ValidationReport(name=entry.name, path=path, primary_key=entry.primary_key)

    log.info("## Validating %s dataset ##", entry.name, extra={"dataset": entry.name})

    if not os.path.isfile(path):
        report.error = f"File '{path}' not found"
        log.error("ERROR: %s.", report.error)
        return report

    info = file_info(path)
    report.file_size_kb = info["size_kb"]
    report.modified = info["modified"]
    report.md5 = info["md5"]
    log.info("File: %s", os.path.basename(path))
    log.info("Size: %s KB", report.file_size_kb)
    log.info("Last Modified: %s", report.modified)
    log.info("MD5 Hash: %s", report.md5)

    try:
        df = load_table(path)
    except UnsupportedFormatError:
        report.error = f"Unsupported file format for '{path}'"
        log.error("ERROR: %s.", report.error)
        return report
    except _READ_ERRORS as exc:
        report.error = f"Failed to read file '{path}': {exc}"
        log.error("ERROR: %s", report.error)
        return report

    profile = profile_table(df)
    report.n_rows = profile.n_rows
    report.n_cols = profile.n_cols
    report.n_missing = profile.n_missing
    report.pct_missing = profile.pct_missing
    report.column_types = profile.column_types
    _log_profile(report)

    if entry.primary_key:
        report.primary_key_unique, report.n_unique_key = check_primary_key(
            df, entry.primary_key
        )
        _log_primary_key(report)

    report.summary = summarize_columns(df)
    log.info("Summary statistics:")
    for line in report.summary.to_string(index=False).splitlines():
        log.info("  %s", line)

    if rules:
        report.rule_results = confront(df, rules)
        _log_rules(report)

    report.ok = True

    if config.write_reports:
        output_dir = os.path.join(os.path.dirname(path), cfg.VALIDATION_SUBDIR)
        log.info("Generating data quality report in %s", output_dir)
        try:
            report.report_path = render_dataset_report(report, df, output_dir)
            log.info("Report generated successfully.")
        except Exception as exc:
            log.error("Error generating report: %s", exc)

    log.info("Validation of %s dataset completed.", entry.name)
    return report


# ── Batch ────────────────────────────────────────────────────────────────


def _resolve_rules(entry, rulesets):
    try:
        return get_ruleset(entry.ruleset or None, rulesets)
    except KeyError as exc:
        log.warning("%s: %s; skipping rule checks", entry.name, exc.args[0])
        return []


def validation_output_summary(report):
    """Dimensions and rule outcome of a validation step."""
    return {
        "ok": report.ok,
        "rows": report.n_rows,
        "cols": report.n_cols,
        "rules_failed": len(report.rules_failed),
    }


def validate_all(entries, config=None, rulesets=None):
    """Validate every entry in order, then try to write the combined report.

    Returns
    -------
    BatchResult
        ``results`` maps name -> passed under ``config.success_policy``;
        ``details`` maps name -> ValidationReport.
    """
    config = config or ValidationConfig()

    with run_log(config.log_file, "Data Validation Log", config.log_level):
        batch = BatchResult(kind="validate")
        with StepTimer() as timer:
            for entry in entries:
                step, report = run_step(
                    f"validate:{entry.name}", validate_dataset, entry, config,
                    rules=_resolve_rules(entry, rulesets),
                    input_summary={"path": entry.path},
                    output_summary_fn=validation_output_summary,
                )
                if report is None:
                    report = ValidationReport(
                        name=entry.name, path=entry.path, error=step.error
                    )
                batch.step_results.append(step)
                batch.details[entry.name] = report
                batch.results[entry.name] = report.passed(config.success_policy)
        batch.total_time_seconds = timer.elapsed

        log_validation_summary(batch)

        if config.combined_report:
            write_combined_report(list(batch.details.values()), config.data_dir)
    return batch


def log_validation_summary(batch):
    log.info("## Validation Summary ##")
    log.info(
        "Successfully validated %d of %d datasets (%.1f%%)",
        batch.success_count, batch.total, batch.success_pct,
    )
    for name, ok in batch.results.items():
        log.info("%-15s: %s", name, "SUCCESS" if ok else "FAILED")
    log.info(
        "Validation process completed at %s",
        datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
    )


# ── Combined report ──────────────────────────────────────────────────────


def build_combined_table(reports):
    """Concatenate every structurally valid dataset with a ``dataset_source`` column.

    Returns None when no report is ``ok``.
    """
    frames = []
    for report in reports:
        if not report.ok:
            continue
        df = load_table(report.path)
        df = df.assign(dataset_source=report.name)
        frames.append(df[["dataset_source"] + [c for c in df.columns if c != "dataset_source"]])
    if not frames:
        return None
    return pd.concat(frames, ignore_index=True, sort=False)


def write_combined_report(reports, data_dir, timestamp=None):
    """Best-effort combined report; returns its path or None."""
    log.info("Attempting to create combined validation report...")
    try:
        combined = build_combined_table(reports)
        if combined is None:
            log.warning("No validated datasets to combine; combined report skipped")
            return None
        path = render_combined_report(
            combined,
            os.path.join(data_dir, cfg.COMBINED_REPORT_SUBDIR),
            title="Combined Dataset Validation Report",
            timestamp=timestamp,
        )
    except Exception as exc:
        log.error("Error creating combined report: %s", exc)
        return None
    log.info("Combined report generated: %s", path)
    return path


# ── CLI entry point ──────────────────────────────────────────────────────


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Validate the downloaded datasets and write HTML reports"
    )
    parser.add_argument("--data-dir", default=cfg.DATA_DIR,
                        help="Root data directory (default: ./data)")
    parser.add_argument("--only", nargs="+", metavar="NAME",
                        help="Validate only these datasets (by name)")
    parser.add_argument("--strict-rules", action="store_true",
                        help="Count a dataset as failed when any rule fails")
    parser.add_argument("--no-reports", action="store_true",
                        help="Skip per-dataset HTML reports")
    parser.add_argument("--no-combined", action="store_true",
                        help="Skip the combined HTML report")
    parser.add_argument("--log-file", default=cfg.VALIDATION_LOG_FILE,
                        help="Plain-text run log (appended)")
    parser.add_argument("--log-level", type=str.upper, default=cfg.default_log_level(),
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Console and run-log level (default: $LOG_LEVEL or INFO)")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    config = ValidationConfig(
        data_dir=args.data_dir,
        log_file=args.log_file,
        success_policy="strict" if args.strict_rules else "structural",
        write_reports=not args.no_reports,
        combined_report=not args.no_combined,
        log_level=args.log_level,
    )
    setup_logging(console_level=config.log_level)
    entries = validation_entries(config.data_dir, select(args.only))
    batch = validate_all(entries, config)

    log.info("Data validation process completed. See %s for details.", args.log_file)
    return 0 if batch.all_ok else 1


if __name__ == "__main__":
    sys.exit(main())
