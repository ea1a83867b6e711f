"""
Declarative validation rules and their confrontation with a table.

A ValidationRule names the columns it reads and knows how to build a
pandera schema that encodes its check. confront() runs every rule against
one DataFrame and never raises for data problems:

- rule referencing a column the table lacks -> ``skipped`` (counts as a pass)
- schema validates                          -> ``pass``
- schema raises SchemaErrors/SchemaError    -> ``fail`` with the failure cases

Usage:
    from natsci_data.rules import confront, value_range
    results = confront(df, [value_range("Depth >= 0", "depth", min_value=0)])
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
import pandas as pd
import pandera as pa
from pandera import Check, Column, DataFrameSchema

from natsci_data.logging_config import get_pipeline_logger
from natsci_data.pipeline_types import RuleResult, RuleStatus

log = get_pipeline_logger(__name__)

CATEGORIES = ("existence", "type", "range", "completeness", "relationship")

# Failure cases quoted in a rule's detail text.
_MAX_FAILURE_CASES = 5


@dataclass(frozen=True)
class ValidationRule:
    """One named check over a table.

    ``build_schema`` receives nothing and returns a pandera
    DataFrameSchema; it is only called when every name in ``columns`` is
    present (or ``require_columns`` is set, in which case absent columns
    are a failure instead of a skip).
    """

    name: str
    category: str
    columns: tuple
    build_schema: Callable[[], DataFrameSchema]
    require_columns: bool = False

    def __post_init__(self):
        if self.category not in CATEGORIES:
            raise ValueError(
                f"Rule {self.name!r}: unknown category {self.category!r}; "
                f"expected one of {CATEGORIES}"
            )


def _is_numeric(series):
    return pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series)


# ── Factories ───────────────────────────────────────────────────────────

def require_any_column(name, *candidates):
    """Pass when at least one of *candidates* is a column of the table."""
    if not candidates:
        raise ValueError(f"Rule {name!r}: at least one candidate column is required")

    def build():
        return DataFrameSchema(
            checks=[Check(
                lambda df: any(c in df.columns for c in candidates),
                name="require_any_column",
                error=f"none of {list(candidates)} present",
            )],
            name=name,
        )

    return ValidationRule(name, "existence", (), build)


def numeric_column(name, column):
    """Pass when *column* has a numeric dtype."""

    def build():
        return DataFrameSchema(
            columns={column: Column(checks=Check(
                _is_numeric, name="is_numeric", ignore_na=False,
                error=f"{column} is not numeric",
            ), nullable=True)},
            name=name,
        )

    return ValidationRule(name, "type", (column,), build)


def value_range(name, column, min_value=None, max_value=None, include_max=True):
    """Pass when every non-missing value of *column* lies in the range.

    The lower bound is inclusive. A non-numeric column fails.
    """
    if min_value is None and max_value is None:
        raise ValueError(f"Rule {name!r}: min_value or max_value is required")

    def within_bounds(s):
        if not _is_numeric(s):
            return False
        ok = pd.Series(True, index=s.index)
        if min_value is not None:
            ok &= s >= min_value
        if max_value is not None:
            ok &= (s <= max_value) if include_max else (s < max_value)
        return ok | s.isna()

    bounds = f"[{min_value}, {max_value}{']' if include_max else ')'}"

    def build():
        return DataFrameSchema(
            columns={column: Column(checks=Check(
                within_bounds, name="value_range", ignore_na=False,
                error=f"{column} outside {bounds}",
            ), nullable=True)},
            name=name,
        )

    return ValidationRule(name, "range", (column,), build)


def not_null(name, column):
    """Pass when *column* has no missing values."""

    def build():
        return DataFrameSchema(
            columns={column: Column(checks=Check(
                lambda s: s.notna(), name="not_null", ignore_na=False,
                error=f"{column} has missing values",
            ), nullable=True)},
            name=name,
        )

    return ValidationRule(name, "completeness", (column,), build)


def complete_rows(name, threshold):
    """Pass when the share of rows with no missing cell is >= *threshold*.

    An empty table fails.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Rule {name!r}: threshold must be within [0, 1]")

    def enough_complete_rows(df):
        if len(df) == 0:
            return False
        return bool(df.notna().all(axis=1).mean() >= threshold)

    def build():
        return DataFrameSchema(
            checks=[Check(
                enough_complete_rows, name="complete_rows",
                error=f"fewer than {threshold:.0%} of rows are complete",
            )],
            name=name,
        )

    return ValidationRule(name, "completeness", (), build)


def correlation_bound(name, col_a, col_b, lower=None, upper=None, min_rows=10):
    """Pass when the Pearson correlation of two columns lies strictly in bounds.

    Only rows where both values are present count. With ``min_rows`` or
    fewer such rows the rule passes without computing anything. Non-numeric
    columns fail.
    """
    if lower is None and upper is None:
        raise ValueError(f"Rule {name!r}: lower or upper is required")

    def correlation_within_bounds(df):
        a, b = df[col_a], df[col_b]
        if not (_is_numeric(a) and _is_numeric(b)):
            return False
        pairs = df[[col_a, col_b]].dropna()
        if len(pairs) <= min_rows:
            return True
        r = pairs[col_a].astype(float).corr(pairs[col_b].astype(float))
        if np.isnan(r):
            # Constant column: no linear relationship to bound.
            return True
        if lower is not None and not r > lower:
            return False
        if upper is not None and not r < upper:
            return False
        return True

    def build():
        return DataFrameSchema(
            checks=[Check(
                correlation_within_bounds, name="correlation_bound",
                error=f"corr({col_a}, {col_b}) outside ({lower}, {upper})",
            )],
            name=name,
        )

    return ValidationRule(name, "relationship", (col_a, col_b), build)


# ── Confrontation ───────────────────────────────────────────────────────

def _describe_failures(exc):
    failure_cases = getattr(exc, "failure_cases", None)
    if not isinstance(failure_cases, pd.DataFrame) or failure_cases.empty:
        return str(exc).splitlines()[0] if str(exc) else type(exc).__name__
    parts = []
    for failure in failure_cases.head(_MAX_FAILURE_CASES).itertuples():
        column = getattr(failure, "column", None)
        prefix = f"column='{column}' " if column is not None else ""
        check = getattr(failure, "check", None)
        parts.append(f"{prefix}check='{check}' failure_case={failure.failure_case}")
    more = len(failure_cases) - _MAX_FAILURE_CASES
    if more > 0:
        parts.append(f"... and {more} more")
    return "; ".join(parts)


def evaluate_rule(df, rule, columns=None):
    """Confront *df* with a single rule and return its RuleResult."""
    if columns is None:
        columns = set(df.columns)
    missing = [c for c in rule.columns if c not in columns]
    if missing:
        if rule.require_columns:
            return RuleResult(rule.name, rule.category, RuleStatus.FAIL,
                              f"missing column(s): {missing}")
        return RuleResult(rule.name, rule.category, RuleStatus.SKIPPED,
                          f"column(s) not present: {missing}")

    try:
        rule.build_schema().validate(df, lazy=True)
    except (pa.errors.SchemaErrors, pa.errors.SchemaError) as exc:
        return RuleResult(rule.name, rule.category, RuleStatus.FAIL,
                          _describe_failures(exc))
    return RuleResult(rule.name, rule.category, RuleStatus.PASS)


def confront(df, rules):
    """Run every rule against *df*, in order.

    Returns
    -------
    list[RuleResult]
    """
    columns = set(df.columns)
    results = [evaluate_rule(df, rule, columns) for rule in rules]
    n_fail = sum(1 for r in results if r.status == RuleStatus.FAIL)
    n_skip = sum(1 for r in results if r.status == RuleStatus.SKIPPED)
    log.debug("Confronted %d rules: %d failed, %d skipped", len(results), n_fail, n_skip)
    return results
