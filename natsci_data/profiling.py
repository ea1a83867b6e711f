"""
Table loading and descriptive profiling for the Validator.

Dimensions, missing-value accounting, column types, primary-key
uniqueness, and a per-column summary table in the spirit of R's
``skimr::skim`` (one row per column, numeric quantiles where they apply).
"""

import os
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from natsci_data import config


class UnsupportedFormatError(ValueError):
    """The file extension is not one the Validator can parse."""


def load_table(path):
    """Parse a delimited-text or spreadsheet file into a DataFrame.

    Raises
    ------
    UnsupportedFormatError
        For extensions outside ``config.SUPPORTED_EXTENSIONS``.
    pandas.errors.ParserError, pandas.errors.EmptyDataError, ValueError
        When the file cannot be parsed.
    """
    ext = os.path.splitext(str(path))[1].lower()
    if ext not in config.SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported file format for '{path}'")
    if ext == ".xlsx":
        return pd.read_excel(path, engine="openpyxl")
    return pd.read_csv(path)


@dataclass
class TableProfile:
    """Structural facts about a loaded table."""

    n_rows: int
    n_cols: int
    n_missing: int
    pct_missing: float
    column_types: dict = field(default_factory=dict)


def profile_table(df):
    """Row/column counts, missing cells, and per-column dtype names.

    ``pct_missing`` is the share of null cells over all ``rows * cols``
    cells, in percent (0.0 for a table with no cells).
    """
    n_rows, n_cols = df.shape
    n_missing = int(df.isna().sum().sum())
    n_cells = n_rows * n_cols
    pct_missing = 100.0 * n_missing / n_cells if n_cells else 0.0
    return TableProfile(
        n_rows=int(n_rows),
        n_cols=int(n_cols),
        n_missing=n_missing,
        pct_missing=pct_missing,
        column_types={str(col): str(dtype) for col, dtype in df.dtypes.items()},
    )


def check_primary_key(df, column):
    """Compare the distinct-value count of *column* with the row count.

    Returns
    -------
    tuple[bool | None, int | None]
        ``(is_unique, n_unique)``; ``(None, None)`` if the column is absent.
    """
    if column not in df.columns:
        return None, None
    n_unique = int(df[column].nunique(dropna=False))
    return n_unique == len(df), n_unique


def summarize_columns(df):
    """One summary row per column.

    Columns: column, type, n_missing, complete_rate, n_unique, mean, sd,
    p0, p25, p50, p75, p100. Numeric statistics are NaN for non-numeric
    columns.
    """
    rows = []
    for col in df.columns:
        s = df[col]
        n = len(s)
        n_missing = int(s.isna().sum())
        row = {
            "column": str(col),
            "type": str(s.dtype),
            "n_missing": n_missing,
            "complete_rate": (n - n_missing) / n if n else np.nan,
            "n_unique": int(s.nunique(dropna=True)),
            "mean": np.nan,
            "sd": np.nan,
            "p0": np.nan,
            "p25": np.nan,
            "p50": np.nan,
            "p75": np.nan,
            "p100": np.nan,
        }
        if pd.api.types.is_numeric_dtype(s) and not pd.api.types.is_bool_dtype(s):
            values = s.dropna().astype(float)
            if len(values):
                q = np.percentile(values, [0, 25, 50, 75, 100])
                row.update({
                    "mean": float(values.mean()),
                    "sd": float(values.std(ddof=1)) if len(values) > 1 else np.nan,
                    "p0": float(q[0]),
                    "p25": float(q[1]),
                    "p50": float(q[2]),
                    "p75": float(q[3]),
                    "p100": float(q[4]),
                })
        rows.append(row)
    return pd.DataFrame(rows, columns=[
        "column", "type", "n_missing", "complete_rate", "n_unique",
        "mean", "sd", "p0", "p25", "p50", "p75", "p100",
    ])
