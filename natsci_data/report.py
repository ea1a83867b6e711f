"""
Self-contained HTML validation reports.

One report per dataset (file facts, dimensions, column types, primary key,
summary statistics, rule outcomes, missing-value and distribution plots)
and one combined report across every successfully validated dataset. No
external JS or CSS; plots are embedded as base64 PNGs.

Usage:
    from natsci_data.report import render_dataset_report
    path = render_dataset_report(validation_report, df, output_dir)
"""

import base64
import io
import os
from datetime import datetime, timezone
from html import escape

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from natsci_data import config
from natsci_data.file_utils import atomic_write_text, ensure_directory
from natsci_data.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)

# Rows of the combined table shown in the combined report.
COMBINED_PREVIEW_ROWS = 100

_STATUS_COLORS = {"pass": "#2ecc71", "fail": "#e74c3c", "skipped": "#f39c12"}

_STYLE = """
  body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, monospace;
         max-width: 1100px; margin: 0 auto; padding: 20px; background: #f5f5f5; }
  h1 { color: #2c3e50; border-bottom: 2px solid #3498db; padding-bottom: 10px; }
  h2 { color: #34495e; margin-top: 30px; }
  .summary-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr));
                  gap: 15px; margin: 20px 0; }
  .summary-card { background: white; border-radius: 8px; padding: 15px;
                  box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
  .summary-card .label { font-size: 0.85em; color: #7f8c8d; }
  .summary-card .value { font-size: 1.4em; font-weight: bold; color: #2c3e50; }
  table { border-collapse: collapse; width: 100%; margin: 15px 0; background: white;
          border-radius: 8px; overflow: hidden; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
  th { background: #34495e; color: white; padding: 10px 12px; text-align: left; }
  td { padding: 8px 12px; border-bottom: 1px solid #ecf0f1; }
  tr:hover { background: #f8f9fa; }
  .plot { text-align: center; margin: 20px 0; }
  .plot img { max-width: 100%; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
  .footer { margin-top: 40px; padding-top: 15px; border-top: 1px solid #ddd;
            font-size: 0.85em; color: #95a5a6; }
"""


def _fig_to_base64(fig):
    """Convert a matplotlib figure to a base64-encoded PNG string."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=100, bbox_inches="tight")
    plt.close(fig)
    buf.seek(0)
    return base64.b64encode(buf.read()).decode("utf-8")


def _fmt(value, digits=2):
    if value is None:
        return ""
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return ""
        return f"{value:.{digits}f}"
    return escape(str(value))


def _card(label, value, color=None):
    style = f' style="color:{color}"' if color else ""
    return (
        '  <div class="summary-card">\n'
        f'    <div class="label">{escape(label)}</div>\n'
        f'    <div class="value"{style}>{escape(str(value))}</div>\n'
        "  </div>"
    )


def _plot_block(title, b64):
    if not b64:
        return ""
    return (
        f"\n<h2>{escape(title)}</h2>\n"
        f'<div class="plot"><img src="data:image/png;base64,{b64}" '
        f'alt="{escape(title)}"></div>\n'
    )


def _page(title, body):
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>{escape(title)}</title>
<style>{_STYLE}</style>
</head>
<body>
<h1>{escape(title)}</h1>
{body}
<div class="footer">
  Generated {generated} | natsci-data validation report
</div>
</body>
</html>"""


def _render_table(df, float_digits=2):
    """Render a DataFrame as an HTML table with escaped cells."""
    head = "".join(f"<th>{escape(str(c))}</th>" for c in df.columns)
    rows = []
    for values in df.itertuples(index=False, name=None):
        cells = "".join(f"<td>{_fmt(v, float_digits)}</td>" for v in values)
        rows.append(f"<tr>{cells}</tr>")
    return (
        f"<table>\n<thead><tr>{head}</tr></thead>\n<tbody>\n"
        + "\n".join(rows)
        + "\n</tbody>\n</table>\n"
    )


def _render_rule_table(rule_results):
    rows = []
    for r in rule_results:
        status = getattr(r.status, "value", r.status)
        color = _STATUS_COLORS.get(status, "#95a5a6")
        rows.append(
            "<tr>"
            f"<td>{escape(r.rule)}</td>"
            f"<td>{escape(r.category)}</td>"
            f'<td style="color:{color};font-weight:bold">{escape(status)}</td>'
            f"<td>{escape(r.detail or '')}</td>"
            "</tr>"
        )
    return (
        "<table>\n<thead><tr><th>Rule</th><th>Category</th><th>Status</th>"
        "<th>Detail</th></tr></thead>\n<tbody>\n"
        + "\n".join(rows)
        + "\n</tbody>\n</table>\n"
    )


def _generate_missing_plot(df):
    """Horizontal bar chart of missing values per column (None if none)."""
    missing = df.isna().sum()
    missing = missing[missing > 0].sort_values()
    if missing.empty:
        return None
    fig, ax = plt.subplots(figsize=(10, max(3, len(missing) * 0.3)))
    ax.barh([str(c) for c in missing.index], missing.values, color="#e67e22")
    ax.set_xlabel("Missing values")
    ax.set_title("Missing Values by Column")
    ax.grid(axis="x", alpha=0.3)
    return _fig_to_base64(fig)


def _generate_histograms(df, max_plots=config.REPORT_MAX_HISTOGRAMS):
    """Grid of histograms for the first numeric columns (None if none)."""
    numeric = [
        c for c in df.columns
        if pd.api.types.is_numeric_dtype(df[c])
        and not pd.api.types.is_bool_dtype(df[c])
        and df[c].notna().any()
    ][:max_plots]
    if not numeric:
        return None
    ncols = min(3, len(numeric))
    nrows = int(np.ceil(len(numeric) / ncols))
    fig, axes = plt.subplots(nrows, ncols, figsize=(4 * ncols, 3 * nrows), squeeze=False)
    for ax, col in zip(axes.flat, numeric):
        ax.hist(df[col].dropna().astype(float), bins=30, color="#3498db", alpha=0.8)
        ax.set_title(str(col), fontsize=9)
        ax.grid(alpha=0.3)
    for ax in list(axes.flat)[len(numeric):]:
        ax.axis("off")
    fig.tight_layout()
    return _fig_to_base64(fig)


def _generate_rows_plot(counts):
    fig, ax = plt.subplots(figsize=(10, max(3, len(counts) * 0.4)))
    ax.barh([str(i) for i in counts.index], counts.values, color="#3498db")
    ax.set_xlabel("Rows")
    ax.set_title("Rows per Dataset")
    ax.grid(axis="x", alpha=0.3)
    return _fig_to_base64(fig)


def dataset_report_path(name, output_dir):
    return os.path.join(output_dir, f"{name}_validation_report.html")


def render_dataset_report(report, df, output_dir):
    """Write the HTML report for one validated dataset.

    Parameters
    ----------
    report : ValidationReport
        Profile and rule outcomes of the dataset.
    df : pd.DataFrame
        The loaded table, used for plots.
    output_dir : str
        Directory for the report; created if missing.

    Returns
    -------
    str
        Path to the written HTML file.
    """
    ensure_directory(output_dir)

    key_text = "n/a"
    if report.primary_key:
        if report.primary_key_unique is None:
            key_text = f"{report.primary_key}: column not found"
        else:
            verdict = "unique" if report.primary_key_unique else "NOT unique"
            key_text = f"{report.primary_key}: {verdict} ({report.n_unique_key} of {report.n_rows})"

    n_fail = len(report.rules_failed)
    n_skip = len(report.rules_skipped)
    cards = [
        _card("Rows", report.n_rows),
        _card("Columns", report.n_cols),
        _card("Missing", f"{report.n_missing} ({report.pct_missing:.1f}%)"),
        _card("File Size", f"{report.file_size_kb} KB"),
        _card("Rules Failed", n_fail, "#e74c3c" if n_fail else "#2ecc71"),
        _card("Rules Skipped", n_skip, "#f39c12" if n_skip else None),
    ]

    types_df = pd.DataFrame(
        list(report.column_types.items()), columns=["column", "type"]
    )

    body = (
        '<div class="summary-grid">\n' + "\n".join(cards) + "\n</div>\n"
        "<h2>File</h2>\n<table><tbody>\n"
        f"<tr><td>Path</td><td>{escape(report.path)}</td></tr>\n"
        f"<tr><td>Modified</td><td>{escape(report.modified or '')}</td></tr>\n"
        f"<tr><td>MD5</td><td>{escape(report.md5 or '')}</td></tr>\n"
        f"<tr><td>Primary key</td><td>{escape(key_text)}</td></tr>\n"
        "</tbody></table>\n"
        "<h2>Column Types</h2>\n" + _render_table(types_df)
    )
    if report.summary is not None and not report.summary.empty:
        body += "<h2>Summary Statistics</h2>\n" + _render_table(report.summary)
    if report.rule_results:
        body += "<h2>Validation Rules</h2>\n" + _render_rule_table(report.rule_results)
    else:
        body += "<h2>Validation Rules</h2><p>No rule set declared.</p>\n"

    body += _plot_block("Missing Values", _generate_missing_plot(df))
    body += _plot_block("Distributions", _generate_histograms(df))

    path = dataset_report_path(report.name, output_dir)
    atomic_write_text(path, _page(f"{report.name} Validation Report", body))
    log.info("Validation report written to %s", path)
    return path


def render_combined_report(combined_df, output_dir, title="Combined Validation Report",
                           timestamp=None):
    """Write the HTML report for the concatenation of several datasets.

    ``combined_df`` must carry a leading ``dataset_source`` column.

    Returns
    -------
    str
        Path to ``combined_validation_report_<YYYYmmddHHMMSS>.html``.
    """
    ensure_directory(output_dir)
    timestamp = timestamp or datetime.now().strftime("%Y%m%d%H%M%S")

    sources = list(pd.unique(combined_df["dataset_source"]))
    data = combined_df.drop(columns="dataset_source")
    overview_rows = []
    for source in sources:
        part = data[combined_df["dataset_source"] == source]
        overview_rows.append({
            "dataset_source": source,
            "rows": len(part),
            "non_empty_columns": int(part.notna().any().sum()),
            "missing_cells": int(part.isna().sum().sum()),
        })
    overview = pd.DataFrame(
        overview_rows,
        columns=["dataset_source", "rows", "non_empty_columns", "missing_cells"],
    )
    row_counts = overview.set_index("dataset_source")["rows"]

    cards = [
        _card("Datasets", len(overview)),
        _card("Rows", len(combined_df)),
        _card("Columns", combined_df.shape[1]),
    ]
    preview = combined_df.head(COMBINED_PREVIEW_ROWS)
    body = (
        '<div class="summary-grid">\n' + "\n".join(cards) + "\n</div>\n"
        "<h2>Datasets</h2>\n" + _render_table(overview)
        + _plot_block("Rows per Dataset", _generate_rows_plot(row_counts))
        + f"<h2>Preview (first {len(preview)} rows)</h2>\n"
        + _render_table(preview)
    )

    path = os.path.join(output_dir, f"combined_validation_report_{timestamp}.html")
    atomic_write_text(path, _page(title, body))
    log.info("Combined validation report written to %s", path)
    return path
