"""
Typed result dataclasses for fetch and validation runs.

These types standardize what each step returns, enabling structured
logging, batch summaries, and report rendering. None of them is persisted
as-is; only their side effects on disk (data files, sidecars, reports) are.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import pandas as pd


class StepStatus(str, Enum):
    """Step outcome status."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class RuleStatus(str, Enum):
    """Outcome of confronting a table with one validation rule."""
    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


@dataclass
class StepResult:
    """Result of a single step execution."""

    step_name: str
    status: str  # "success", "skipped", "error"
    input_summary: dict = field(default_factory=dict)
    output_summary: dict = field(default_factory=dict)
    timing_seconds: float = 0.0
    warnings: list = field(default_factory=list)
    error: Optional[str] = None
    started_at: str = field(default_factory=_now_iso)

    @property
    def ok(self):
        return self.status == StepStatus.SUCCESS


@dataclass
class FetchResult:
    """Outcome of fetching one dataset descriptor."""

    name: str
    success: bool
    path: Optional[str] = None
    size_bytes: Optional[int] = None
    md5: Optional[str] = None
    attempts: int = 0
    error: Optional[str] = None
    # None when no expected hash was configured.
    hash_verified: Optional[bool] = None

    @property
    def size_kb(self):
        if self.size_bytes is None:
            return None
        return int(round(self.size_bytes / 1024))


@dataclass
class RuleResult:
    """Outcome of one validation rule against one table."""

    rule: str
    category: str
    status: str
    detail: str = ""

    @property
    def passed(self):
        # Skip-as-pass: a rule whose columns are absent never counts as failed.
        return self.status != RuleStatus.FAIL


@dataclass
class ValidationReport:
    """Everything the Validator learned about one dataset.

    ``ok`` is the structural flag: the file existed, parsed, and was
    profiled. Rule outcomes are carried alongside and only affect
    ``passed("strict")``.
    """

    name: str
    path: str
    ok: bool = False
    error: Optional[str] = None
    file_size_kb: Optional[float] = None
    md5: Optional[str] = None
    modified: Optional[str] = None
    n_rows: int = 0
    n_cols: int = 0
    n_missing: int = 0
    pct_missing: float = 0.0
    column_types: dict = field(default_factory=dict)
    primary_key: Optional[str] = None
    primary_key_unique: Optional[bool] = None
    n_unique_key: Optional[int] = None
    summary: Optional[pd.DataFrame] = None
    rule_results: list = field(default_factory=list)
    report_path: Optional[str] = None

    @property
    def rules_failed(self):
        return [r for r in self.rule_results if r.status == RuleStatus.FAIL]

    @property
    def rules_skipped(self):
        return [r for r in self.rule_results if r.status == RuleStatus.SKIPPED]

    @property
    def rules_ok(self):
        return not self.rules_failed

    def passed(self, policy="structural"):
        """Dataset-level verdict under the given success policy."""
        if policy == "strict":
            return self.ok and self.rules_ok
        return self.ok


@dataclass
class BatchResult:
    """Result of a fetch or validation batch, in declaration order."""

    kind: str  # "fetch" or "validate"
    results: dict = field(default_factory=dict)  # name -> bool
    details: dict = field(default_factory=dict)  # name -> FetchResult | ValidationReport
    step_results: list = field(default_factory=list)
    total_time_seconds: float = 0.0

    @property
    def total(self):
        return len(self.results)

    @property
    def success_count(self):
        return sum(1 for ok in self.results.values() if ok)

    @property
    def success_pct(self):
        if self.total == 0:
            return 0.0
        return 100.0 * self.success_count / self.total

    @property
    def all_ok(self):
        return all(self.results.values())

    @property
    def failed(self):
        return [name for name, ok in self.results.items() if not ok]
