"""
Centralized configuration for the dataset download and validation tools.

Module-level constants hold the defaults; FetchConfig and ValidationConfig
bundle them into explicit objects that are built once at the entry point
and handed to every component.
"""

import os
from dataclasses import dataclass, field

# ─── PATHS ───────────────────────────────────────────────────────────────
DATA_DIR = "data"
CITATION_FILENAME = "CITATION.txt"
METADATA_FILENAME = "METADATA.json"
README_FILENAME = "README.md"

# Per-dataset reports live next to the data file; the combined report
# spanning every dataset lives under the data root.
VALIDATION_SUBDIR = "validation"
COMBINED_REPORT_SUBDIR = "validation_reports"

# Plain-text run logs, appended to in the working directory.
DOWNLOAD_LOG_FILE = "dataset_download_log.txt"
VALIDATION_LOG_FILE = "data_validation_log.txt"

# ─── DOWNLOAD PARAMETERS ─────────────────────────────────────────────────
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 2.0
RETRY_BACKOFF = 1.0  # 1.0 = fixed delay between attempts
REQUEST_TIMEOUT_SECONDS = 60
CHUNK_SIZE = 64 * 1024
DEFAULT_WORKERS = 4
USER_AGENT = "natsci-data/1.0"
ALLOWED_URL_SCHEMES = ("http", "https")

# Characters that cannot appear in a dataset directory or file name on any
# of the platforms the book supports.
ILLEGAL_PATH_CHARS = frozenset('<>:"|?*\0')

# ─── VALIDATION PARAMETERS ───────────────────────────────────────────────
SUPPORTED_EXTENSIONS = (".csv", ".xlsx")

# "structural": a dataset passes when it loads and is profiled; rule
#               failures are reported only.
# "strict":     a dataset passes only if every declared rule passes too.
SUCCESS_POLICIES = ("structural", "strict")
DEFAULT_SUCCESS_POLICY = "structural"

# Histograms embedded per report.
REPORT_MAX_HISTOGRAMS = 6


def default_log_level():
    return os.environ.get("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class FetchConfig:
    """Settings for one Fetcher run."""

    data_dir: str = DATA_DIR
    max_attempts: int = MAX_ATTEMPTS
    retry_delay: float = RETRY_DELAY_SECONDS
    backoff: float = RETRY_BACKOFF
    timeout: float = REQUEST_TIMEOUT_SECONDS
    workers: int = DEFAULT_WORKERS
    log_file: str | None = DOWNLOAD_LOG_FILE
    log_level: str = field(default_factory=default_log_level)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")


@dataclass(frozen=True)
class ValidationConfig:
    """Settings for one Validator run."""

    data_dir: str = DATA_DIR
    log_file: str | None = VALIDATION_LOG_FILE
    log_level: str = field(default_factory=default_log_level)
    success_policy: str = DEFAULT_SUCCESS_POLICY
    write_reports: bool = True
    combined_report: bool = True

    def __post_init__(self):
        if self.success_policy not in SUCCESS_POLICIES:
            raise ValueError(
                f"success_policy must be one of {SUCCESS_POLICIES}, "
                f"got {self.success_policy!r}"
            )
