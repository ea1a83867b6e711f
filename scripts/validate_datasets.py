#!/usr/bin/env python3
"""
Validate the downloaded datasets and write HTML data quality reports.

Per-dataset reports go to data/<dataset>/validation/, the combined report
to data/validation_reports/. A detailed log is appended to
data_validation_log.txt.

Usage:
    python scripts/validate_datasets.py
    python scripts/validate_datasets.py --strict-rules
    python scripts/validate_datasets.py --only Forestry --no-combined
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from natsci_data.validator import main


if __name__ == "__main__":
    sys.exit(main())
