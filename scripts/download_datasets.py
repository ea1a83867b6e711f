#!/usr/bin/env python3
"""
Download every dataset used in the book into ./data.

Each dataset lands in its own subdirectory alongside CITATION.txt and
METADATA.json; a README.md describing the data directory is (re)written at
the end. A detailed log is appended to dataset_download_log.txt.

Usage:
    python scripts/download_datasets.py
    python scripts/download_datasets.py --parallel --workers 4
    python scripts/download_datasets.py --only Forestry Agriculture
"""

import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from natsci_data.fetcher import main


if __name__ == "__main__":
    sys.exit(main())
