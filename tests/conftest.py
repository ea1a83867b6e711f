"""
Shared fixtures for fetcher and validator tests.

Provides a scripted stand-in for requests.Session, small fixture tables,
and temporary data roots so each test module can exercise download and
validation logic without touching the network.
"""

import logging

import pandas as pd
import pytest
import requests

from natsci_data.config import FetchConfig, ValidationConfig
from natsci_data.datasets import DatasetDescriptor, ValidationEntry
from natsci_data.logging_config import PACKAGE_LOGGER, reset_logging


# ---------------------------------------------------------------------------
# Fake HTTP layer
# ---------------------------------------------------------------------------
# 3 rows x 2 columns, exactly one missing cell.
SAMPLE_CSV = b"a,b\n1,x\n2,\n3,z\n"


class FakeResponse:
    """Minimal streamed response: status code plus a body split into chunks."""

    def __init__(self, status_code=200, body=b"", chunk_size=4):
        self.status_code = status_code
        self._body = body
        self._chunk_size = chunk_size
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.closed = True

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(
                f"{self.status_code} Error for url", response=self
            )

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self._body), self._chunk_size):
            yield self._body[i:i + self._chunk_size]


class FakeSession:
    """Replays a script of responses (or exceptions) per URL.

    ``routes`` maps a URL to a list of FakeResponse or Exception items; the
    last item repeats once the list is exhausted.
    """

    def __init__(self, routes=None):
        self.routes = {url: list(items) for url, items in (routes or {}).items()}
        self.calls = []
        self.closed = False

    def get(self, url, stream=False, timeout=None):
        self.calls.append(url)
        items = self.routes.get(url)
        if not items:
            return FakeResponse(404)
        item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True

    def count(self, url):
        return sum(1 for u in self.calls if u == url)


@pytest.fixture
def fake_session():
    """Factory: ``fake_session({url: [FakeResponse(...), ...]})``."""
    return FakeSession


# ---------------------------------------------------------------------------
# Configs and descriptors
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Every test starts and ends with an unconfigured package logger."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def capture_info(caplog):
    caplog.set_level(logging.DEBUG, logger=PACKAGE_LOGGER)
    return caplog


@pytest.fixture
def data_root(tmp_path):
    root = tmp_path / "data"
    root.mkdir()
    return root


@pytest.fixture
def fetch_config(data_root):
    """No waiting between attempts and no run log file."""
    return FetchConfig(data_dir=str(data_root), retry_delay=0, log_file=None)


@pytest.fixture
def validation_config(data_root):
    """No HTML output and no run log file."""
    return ValidationConfig(
        data_dir=str(data_root),
        log_file=None,
        write_reports=False,
        combined_report=False,
    )


@pytest.fixture
def make_descriptor():
    def _make(name="T", url="https://example.org/t.csv", **kwargs):
        kwargs.setdefault("directory", name.lower())
        kwargs.setdefault("filename", f"{name.lower()}.csv")
        kwargs.setdefault("citation_source", "Example Source")
        kwargs.setdefault("citation_text", "Example, A. (2020). Example data.")
        kwargs.setdefault("description", "Example table.")
        return DatasetDescriptor(name=name, source_url=url, **kwargs)
    return _make


# ---------------------------------------------------------------------------
# Fixture tables
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_csv(data_root):
    """``<data_root>/t/t.csv`` with 3 rows, 2 columns and one missing value."""
    path = data_root / "t" / "t.csv"
    path.parent.mkdir()
    path.write_bytes(SAMPLE_CSV)
    return path


@pytest.fixture
def write_table(data_root):
    """Factory: write a DataFrame as CSV under ``<data_root>/<name>/``."""
    def _write(df, name="t", filename=None):
        directory = data_root / name
        directory.mkdir(exist_ok=True)
        path = directory / (filename or f"{name}.csv")
        df.to_csv(path, index=False)
        return path
    return _write


@pytest.fixture
def entry_for():
    def _entry(path, name="T", **kwargs):
        return ValidationEntry(name=name, path=str(path), **kwargs)
    return _entry


@pytest.fixture
def forest_df():
    """Forest inventory shaped table that satisfies every forestry rule."""
    n = 20
    return pd.DataFrame({
        "ID": range(1, n + 1),
        "Species": ["Pinus sylvestris", "Picea abies"] * (n // 2),
        "Tree_Density_per_ha": [100.0 + 10 * i for i in range(n)],
        "Aboveground_Tree_Carbon_ton_per_ha": [20.0 + 2 * i for i in range(n)],
    })
