"""
Property-based tests using Hypothesis for hashing, profiling and retries.

These tests verify invariants that must hold for ALL valid inputs,
not just specific examples.

Run with: pytest tests/test_property_based.py -v
"""

import hashlib

import numpy as np
import pandas as pd
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from natsci_data.file_utils import md5_file, path_problem
from natsci_data.profiling import profile_table
from natsci_data.retry import Attempt, retry_with_backoff


# ── Hashing ─────────────────────────────────────────────────────────────


class TestMd5Properties:

    @settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=50)
    @given(content=st.binary(max_size=200_000))
    def test_chunked_hash_matches_one_shot(self, tmp_path, content):
        """Chunked reading never changes the digest."""
        path = tmp_path / "blob.bin"
        path.write_bytes(content)
        assert md5_file(path, chunk_size=1024) == hashlib.md5(content).hexdigest()


# ── Missing-value accounting ────────────────────────────────────────────


cells = st.one_of(st.none(), st.floats(allow_nan=False, allow_infinity=False))


class TestProfileProperties:

    @given(
        n_rows=st.integers(min_value=0, max_value=20),
        n_cols=st.integers(min_value=1, max_value=6),
        data=st.data(),
    )
    def test_missing_share_bounds(self, n_rows, n_cols, data):
        values = data.draw(st.lists(
            st.lists(cells, min_size=n_cols, max_size=n_cols),
            min_size=n_rows, max_size=n_rows,
        ))
        df = pd.DataFrame(values, columns=[f"c{i}" for i in range(n_cols)], dtype=float)
        profile = profile_table(df)

        expected_missing = sum(v is None for row in values for v in row)
        assert profile.n_missing == expected_missing
        assert 0.0 <= profile.pct_missing <= 100.0
        if n_rows:
            assert np.isclose(profile.pct_missing, 100 * expected_missing / (n_rows * n_cols))
        else:
            assert profile.pct_missing == 0.0


# ── Retry ───────────────────────────────────────────────────────────────


class TestRetryProperties:

    @given(
        max_attempts=st.integers(min_value=1, max_value=8),
        succeed_on=st.integers(min_value=1, max_value=10),
    )
    def test_attempt_count_bounded(self, max_attempts, succeed_on):
        """Never more than max_attempts calls; success as soon as it is reachable."""
        calls = []

        def fn(n):
            calls.append(n)
            return Attempt.success() if n >= succeed_on else Attempt.retryable("no")

        outcome = retry_with_backoff(fn, max_attempts=max_attempts, delay=0)

        assert len(calls) == outcome.attempts <= max_attempts
        assert outcome.ok == (succeed_on <= max_attempts)


# ── Path safety ─────────────────────────────────────────────────────────


class TestPathProperties:

    @given(
        prefix=st.text(max_size=10),
        bad=st.sampled_from(list('<>:"|?*')),
        suffix=st.text(max_size=10),
    )
    def test_illegal_characters_always_rejected(self, prefix, bad, suffix):
        assert path_problem(prefix + bad + suffix) is not None
