"""Property-based tests for the staleness policy.

Feature: feed-sync, freshness gate
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from feedsync.storage.run_clock import RunClockStore
from feedsync.sync.staleness import StalenessPolicy

LAST_RUN = datetime(2025, 1, 10, 6, 0, tzinfo=timezone.utc)


def _policy(tmp_path: Path, window: float = 24.0) -> StalenessPolicy:
    store = RunClockStore(tmp_path / "last-update.json")
    store.update(LAST_RUN)
    return StalenessPolicy(store, freshness_window_hours=window)


def test_never_run_is_not_fresh(tmp_path: Path) -> None:
    policy = StalenessPolicy(RunClockStore(tmp_path / "last-update.json"))

    assert policy.is_fresh() is False
    assert policy.should_run() is True
    assert policy.hours_since_last_run() is None


@given(minutes=st.integers(min_value=0, max_value=24 * 60 - 1))
@settings(deadline=None)
def test_within_window_is_fresh(minutes: int) -> None:
    with tempfile.TemporaryDirectory() as tmp:
        policy = _policy(Path(tmp))
        now = LAST_RUN + timedelta(minutes=minutes)

        assert policy.is_fresh(now) is True
        assert policy.should_run(force=False, now=now) is False


@given(hours=st.floats(min_value=24.0, max_value=24.0 * 365))
@settings(deadline=None)
def test_outside_window_is_stale(hours: float) -> None:
    with tempfile.TemporaryDirectory() as tmp:
        policy = _policy(Path(tmp))
        now = LAST_RUN + timedelta(hours=hours)

        assert policy.is_fresh(now) is False
        assert policy.should_run(now=now) is True


def test_force_bypasses_gate(tmp_path: Path) -> None:
    policy = _policy(tmp_path)

    assert policy.should_run(force=True, now=LAST_RUN + timedelta(minutes=1)) is True


def test_zero_window_never_fresh(tmp_path: Path) -> None:
    policy = _policy(tmp_path, window=0)

    assert policy.is_fresh(LAST_RUN) is False


def test_mark_run_advances_clock(tmp_path: Path) -> None:
    policy = _policy(tmp_path)
    later = LAST_RUN + timedelta(days=3)

    policy.mark_run(later)

    assert policy.last_run_at() == later
    assert policy.hours_since_last_run(later + timedelta(hours=2)) == 2.0
