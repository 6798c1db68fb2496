"""Whole-dataset freshness gate based on the time of the last completed run."""

from datetime import datetime, timedelta, timezone

import structlog

from feedsync.storage.run_clock import RunClockStore

log = structlog.stdlib.get_logger()


class StalenessPolicy:
    """Skips probing entirely when the last run is within the freshness window."""

    def __init__(self, run_clock_store: RunClockStore, freshness_window_hours: float = 24.0):
        self._store = run_clock_store
        self._window = timedelta(hours=freshness_window_hours)

    @property
    def freshness_window_hours(self) -> float:
        return self._window.total_seconds() / 3600

    def last_run_at(self) -> datetime | None:
        clock = self._store.read()
        if clock is None:
            return None
        timestamp = clock.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return timestamp

    def hours_since_last_run(self, now: datetime | None = None) -> float | None:
        last = self.last_run_at()
        if last is None:
            return None
        now = now or datetime.now(timezone.utc)
        return (now - last).total_seconds() / 3600

    def is_fresh(self, now: datetime | None = None) -> bool:
        """True if a run completed less than the freshness window ago."""
        hours = self.hours_since_last_run(now)
        if hours is None:
            return False
        return hours < self._window.total_seconds() / 3600

    def should_run(self, force: bool = False, now: datetime | None = None) -> bool:
        """Whether a run should proceed; ``force`` bypasses the gate entirely."""
        if force:
            return True
        if self.is_fresh(now):
            log.info(
                "dataset_fresh_skipping_run",
                hours_since_last_run=round(self.hours_since_last_run(now) or 0.0, 2),
                freshness_window_hours=self.freshness_window_hours,
            )
            return False
        return True

    def mark_run(self, now: datetime | None = None) -> None:
        self._store.update(now or datetime.now(timezone.utc))
