"""Persistence of the run clock that gates the staleness policy."""

import json
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import ValidationError

from feedsync.models.resource import RunClock
from feedsync.utils.io import atomic_write_text

log = structlog.stdlib.get_logger()


class RunClockStore:
    """Reads and writes the ``{timestamp, date, time}`` record of the last run."""

    def __init__(self, run_clock_file: Path):
        self._run_clock_file = run_clock_file

    @property
    def path(self) -> Path:
        return self._run_clock_file

    def read(self) -> RunClock | None:
        """Return the last run clock, or None if missing or unreadable."""
        try:
            raw = self._run_clock_file.read_text(encoding="utf-8")
            return RunClock.model_validate_json(raw)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            log.warning("run_clock_unreadable", run_clock_file=str(self._run_clock_file), error=str(e))
            return None

    def update(self, moment: datetime) -> RunClock:
        clock = RunClock.at(moment)
        atomic_write_text(
            self._run_clock_file,
            json.dumps(clock.model_dump(mode="json"), indent=2) + "\n",
        )
        log.info("run_clock_updated", timestamp=clock.timestamp)
        return clock
