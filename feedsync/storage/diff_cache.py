"""Persistent diff cache: last-known remote signals and content hash per feed."""

import json
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from feedsync.errors import CacheCorruptionError
from feedsync.models.resource import CacheEntry
from feedsync.utils.io import atomic_write_text

log = structlog.stdlib.get_logger()

_CACHE_ADAPTER = TypeAdapter(dict[str, CacheEntry])


class DiffCacheStore:
    """JSON file mapping feed URL to its CacheEntry.

    A missing or corrupt file is treated as a first run: ``load()`` returns an
    empty mapping and never raises for bad content.
    """

    def __init__(self, cache_file: Path):
        self._cache_file = cache_file

    @property
    def path(self) -> Path:
        return self._cache_file

    def load(self) -> dict[str, CacheEntry]:
        """Load the persisted cache, or an empty mapping if missing or corrupt."""
        try:
            entries = self._read()
        except CacheCorruptionError as e:
            log.warning("diff_cache_corrupt_starting_empty", cache_file=str(self._cache_file), error=str(e))
            return {}

        log.info("diff_cache_loaded", cache_file=str(self._cache_file), entry_count=len(entries))
        return entries

    def _read(self) -> dict[str, CacheEntry]:
        try:
            raw = self._cache_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            raise CacheCorruptionError(f"Cannot read {self._cache_file}: {e}") from e

        try:
            return _CACHE_ADAPTER.validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise CacheCorruptionError(f"Invalid diff cache {self._cache_file}: {e}") from e

    def save(self, entries: dict[str, CacheEntry]) -> None:
        """Persist the whole mapping, pretty printed for operators."""
        payload = {
            url: entry.model_dump(mode="json", by_alias=True, exclude_none=True)
            for url, entry in sorted(entries.items())
        }
        atomic_write_text(self._cache_file, json.dumps(payload, indent=2) + "\n")
        log.info("diff_cache_saved", cache_file=str(self._cache_file), entry_count=len(entries))

    def clear(self) -> None:
        """Reset the cache so every feed is re-evaluated on the next run."""
        self.save({})
        log.info("diff_cache_cleared", cache_file=str(self._cache_file))
