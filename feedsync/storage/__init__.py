"""Durable state: diff cache, manifest and run clock"""

from feedsync.storage.diff_cache import DiffCacheStore
from feedsync.storage.manifest import ManifestWriter
from feedsync.storage.run_clock import RunClockStore

__all__ = ["DiffCacheStore", "ManifestWriter", "RunClockStore"]
