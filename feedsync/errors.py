"""Error taxonomy for feed synchronization."""


class FeedSyncError(Exception):
    """Base class for all feedsync errors."""


class ConfigError(FeedSyncError):
    """Raised when configuration or the resource list is invalid or missing.

    This is the only error that aborts a run; it surfaces as a non-zero
    process exit code.
    """


class ProbeError(FeedSyncError):
    """Raised when the metadata (HEAD) request for a resource fails."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Probe failed for {url}: {message}")
        self.url = url


class FetchError(FeedSyncError):
    """Raised when downloading a resource body fails.

    ``kind`` is one of ``status``, ``transport`` or ``timeout``.
    """

    def __init__(self, url: str, kind: str, message: str, status_code: int | None = None):
        super().__init__(f"Fetch failed for {url} ({kind}): {message}")
        self.url = url
        self.kind = kind
        self.status_code = status_code


class SanitizeError(FeedSyncError):
    """Raised when a downloaded payload cannot be parsed as CSV."""


class CacheCorruptionError(FeedSyncError):
    """Raised when the persisted diff cache cannot be read."""
