"""Shared utilities for configuration, logging, file writes and retries"""

from feedsync.utils.io import atomic_write_text, remove_quietly
from feedsync.utils.retry import exponential_backoff_retry

__all__ = ["atomic_write_text", "exponential_backoff_retry", "remove_quietly"]
