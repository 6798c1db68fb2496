"""Data models for the feed synchronization engine."""

from feedsync.models.config import (
    AppConfig,
    DiscoveryConfig,
    LoggingConfig,
    NetworkConfig,
    PathsConfig,
    SanitizerConfig,
    StalenessConfig,
)
from feedsync.models.resource import (
    CacheEntry,
    ChangeReason,
    ChangeVerdict,
    Manifest,
    ManifestEntry,
    ManifestStatus,
    RemoteSignals,
    ResourceDescriptor,
    RunClock,
)

__all__ = [
    "ResourceDescriptor",
    "RemoteSignals",
    "CacheEntry",
    "ChangeReason",
    "ChangeVerdict",
    "Manifest",
    "ManifestEntry",
    "ManifestStatus",
    "RunClock",
    "AppConfig",
    "PathsConfig",
    "NetworkConfig",
    "SanitizerConfig",
    "StalenessConfig",
    "DiscoveryConfig",
    "LoggingConfig",
]
