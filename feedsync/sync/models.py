"""Data models for synchronization runs."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from feedsync.models.resource import (
    CacheEntry,
    ChangeVerdict,
    ManifestStatus,
    RemoteSignals,
    ResourceDescriptor,
)


class DecisionInputs(BaseModel):
    """Everything the change decision looks at for one resource."""

    model_config = ConfigDict(frozen=True)

    signals: RemoteSignals | None = Field(
        default=None, description="Probe result; None when the probe failed"
    )
    cached: CacheEntry | None = Field(default=None, description="Prior diff cache entry")
    local_hash: str | None = Field(default=None, description="Fingerprint of the local copy")
    local_size: int | None = Field(default=None, ge=0, description="Size of the local copy")

    @property
    def probe_failed(self) -> bool:
        return self.signals is None

    @property
    def entity_tags_match(self) -> bool:
        """True when both entity tags are known and equal."""
        if self.signals is None or self.cached is None:
            return False
        remote, cached = self.signals.entity_tag, self.cached.entity_tag
        return remote is not None and cached is not None and remote == cached


class ResourceOutcome(BaseModel):
    """Result of the per-resource pipeline, applied by the engine after the fact."""

    resource: ResourceDescriptor
    status: ManifestStatus
    verdict: ChangeVerdict | None = None
    signals: RemoteSignals | None = None
    content_hash: str | None = None
    error: str | None = None
    finished_at: datetime

    @property
    def reason(self) -> str | None:
        if self.error is not None:
            return self.error
        return self.verdict.reason.value if self.verdict else None


class SyncReport(BaseModel):
    """Report of one synchronization run."""

    total_resources: int = Field(default=0, ge=0, description="Feeds in the resource list")
    downloaded: int = Field(default=0, ge=0, description="Feeds downloaded and sanitized")
    skipped: int = Field(default=0, ge=0, description="Feeds found unchanged")
    failed: int = Field(default=0, ge=0, description="Feeds whose download or sanitize failed")
    gated: bool = Field(default=False, description="Run skipped by the freshness window")
    cancelled: bool = Field(default=False, description="Run aborted before finalizing")
    forced: bool = Field(default=False, description="Change detection was bypassed")
    duration_seconds: float = Field(default=0.0, ge=0.0, description="Run duration in seconds")
    start_time: datetime = Field(..., description="Run start timestamp")
    end_time: datetime = Field(..., description="Run end timestamp")
    outcomes: list[ResourceOutcome] = Field(default_factory=list)
    errors: list[str] = Field(
        default_factory=list, description="Per-resource errors encountered during the run"
    )

    @property
    def processed(self) -> int:
        return self.downloaded + self.skipped + self.failed

    @property
    def success(self) -> bool:
        """Check if the run completed without per-resource errors."""
        return not self.cancelled and len(self.errors) == 0


class StatusReport(BaseModel):
    """Freshness and last-run summary shown by the status command."""

    is_fresh: bool
    freshness_window_hours: float
    last_run_at: datetime | None = None
    hours_since_last_run: float | None = None
    resource_count: int | None = None
    manifest_updated_at: datetime | None = None
    manifest_total: int = 0
    manifest_downloaded: int = 0
    manifest_skipped: int = 0
    manifest_failed: int = 0
    remote_last_updated: str | None = None
