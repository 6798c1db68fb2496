"""Pydantic models for feed resources and their synchronization metadata."""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Base model persisted with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResourceDescriptor(BaseModel):
    """A remote CSV feed and the local path it is mirrored to."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(default=..., description="Absolute URL of the remote CSV feed")
    name: str = Field(default=..., description="File name of the canonical local copy")
    local_path: Path = Field(default=..., description="Canonical local path of the feed")


class RemoteSignals(BaseModel):
    """Metadata observed on the remote resource by a probe."""

    entity_tag: str | None = Field(default=None, description="ETag header value")
    last_modified: datetime | None = Field(default=None, description="Last-Modified header")
    byte_length: int | None = Field(default=None, ge=0, description="Content-Length header")


class CacheEntry(_CamelModel):
    """Last-known remote signals and local content hash for one resource.

    ``content_hash`` is the fingerprint of the bytes at the resource's local
    path as of ``last_downloaded_at``.
    """

    entity_tag: str | None = None
    last_modified: datetime | None = None
    byte_length: int | None = Field(default=None, ge=0)
    content_hash: str | None = None
    last_downloaded_at: datetime

    @classmethod
    def from_download(
        cls, signals: RemoteSignals | None, content_hash: str, downloaded_at: datetime
    ) -> "CacheEntry":
        """Build a cache entry from the probe signals of a completed download."""
        signals = signals or RemoteSignals()
        return cls(
            entity_tag=signals.entity_tag,
            last_modified=signals.last_modified,
            byte_length=signals.byte_length,
            content_hash=content_hash,
            last_downloaded_at=downloaded_at,
        )


class ChangeReason(str, Enum):
    """Why a resource was classified as changed or unchanged."""

    NO_LOCAL_COPY = "NoLocalCopy"
    PROBE_FAILED = "ProbeFailed"
    ENTITY_TAG_MISMATCH = "EntityTagMismatch"
    LAST_MODIFIED_NEWER = "LastModifiedNewer"
    BYTE_LENGTH_MISMATCH = "ByteLengthMismatch"
    LOCAL_HASH_MISMATCH = "LocalHashMismatch"
    NO_CHANGE_DETECTED = "NoChangeDetected"
    FORCED = "Forced"


class ChangeVerdict(BaseModel):
    """Outcome of the change decision for one resource in one run."""

    model_config = ConfigDict(frozen=True)

    changed: bool
    reason: ChangeReason


class ManifestStatus(str, Enum):
    """Per-resource outcome recorded in the manifest."""

    DOWNLOADED = "downloaded"
    SKIPPED = "skipped"
    FAILED = "failed"


class ManifestEntry(_CamelModel):
    """Outcome of one resource in the last run."""

    name: str
    url: str
    status: ManifestStatus
    timestamp: datetime
    downloaded_at: datetime | None = None
    reason: str | None = None


class Manifest(_CamelModel):
    """Report of the last synchronization run, overwritten every run."""

    last_updated: datetime
    total_files: int = Field(default=0, ge=0)
    files: list[ManifestEntry] = Field(default_factory=list)

    def count(self, status: ManifestStatus) -> int:
        """Count entries with the given status."""
        return sum(1 for entry in self.files if entry.status == status)


class RunClock(BaseModel):
    """Time of the last completed run.

    ``date`` and ``time`` are redundant human-readable copies of ``timestamp``.
    """

    timestamp: datetime
    date: str
    time: str

    @classmethod
    def at(cls, moment: datetime) -> "RunClock":
        """Create a run clock record for the given moment."""
        return cls(
            timestamp=moment,
            date=moment.strftime("%Y-%m-%d"),
            time=moment.strftime("%H:%M:%S %Z").strip(),
        )
