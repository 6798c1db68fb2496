"""Manifest of the last synchronization run."""

import json
from pathlib import Path

import structlog
from pydantic import ValidationError

from feedsync.models.resource import Manifest
from feedsync.utils.io import atomic_write_text

log = structlog.stdlib.get_logger()


class ManifestWriter:
    """Writes and reads the manifest file, overwritten on every run."""

    def __init__(self, manifest_file: Path):
        self._manifest_file = manifest_file

    @property
    def path(self) -> Path:
        return self._manifest_file

    def write(self, manifest: Manifest) -> None:
        payload = manifest.model_dump(mode="json", by_alias=True, exclude_none=True)
        atomic_write_text(self._manifest_file, json.dumps(payload, indent=2) + "\n")
        log.info(
            "manifest_written",
            manifest_file=str(self._manifest_file),
            total_files=manifest.total_files,
        )

    def read(self) -> Manifest | None:
        """Read the last manifest; None when absent or unreadable."""
        try:
            raw = self._manifest_file.read_text(encoding="utf-8")
            return Manifest.model_validate_json(raw)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            log.warning("manifest_unreadable", manifest_file=str(self._manifest_file), error=str(e))
            return None
