"""Synchronization engine orchestrating incremental feed downloads."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import structlog

from feedsync.errors import ConfigError, FetchError, ProbeError, SanitizeError
from feedsync.ingestion.feed_client import FeedClient
from feedsync.ingestion.resource_list import load_resources
from feedsync.models.config import AppConfig
from feedsync.models.resource import (
    CacheEntry,
    ChangeReason,
    ChangeVerdict,
    Manifest,
    ManifestEntry,
    ManifestStatus,
    ResourceDescriptor,
)
from feedsync.processing.fingerprint import fingerprint_file
from feedsync.processing.sanitizer import CsvSanitizer
from feedsync.storage.diff_cache import DiffCacheStore
from feedsync.storage.manifest import ManifestWriter
from feedsync.storage.run_clock import RunClockStore
from feedsync.sync.change_detector import ChangeDetector
from feedsync.sync.models import ResourceOutcome, StatusReport, SyncReport
from feedsync.sync.staleness import StalenessPolicy
from feedsync.utils.io import remove_quietly

log = structlog.stdlib.get_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncEngine:
    """Keeps the local feed mirror current.

    One engine owns the diff cache mapping and the manifest for the duration
    of a run. Both are flushed once, at the end of ``run()``, together with
    the run clock; a run that never reaches that point leaves the previous
    state untouched, so the next run re-probes whatever was not recorded.
    """

    def __init__(
        self,
        resource_list_file: Path,
        data_dir: Path,
        client: FeedClient,
        sanitizer: CsvSanitizer,
        cache_store: DiffCacheStore,
        manifest_writer: ManifestWriter,
        staleness: StalenessPolicy,
        change_detector: ChangeDetector | None = None,
        max_workers: int = 1,
        remote_timestamp_url: str | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the sync engine.

        Args:
            resource_list_file: Newline-delimited feed URL list
            data_dir: Directory holding the mirrored feeds
            client: Client used to probe and download feeds
            sanitizer: Sanitizer producing the canonical copies
            cache_store: Diff cache persistence
            manifest_writer: Manifest persistence
            staleness: Whole-dataset freshness gate
            change_detector: Optional change detector (default rules if None)
            max_workers: Feeds processed concurrently (1 = sequential)
            remote_timestamp_url: Optional upstream last-updated marker for status()
            clock: Source of the current UTC time
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self._resource_list_file = resource_list_file
        self._data_dir = data_dir
        self._client = client
        self._sanitizer = sanitizer
        self._cache_store = cache_store
        self._manifest_writer = manifest_writer
        self._staleness = staleness
        self._change_detector = change_detector or ChangeDetector()
        self._max_workers = max_workers
        self._remote_timestamp_url = remote_timestamp_url
        self._clock = clock
        self._cancel_event = threading.Event()

        log.info("sync_engine_initialized", data_dir=str(data_dir), max_workers=max_workers)

    @classmethod
    def from_config(cls, config: AppConfig, client: FeedClient | None = None) -> "SyncEngine":
        """Build an engine and its collaborators from application configuration."""
        paths = config.paths
        client = client or FeedClient(
            probe_timeout=config.network.probe_timeout_seconds,
            fetch_timeout=config.network.fetch_timeout_seconds,
            user_agent=config.network.user_agent,
        )
        return cls(
            resource_list_file=paths.resource_list_file,
            data_dir=paths.data_dir,
            client=client,
            sanitizer=CsvSanitizer(
                disallowed_fields=config.sanitizer.disallowed_fields,
                delimiter=config.sanitizer.delimiter,
            ),
            cache_store=DiffCacheStore(paths.cache_file),
            manifest_writer=ManifestWriter(paths.manifest_file),
            staleness=StalenessPolicy(
                RunClockStore(paths.run_clock_file),
                freshness_window_hours=config.staleness.freshness_window_hours,
            ),
            max_workers=config.network.max_workers,
            remote_timestamp_url=config.discovery.remote_timestamp_url,
        )

    def cancel(self) -> None:
        """Stop the current run before the next resource starts."""
        log.warning("sync_run_cancel_requested")
        self._cancel_event.set()

    def run(self, force: bool = False) -> SyncReport:
        """
        Synchronize every feed in the resource list.

        This method:
        1. Reads the resource list (ConfigError propagates)
        2. Applies the freshness gate unless ``force`` is set
        3. Probes, decides, downloads and sanitizes each feed
        4. Writes the manifest, the diff cache and the run clock once

        Per-resource failures are recorded as ``failed`` and never abort the run.

        Args:
            force: Download every feed regardless of freshness and change signals

        Returns:
            SyncReport with per-resource outcomes and counts

        Raises:
            ConfigError: If the resource list is missing or unreadable
        """
        start_time = self._clock()
        self._cancel_event.clear()
        log.info("sync_run_started", force=force, start_time=start_time)

        resources = load_resources(self._resource_list_file, self._data_dir)
        if not resources:
            log.warning("resource_list_empty", resource_list_file=str(self._resource_list_file))
            return self._report(start_time, [], total=0, forced=force)

        if not self._staleness.should_run(force=force, now=start_time):
            return self._report(start_time, [], total=len(resources), forced=force, gated=True)

        cache = self._cache_store.load()
        outcomes = self._run_pipelines(resources, cache, force)

        if self._cancel_event.is_set() and len(outcomes) < len(resources):
            log.warning(
                "sync_run_cancelled",
                processed=len(outcomes),
                total_resources=len(resources),
            )
            return self._report(
                start_time, outcomes, total=len(resources), forced=force, cancelled=True
            )

        self._finalize(start_time, resources, outcomes, cache)
        report = self._report(start_time, outcomes, total=len(resources), forced=force)

        log.info(
            "sync_run_completed",
            total_resources=report.total_resources,
            downloaded=report.downloaded,
            skipped=report.skipped,
            failed=report.failed,
            duration_seconds=report.duration_seconds,
        )
        return report

    def _run_pipelines(
        self,
        resources: list[ResourceDescriptor],
        cache: dict[str, CacheEntry],
        force: bool,
    ) -> list[ResourceOutcome]:
        """Process every resource and apply the outcomes to ``cache``.

        Workers only compute outcomes; the cache mapping is mutated here, on
        the calling thread.
        """
        outcomes: list[ResourceOutcome] = []

        if self._max_workers == 1:
            for resource in resources:
                if self._cancel_event.is_set():
                    break
                outcome = self._process_resource(resource, cache.get(resource.url), force)
                self._apply(outcome, cache)
                outcomes.append(outcome)
            return outcomes

        with ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="feedsync"
        ) as executor:
            futures = [
                executor.submit(self._process_if_active, resource, cache.get(resource.url), force)
                for resource in resources
            ]
            for future in futures:
                outcome = future.result()
                if outcome is None:
                    continue
                self._apply(outcome, cache)
                outcomes.append(outcome)
        return outcomes

    def _process_if_active(
        self, resource: ResourceDescriptor, cached: CacheEntry | None, force: bool
    ) -> ResourceOutcome | None:
        if self._cancel_event.is_set():
            return None
        return self._process_resource(resource, cached, force)

    def _process_resource(
        self, resource: ResourceDescriptor, cached: CacheEntry | None, force: bool
    ) -> ResourceOutcome:
        """Probe, decide and, when needed, download and sanitize one feed."""
        try:
            signals = self._client.probe(resource.url)
        except ProbeError as e:
            log.warning("resource_probe_failed", url=resource.url, name=resource.name, error=str(e))
            signals = None

        verdict = self._change_detector.detect(resource, signals, cached)
        if force and not verdict.changed:
            verdict = ChangeVerdict(changed=True, reason=ChangeReason.FORCED)

        if not verdict.changed:
            log.info(
                "resource_skipped",
                url=resource.url,
                name=resource.name,
                reason=verdict.reason.value,
            )
            return ResourceOutcome(
                resource=resource,
                status=ManifestStatus.SKIPPED,
                verdict=verdict,
                signals=signals,
                finished_at=self._clock(),
            )

        log.info(
            "resource_changed",
            url=resource.url,
            name=resource.name,
            reason=verdict.reason.value,
        )

        temp_path = self._data_dir / f"temp_{resource.name}"
        try:
            self._client.fetch(resource.url, temp_path)
            result = self._sanitizer.sanitize(temp_path, resource.local_path)
            content_hash = fingerprint_file(resource.local_path)
        except (FetchError, SanitizeError, OSError) as e:
            log.error(
                "resource_download_failed",
                url=resource.url,
                name=resource.name,
                reason=verdict.reason.value,
                error=str(e),
            )
            return ResourceOutcome(
                resource=resource,
                status=ManifestStatus.FAILED,
                verdict=verdict,
                signals=signals,
                error=str(e),
                finished_at=self._clock(),
            )
        finally:
            remove_quietly(temp_path)

        log.info(
            "resource_downloaded",
            url=resource.url,
            name=resource.name,
            reason=verdict.reason.value,
            row_count=result.row_count,
            removed_fields=result.removed_fields,
        )
        return ResourceOutcome(
            resource=resource,
            status=ManifestStatus.DOWNLOADED,
            verdict=verdict,
            signals=signals,
            content_hash=content_hash,
            finished_at=self._clock(),
        )

    def _apply(self, outcome: ResourceOutcome, cache: dict[str, CacheEntry]) -> None:
        if outcome.status != ManifestStatus.DOWNLOADED or outcome.content_hash is None:
            return
        cache[outcome.resource.url] = CacheEntry.from_download(
            outcome.signals, outcome.content_hash, outcome.finished_at
        )

    def _finalize(
        self,
        start_time: datetime,
        resources: list[ResourceDescriptor],
        outcomes: list[ResourceOutcome],
        cache: dict[str, CacheEntry],
    ) -> None:
        """Write the manifest, persist the diff cache and advance the run clock."""
        manifest = Manifest(last_updated=start_time, total_files=len(resources))
        for outcome in outcomes:
            manifest.files.append(
                ManifestEntry(
                    name=outcome.resource.name,
                    url=outcome.resource.url,
                    status=outcome.status,
                    timestamp=outcome.finished_at,
                    downloaded_at=(
                        outcome.finished_at
                        if outcome.status == ManifestStatus.DOWNLOADED
                        else None
                    ),
                    reason=outcome.reason,
                )
            )

        self._manifest_writer.write(manifest)
        self._cache_store.save(cache)
        self._staleness.mark_run(self._clock())

    def _report(
        self,
        start_time: datetime,
        outcomes: list[ResourceOutcome],
        total: int,
        forced: bool,
        gated: bool = False,
        cancelled: bool = False,
    ) -> SyncReport:
        end_time = self._clock()
        return SyncReport(
            total_resources=total,
            downloaded=sum(1 for o in outcomes if o.status == ManifestStatus.DOWNLOADED),
            skipped=sum(1 for o in outcomes if o.status == ManifestStatus.SKIPPED),
            failed=sum(1 for o in outcomes if o.status == ManifestStatus.FAILED),
            gated=gated,
            cancelled=cancelled,
            forced=forced,
            duration_seconds=max((end_time - start_time).total_seconds(), 0.0),
            start_time=start_time,
            end_time=end_time,
            outcomes=outcomes,
            errors=[
                f"{o.resource.name} ({o.resource.url}): {o.error}"
                for o in outcomes
                if o.error is not None
            ],
        )

    def status(self) -> StatusReport:
        """Summarize dataset freshness and the outcome of the last run."""
        now = self._clock()
        manifest = self._manifest_writer.read()

        try:
            resource_count: int | None = len(
                load_resources(self._resource_list_file, self._data_dir)
            )
        except ConfigError as e:
            log.warning("status_resource_list_unavailable", error=str(e))
            resource_count = None

        report = StatusReport(
            is_fresh=self._staleness.is_fresh(now),
            freshness_window_hours=self._staleness.freshness_window_hours,
            last_run_at=self._staleness.last_run_at(),
            hours_since_last_run=self._staleness.hours_since_last_run(now),
            resource_count=resource_count,
            remote_last_updated=self._remote_last_updated(),
        )
        if manifest is not None:
            report.manifest_updated_at = manifest.last_updated
            report.manifest_total = manifest.total_files
            report.manifest_downloaded = manifest.count(ManifestStatus.DOWNLOADED)
            report.manifest_skipped = manifest.count(ManifestStatus.SKIPPED)
            report.manifest_failed = manifest.count(ManifestStatus.FAILED)
        return report

    def _remote_last_updated(self) -> str | None:
        if not self._remote_timestamp_url:
            return None
        try:
            return self._client.fetch_text(self._remote_timestamp_url).strip() or None
        except FetchError as e:
            log.warning(
                "remote_timestamp_unavailable",
                url=self._remote_timestamp_url,
                error=str(e),
            )
            return None

    def clear_cache(self) -> None:
        """Reset the diff cache, forcing every feed to be re-evaluated."""
        self._cache_store.clear()
