"""Shared fixtures: an in-memory remote feed server and engine wiring."""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import structlog

from feedsync.errors import FetchError, ProbeError
from feedsync.models.resource import RemoteSignals
from feedsync.processing.sanitizer import CsvSanitizer
from feedsync.storage.diff_cache import DiffCacheStore
from feedsync.storage.manifest import ManifestWriter
from feedsync.storage.run_clock import RunClockStore
from feedsync.sync.staleness import StalenessPolicy
from feedsync.sync.sync_coordinator import SyncEngine

SAMPLE_CSV = (
    "productId,name,extDescription,marketPrice\r\n"
    '1,"Card, Foil","Long ""quoted"" text\nover two lines",1.25\r\n'
    "2,Plain Card,short,0.10\r\n"
)


class FakeFeed:
    def __init__(self, body: bytes, etag: str | None = '"v1"', last_modified=None):
        self.body = body
        self.etag = etag
        self.last_modified = last_modified
        self.fail_probe = False
        self.fail_fetch = False
        self.send_length = True


class FakeFeedClient:
    """Stands in for FeedClient, serving feeds from memory and counting calls."""

    def __init__(self):
        self.feeds: dict[str, FakeFeed] = {}
        self.texts: dict[str, str] = {}
        self.probe_calls: list[str] = []
        self.fetch_calls: list[str] = []
        self.on_probe = None

    def add(self, url: str, body: str = SAMPLE_CSV, **kwargs) -> FakeFeed:
        feed = FakeFeed(body.encode("utf-8"), **kwargs)
        self.feeds[url] = feed
        return feed

    def probe(self, url: str) -> RemoteSignals:
        self.probe_calls.append(url)
        if self.on_probe is not None:
            self.on_probe(url)
        feed = self.feeds[url]
        if feed.fail_probe:
            raise ProbeError(url, "connection refused")
        return RemoteSignals(
            entity_tag=feed.etag,
            last_modified=feed.last_modified,
            byte_length=len(feed.body) if feed.send_length else None,
        )

    def fetch(self, url: str, destination: Path) -> int:
        self.fetch_calls.append(url)
        feed = self.feeds[url]
        if feed.fail_fetch:
            destination.write_bytes(feed.body[:5])
            raise FetchError(url, "status", "HTTP 500", status_code=500)
        destination.write_bytes(feed.body)
        return len(feed.body)

    def fetch_text(self, url: str) -> str:
        if url not in self.texts:
            raise FetchError(url, "status", "HTTP 404", status_code=404)
        return self.texts[url]

    def close(self) -> None:
        pass


class SteppingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def fake_client() -> FakeFeedClient:
    return FakeFeedClient()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "price-guide"
    path.mkdir()
    return path


@pytest.fixture
def resource_list(tmp_path: Path) -> Path:
    return tmp_path / "csv-urls.csv"


@pytest.fixture
def make_engine(resource_list: Path, data_dir: Path, fake_client: FakeFeedClient):
    """Factory building a SyncEngine over the fake client and temp directories."""

    def _make(freshness_window_hours: float = 0.0, max_workers: int = 1, **kwargs) -> SyncEngine:
        return SyncEngine(
            resource_list_file=resource_list,
            data_dir=data_dir,
            client=fake_client,
            sanitizer=CsvSanitizer(disallowed_fields=["extDescription"]),
            cache_store=DiffCacheStore(data_dir / "diff-cache.json"),
            manifest_writer=ManifestWriter(data_dir / "manifest.json"),
            staleness=StalenessPolicy(
                RunClockStore(data_dir / "last-update.json"),
                freshness_window_hours=freshness_window_hours,
            ),
            max_workers=max_workers,
            **kwargs,
        )

    return _make


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo configure_logging so handlers never outlive a test's captured stdout."""
    yield
    structlog.reset_defaults()
    logging.basicConfig(level=logging.WARNING, force=True)
