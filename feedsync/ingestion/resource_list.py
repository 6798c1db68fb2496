"""Reading the feed list and discovering feeds from a products sheet."""

import csv
import io
from pathlib import Path

import structlog

from feedsync.errors import ConfigError, FetchError
from feedsync.ingestion.feed_client import FeedClient
from feedsync.models.resource import ResourceDescriptor
from feedsync.utils.io import atomic_write_text
from feedsync.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


def read_resource_urls(list_path: Path) -> list[str]:
    """
    Read the newline-delimited feed URL list.

    Blank lines and surrounding whitespace are ignored.

    Raises:
        ConfigError: If the file is missing or unreadable
    """
    try:
        text = list_path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Resource list not found: {list_path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Resource list unreadable: {list_path}: {e}") from e

    urls = [line.strip() for line in text.splitlines()]
    return [url for url in urls if url]


def build_descriptors(urls: list[str], data_dir: Path) -> list[ResourceDescriptor]:
    """Map each URL to its canonical local file, set_<n>.csv by list position."""
    descriptors = []
    for index, url in enumerate(urls, start=1):
        name = f"set_{index}.csv"
        descriptors.append(ResourceDescriptor(url=url, name=name, local_path=data_dir / name))
    return descriptors


def load_resources(list_path: Path, data_dir: Path) -> list[ResourceDescriptor]:
    """Read the feed list and build the resource descriptors for a run."""
    urls = read_resource_urls(list_path)
    log.info("resource_list_loaded", list_path=str(list_path), resource_count=len(urls))
    return build_descriptors(urls, data_dir)


def _is_transient(error: Exception) -> bool:
    return not (isinstance(error, FetchError) and error.kind == "status")


def parse_sheet_urls(sheet_text: str) -> list[str]:
    """Extract the non-empty values of the 'url' column of a products sheet."""
    reader = csv.DictReader(io.StringIO(sheet_text, newline=""))
    urls = []
    for row in reader:
        value = (row.get("url") or "").strip()
        if value:
            urls.append(value)
    return urls


def discover_resource_urls(sheet_url: str, client: FeedClient, list_path: Path) -> list[str]:
    """
    Replace the feed list with the URLs listed in a products sheet.

    The sheet is a CSV document with a ``url`` column. Transient download
    failures are retried with exponential backoff.

    Args:
        sheet_url: URL of the products sheet
        client: Feed client used for the download
        list_path: Resource list file to overwrite

    Returns:
        The discovered feed URLs

    Raises:
        ConfigError: If the sheet cannot be downloaded or lists no URLs
    """
    log.info("discovering_resources", sheet_url=sheet_url)

    fetch_sheet = exponential_backoff_retry(
        max_retries=2,
        base_delay=1.0,
        max_delay=10.0,
        exceptions=(FetchError,),
        should_retry=_is_transient,
    )(client.fetch_text)

    try:
        sheet_text = fetch_sheet(sheet_url)
    except FetchError as e:
        raise ConfigError(f"Products sheet download failed: {e}") from e

    urls = parse_sheet_urls(sheet_text)
    if not urls:
        raise ConfigError(f"No URLs found in products sheet: {sheet_url}")

    atomic_write_text(list_path, "\n".join(urls) + "\n")
    log.info("resources_discovered", url_count=len(urls), list_path=str(list_path))
    return urls
