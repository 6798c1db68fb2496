"""HTTP client for probing and downloading remote CSV feeds."""

import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import Path

import requests
import structlog
from requests.exceptions import RequestException, Timeout
from urllib3.exceptions import ReadTimeoutError

from feedsync.errors import FetchError, ProbeError
from feedsync.models.resource import RemoteSignals
from feedsync.utils.io import remove_quietly

log = structlog.stdlib.get_logger()

CHUNK_SIZE = 64 * 1024


def parse_http_date(value: str | None) -> datetime | None:
    """Parse an HTTP-date header value into an aware UTC datetime."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_content_length(value: str | None) -> int | None:
    """Parse a Content-Length header value; invalid values are ignored."""
    if value is None:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length >= 0 else None


def _is_read_timeout(error: RequestException) -> bool:
    """True for a stalled body read, which requests reports as ConnectionError."""
    if not isinstance(error, requests.exceptions.ConnectionError):
        return False
    cause = error.args[0] if error.args else None
    if isinstance(cause, ReadTimeoutError) or isinstance(error.__context__, ReadTimeoutError):
        return True
    return "Read timed out" in str(error)


class FeedClient:
    """Thin wrapper around a requests session for feed probes and downloads."""

    def __init__(
        self,
        probe_timeout: float = 10.0,
        fetch_timeout: float = 30.0,
        user_agent: str = "feedsync/1.0",
        session: requests.Session | None = None,
    ):
        """
        Initialize the feed client.

        Args:
            probe_timeout: Timeout in seconds for HEAD requests
            fetch_timeout: Total time budget in seconds for one download
            user_agent: User-Agent header sent with every request
            session: Optional pre-configured session (mainly for tests)
        """
        self._probe_timeout = probe_timeout
        self._fetch_timeout = fetch_timeout
        self._session = session or requests.Session()
        self._session.headers.setdefault("User-Agent", user_agent)
        log.debug(
            "feed_client_initialized",
            probe_timeout=probe_timeout,
            fetch_timeout=fetch_timeout,
        )

    def probe(self, url: str) -> RemoteSignals:
        """
        Read the remote signals of a feed without downloading its body.

        Args:
            url: Feed URL

        Returns:
            RemoteSignals observed on the HEAD response

        Raises:
            ProbeError: On timeout, transport error or an error status
        """
        try:
            response = self._session.head(url, timeout=self._probe_timeout, allow_redirects=True)
        except Timeout as e:
            raise ProbeError(url, f"timed out after {self._probe_timeout}s") from e
        except RequestException as e:
            raise ProbeError(url, str(e)) from e

        if response.status_code >= 400:
            raise ProbeError(url, f"HTTP {response.status_code}")

        signals = RemoteSignals(
            entity_tag=response.headers.get("ETag"),
            last_modified=parse_http_date(response.headers.get("Last-Modified")),
            byte_length=parse_content_length(response.headers.get("Content-Length")),
        )
        log.debug(
            "feed_probed",
            url=url,
            entity_tag=signals.entity_tag,
            last_modified=signals.last_modified,
            byte_length=signals.byte_length,
        )
        return signals

    def fetch(self, url: str, destination: Path) -> int:
        """
        Download the full body of a feed into ``destination``.

        The timeout applies to each socket operation and to the download as a
        whole. On any failure the partially written file is removed.

        Args:
            url: Feed URL
            destination: Temporary file to write the body to

        Returns:
            Number of bytes written

        Raises:
            FetchError: On non-200 status, transport error or timeout
        """
        deadline = time.monotonic() + self._fetch_timeout
        destination.parent.mkdir(parents=True, exist_ok=True)

        try:
            response = self._session.get(url, stream=True, timeout=self._fetch_timeout)
            try:
                if response.status_code != 200:
                    raise FetchError(
                        url,
                        "status",
                        f"HTTP {response.status_code}",
                        status_code=response.status_code,
                    )

                written = 0
                with open(destination, "wb") as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if time.monotonic() > deadline:
                            raise FetchError(
                                url, "timeout", f"exceeded {self._fetch_timeout}s budget"
                            )
                        if chunk:
                            f.write(chunk)
                            written += len(chunk)
            finally:
                response.close()
        except FetchError:
            remove_quietly(destination)
            raise
        except Timeout as e:
            remove_quietly(destination)
            raise FetchError(url, "timeout", f"timed out after {self._fetch_timeout}s") from e
        except RequestException as e:
            remove_quietly(destination)
            kind = "timeout" if _is_read_timeout(e) else "transport"
            raise FetchError(url, kind, str(e)) from e
        except OSError:
            remove_quietly(destination)
            raise

        log.debug("feed_fetched", url=url, destination=str(destination), bytes=written)
        return written

    def fetch_text(self, url: str) -> str:
        """
        Download a small text document, such as a products sheet.

        Raises:
            FetchError: On non-200 status, transport error or timeout
        """
        try:
            response = self._session.get(url, timeout=self._fetch_timeout)
        except Timeout as e:
            raise FetchError(url, "timeout", f"timed out after {self._fetch_timeout}s") from e
        except RequestException as e:
            raise FetchError(url, "transport", str(e)) from e

        if response.status_code != 200:
            raise FetchError(
                url, "status", f"HTTP {response.status_code}", status_code=response.status_code
            )
        # requests assumes ISO-8859-1 for text/* without a charset; sheets are UTF-8
        if "charset" not in response.headers.get("Content-Type", "").lower():
            response.encoding = "utf-8"
        return response.text

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()
