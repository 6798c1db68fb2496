"""Remote feed access: probing, downloading and the feed list."""

from feedsync.ingestion.feed_client import FeedClient
from feedsync.ingestion.resource_list import discover_resource_urls, load_resources

__all__ = ["FeedClient", "discover_resource_urls", "load_resources"]
