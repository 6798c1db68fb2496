"""Command-line interface for feed synchronization.

Usage:
    feedsync [--config CONFIG_PATH] [--force] [--clear-cache] [--status]
             [--sheet-url URL] [--verbose]
"""

import argparse
import signal
import sys

import structlog

from feedsync.errors import ConfigError
from feedsync.ingestion.feed_client import FeedClient
from feedsync.ingestion.resource_list import discover_resource_urls
from feedsync.models.config import AppConfig
from feedsync.sync.models import StatusReport, SyncReport
from feedsync.sync.sync_coordinator import SyncEngine
from feedsync.utils.config_loader import ConfigLoader
from feedsync.utils.logging_config import configure_logging

log = structlog.stdlib.get_logger()

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="feedsync",
        description="Mirror remote CSV feeds locally, downloading only what changed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  feedsync                  # Download only changed feeds
  feedsync --force          # Download all feeds
  feedsync --clear-cache    # Clear the diff cache, then sync
  feedsync --status         # Show status only
        """,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration YAML file (default: config/default.yaml)",
        default=None,
    )
    parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Download all feeds regardless of freshness and changes",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Clear the diff cache before syncing (forces full re-evaluation)",
    )
    parser.add_argument(
        "--status",
        action="store_true",
        help="Show data status only, without syncing",
    )
    parser.add_argument(
        "--sheet-url",
        type=str,
        default=None,
        help="Products sheet whose 'url' column replaces the feed list before syncing",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level)",
    )
    return parser.parse_args(argv)


def setup_logging(config: AppConfig, verbose: bool) -> None:
    log_level = "DEBUG" if verbose else config.logging.log_level
    configure_logging(
        log_level=log_level,
        json_logs=config.logging.json_logs,
        log_file=config.logging.log_file,
    )


def print_status(status: StatusReport) -> None:
    print("=" * 60)
    print("FEED DATA STATUS")
    print("=" * 60)
    if status.last_run_at is None:
        print("Last Run: never")
    else:
        print(f"Last Run: {status.last_run_at.isoformat()}")
        hours = int(status.hours_since_last_run or 0)
        if status.is_fresh:
            print(f"Freshness: fresh ({hours} hours old)")
        else:
            print(
                f"Freshness: stale ({hours} hours old, "
                f"window {status.freshness_window_hours:g}h). Consider refreshing."
            )
    if status.resource_count is not None:
        print(f"Feeds Listed: {status.resource_count}")
    if status.manifest_updated_at is not None:
        print(f"Manifest Total: {status.manifest_total}")
        print(f"  Downloaded: {status.manifest_downloaded}")
        print(f"  Skipped: {status.manifest_skipped}")
        print(f"  Failed: {status.manifest_failed}")
    else:
        print("No manifest found. Run a sync first.")
    if status.remote_last_updated:
        print(f"Upstream Last Updated: {status.remote_last_updated}")
    print("=" * 60)


def print_summary(report: SyncReport) -> None:
    print("\n" + "=" * 60)
    print("SYNCHRONIZATION SUMMARY")
    print("=" * 60)
    if report.gated:
        print("Status: SKIPPED (data is fresh, use --force to override)")
    elif report.cancelled:
        print("Status: CANCELLED (nothing persisted)")
    elif report.success:
        print("Status: ✓ SUCCESS")
    else:
        print("Status: ✓ COMPLETED WITH ERRORS")
    print(f"Feeds: {report.total_resources}")
    print(f"Downloaded: {report.downloaded}")
    print(f"Skipped: {report.skipped}")
    print(f"Failed: {report.failed}")
    for error in report.errors:
        print(f"  ✗ {error}")
    print(f"Duration: {report.duration_seconds:.2f} seconds")
    print("=" * 60)


def _run_with_interrupt(engine: SyncEngine, force: bool) -> SyncReport:
    """Run a sync; the first Ctrl-C cancels gracefully between feeds."""

    def _handle_sigint(signum, frame):
        engine.cancel()
        signal.signal(signal.SIGINT, previous)

    previous = signal.getsignal(signal.SIGINT)
    signal.signal(signal.SIGINT, _handle_sigint)
    try:
        return engine.run(force=force)
    finally:
        signal.signal(signal.SIGINT, previous)


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    args = parse_arguments(argv)

    try:
        config = ConfigLoader().load_config(args.config)
    except ConfigError as e:
        configure_logging(log_level="DEBUG" if args.verbose else "INFO")
        log.error("configuration_error", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(config, args.verbose)

    client = FeedClient(
        probe_timeout=config.network.probe_timeout_seconds,
        fetch_timeout=config.network.fetch_timeout_seconds,
        user_agent=config.network.user_agent,
    )
    engine = SyncEngine.from_config(config, client=client)

    try:
        if args.clear_cache:
            engine.clear_cache()
            print("Diff cache cleared; all feeds will be re-evaluated.")

        if args.status:
            print_status(engine.status())
            return EXIT_OK

        sheet_url = args.sheet_url or config.discovery.products_sheet_url
        if sheet_url:
            discover_resource_urls(sheet_url, client, config.paths.resource_list_file)

        report = _run_with_interrupt(engine, force=args.force)
    except ConfigError as e:
        log.error("sync_aborted", error=str(e))
        print(f"Sync aborted: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    finally:
        client.close()

    print_summary(report)
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
