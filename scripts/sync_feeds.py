#!/usr/bin/env python3
"""
Scheduled synchronization script for the CSV feed mirror.

This script performs an incremental synchronization:
- Skips the run if the data was refreshed within the freshness window
- Probes every feed and downloads only those that changed
- Writes the manifest, diff cache and run clock

Designed to be run on a schedule (e.g., via cron) or before a site build.

Usage:
    python scripts/sync_feeds.py [--config CONFIG_PATH] [--force] [--clear-cache] [--status]
"""

import sys

from feedsync.cli import main

if __name__ == "__main__":
    sys.exit(main())
