"""Synchronization components for incremental feed updates."""

from feedsync.sync.change_detector import ChangeDetector
from feedsync.sync.models import DecisionInputs, ResourceOutcome, StatusReport, SyncReport
from feedsync.sync.staleness import StalenessPolicy
from feedsync.sync.sync_coordinator import SyncEngine

__all__ = [
    "ChangeDetector",
    "DecisionInputs",
    "ResourceOutcome",
    "StalenessPolicy",
    "StatusReport",
    "SyncEngine",
    "SyncReport",
]
