"""Change detection: decides whether a feed must be downloaded again."""

from datetime import datetime, timezone
from typing import Callable

import structlog

from feedsync.models.resource import (
    CacheEntry,
    ChangeReason,
    ChangeVerdict,
    RemoteSignals,
    ResourceDescriptor,
)
from feedsync.processing.fingerprint import fingerprint_file, local_size
from feedsync.sync.models import DecisionInputs

log = structlog.stdlib.get_logger()

Rule = tuple[ChangeReason, Callable[[DecisionInputs], bool]]


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _no_local_copy(inputs: DecisionInputs) -> bool:
    return inputs.local_size is None


def _probe_failed(inputs: DecisionInputs) -> bool:
    return inputs.probe_failed


def _entity_tag_mismatch(inputs: DecisionInputs) -> bool:
    remote = inputs.signals.entity_tag if inputs.signals else None
    cached = inputs.cached.entity_tag if inputs.cached else None
    return remote is not None and cached is not None and remote != cached


def _last_modified_newer(inputs: DecisionInputs) -> bool:
    remote = inputs.signals.last_modified if inputs.signals else None
    cached = inputs.cached.last_modified if inputs.cached else None
    if remote is None or cached is None:
        return False
    return _as_utc(remote) > _as_utc(cached)


def _byte_length_mismatch(inputs: DecisionInputs) -> bool:
    if inputs.entity_tags_match:
        return False
    remote = inputs.signals.byte_length if inputs.signals else None
    return remote is not None and remote != inputs.local_size


def _local_hash_mismatch(inputs: DecisionInputs) -> bool:
    cached = inputs.cached.content_hash if inputs.cached else None
    return cached is not None and cached != inputs.local_hash


# Evaluated in order, first match wins. A matching entity tag overrides the
# byte-length signal only.
RULES: list[Rule] = [
    (ChangeReason.NO_LOCAL_COPY, _no_local_copy),
    (ChangeReason.PROBE_FAILED, _probe_failed),
    (ChangeReason.ENTITY_TAG_MISMATCH, _entity_tag_mismatch),
    (ChangeReason.LAST_MODIFIED_NEWER, _last_modified_newer),
    (ChangeReason.BYTE_LENGTH_MISMATCH, _byte_length_mismatch),
    (ChangeReason.LOCAL_HASH_MISMATCH, _local_hash_mismatch),
]


class ChangeDetector:
    """Classifies a feed as changed or unchanged with a reason."""

    def __init__(self, rules: list[Rule] | None = None):
        self._rules = rules if rules is not None else RULES

    def decide(self, inputs: DecisionInputs) -> ChangeVerdict:
        """
        Apply the ordered rules to the decision inputs.

        Args:
            inputs: Probe signals, prior cache entry and local file state

        Returns:
            ChangeVerdict of the first matching rule, or NoChangeDetected
        """
        for reason, predicate in self._rules:
            if predicate(inputs):
                return ChangeVerdict(changed=True, reason=reason)
        return ChangeVerdict(changed=False, reason=ChangeReason.NO_CHANGE_DETECTED)

    def detect(
        self,
        resource: ResourceDescriptor,
        signals: RemoteSignals | None,
        cached: CacheEntry | None,
    ) -> ChangeVerdict:
        """
        Decide for a resource, reading the state of its local copy.

        Args:
            resource: Feed being evaluated
            signals: Probe result, or None if the probe failed
            cached: Diff cache entry from the previous download, if any

        Returns:
            ChangeVerdict for the resource
        """
        size = local_size(resource.local_path)
        inputs = DecisionInputs(
            signals=signals,
            cached=cached,
            local_hash=fingerprint_file(resource.local_path) if size is not None else None,
            local_size=size,
        )
        verdict = self.decide(inputs)

        log.debug(
            "change_decided",
            url=resource.url,
            name=resource.name,
            changed=verdict.changed,
            reason=verdict.reason.value,
        )
        return verdict
