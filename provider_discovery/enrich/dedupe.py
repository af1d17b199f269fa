"""Identifier-keyed deduplication and field merging."""

import logging
import threading
from typing import Any, Iterator, Optional

from provider_discovery.models import Address, CanonicalRecord

logger = logging.getLogger(__name__)

# Unioned on merge, first-seen order
LIST_FIELDS = ("taxonomies", "alternate_identifiers", "alternate_names", "source_tags")

# Never taken from the incoming record
FIXED_FIELDS = ("identifier", "identity_kind", "discovered_at")


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Address):
        return value.is_empty()
    return False


def _union(existing: list, incoming: list) -> list:
    merged = list(existing)
    for item in incoming:
        if item not in merged:
            merged.append(item)
    return merged


def merge_records(existing: CanonicalRecord, incoming: CanonicalRecord) -> CanonicalRecord:
    """Join two sightings of the same provider into a new record.

    Populated scalars on `existing` are never overwritten; empty ones are
    filled from `incoming`. Lists are unioned by value. Merging the same
    record twice changes nothing after the first application.
    """
    if existing.identifier != incoming.identifier:
        raise ValueError(
            f"Cannot merge records with different identifiers: "
            f"{existing.identifier} != {incoming.identifier}"
        )

    updates: dict[str, Any] = {}
    for field_name in CanonicalRecord.model_fields:
        if field_name in FIXED_FIELDS:
            continue
        current = getattr(existing, field_name)
        candidate = getattr(incoming, field_name)

        if field_name in LIST_FIELDS:
            merged = _union(current, candidate)
            if len(merged) != len(current):
                updates[field_name] = merged
        elif _is_empty(current) and not _is_empty(candidate):
            updates[field_name] = candidate

    if not updates:
        return existing
    return existing.model_copy(update=updates, deep=True)


class ProviderCollection:
    """The run's deduplicated records, keyed by canonical identifier.

    All writes go through `upsert`, which holds a single lock for the
    read-merge-write so concurrent plans never lose an update.
    """

    def __init__(self):
        self._records: dict[str, CanonicalRecord] = {}
        self._lock = threading.Lock()
        self.sightings = 0
        self.merges = 0

    def upsert(self, record: CanonicalRecord) -> CanonicalRecord:
        with self._lock:
            self.sightings += 1
            existing = self._records.get(record.identifier)
            if existing is None:
                self._records[record.identifier] = record
                return record

            merged = merge_records(existing, record)
            self._records[record.identifier] = merged
            self.merges += 1
            logger.debug(f"Merged sighting of {record.identifier} ({record.name})")
            return merged

    def get(self, identifier: str) -> Optional[CanonicalRecord]:
        with self._lock:
            return self._records.get(identifier)

    def records(self) -> list[CanonicalRecord]:
        """Snapshot in first-seen order."""
        with self._lock:
            return list(self._records.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._records

    def __iter__(self) -> Iterator[CanonicalRecord]:
        return iter(self.records())
