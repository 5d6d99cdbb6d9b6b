"""Bounded, deduplicated clipboard history.

Entries are kept most-recently-used first. Every mutation builds the new list,
hands it to the preference store, and keeps it whether or not persisting
succeeded: the in-memory list is authoritative for the running session.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from ulid import ULID

from cliprecall.database.preferences import CLIPBOARD_HISTORY, HISTORY_LIMIT, PreferenceStore
from cliprecall.exceptions import PersistenceFailure
from cliprecall.models.snapshot import ContentSnapshot
from cliprecall.schema import SnapshotRecord

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


def _valid_capacity(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


class HistoryStore:

    def __init__(self, preferences: PreferenceStore, capacity: Optional[int] = None) -> None:
        self.preferences = preferences
        if capacity is None:
            capacity = self._stored_capacity()
        if not _valid_capacity(capacity):
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")
        self._capacity: int = capacity
        self._items: List[ContentSnapshot] = []

    def _stored_capacity(self) -> int:
        try:
            value = self.preferences.get(HISTORY_LIMIT, DEFAULT_CAPACITY)
        except PersistenceFailure as e:
            logger.error("Could not read history limit, using %d: %s", DEFAULT_CAPACITY, e)
            return DEFAULT_CAPACITY
        if not _valid_capacity(value):
            logger.warning("Ignoring invalid stored history limit %r", value)
            return DEFAULT_CAPACITY
        return value

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def items(self) -> List[ContentSnapshot]:
        return list(self._items)

    def records(self) -> List[Dict[str, Any]]:
        return [SnapshotRecord.from_snapshot(s).to_dict() for s in self._items]

    def get(self, snapshot_id: str) -> Optional[ContentSnapshot]:
        for snapshot in self._items:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    # ---------------------------------------------------------------------
    # Loading
    # ---------------------------------------------------------------------
    def load(self) -> None:
        """Replace the in-memory list with the persisted one.

        A missing or malformed value gives an empty history; records that fail
        validation are skipped.
        """
        try:
            raw = self.preferences.get(CLIPBOARD_HISTORY, [])
        except PersistenceFailure as e:
            logger.error("Could not load clipboard history, starting empty: %s", e)
            raw = []

        if not isinstance(raw, list):
            logger.warning("Stored clipboard history is not a list, starting empty")
            raw = []

        loaded: List[ContentSnapshot] = []
        seen_ids = set()
        for entry in raw:
            try:
                snapshot = SnapshotRecord.model_validate(entry).to_snapshot()
            except (ValidationError, ValueError, TypeError, OverflowError, OSError) as e:
                logger.warning("Skipping unreadable history record: %s", e)
                continue
            if snapshot.id in seen_ids or any(s.same_content(snapshot) for s in loaded):
                continue
            seen_ids.add(snapshot.id)
            loaded.append(snapshot)

        self._items = loaded[:self._capacity]
        logger.info("Loaded %d clipboard history entries", len(self._items))

    # ---------------------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------------------
    def append(self, snapshot: ContentSnapshot) -> ContentSnapshot:
        """Insert ``snapshot`` at the front under a fresh id, replacing any duplicate."""
        if not isinstance(snapshot, ContentSnapshot):
            raise ValueError("only classified snapshots can be stored")

        stored = snapshot.with_id(self._new_id(snapshot.created_at))
        items = [s for s in self._items if not s.same_content(stored)]
        items.insert(0, stored)
        self._commit(items[:self._capacity])
        return stored

    def touch(self, snapshot_id: str) -> Optional[ContentSnapshot]:
        """Move an existing entry to the front without changing it."""
        snapshot = self.get(snapshot_id)
        if snapshot is None:
            return None

        items = [s for s in self._items if s.id != snapshot_id]
        items.insert(0, snapshot)
        self._commit(items)
        return snapshot

    def set_capacity(self, capacity: int) -> None:
        if not _valid_capacity(capacity):
            raise ValueError(f"capacity must be a positive integer, got {capacity!r}")

        self._capacity = capacity
        if len(self._items) > capacity:
            self._commit(self._items[:capacity])

    def clear(self) -> None:
        self._commit([])

    def _new_id(self, created_at: datetime) -> str:
        existing = {s.id for s in self._items}
        while True:
            snapshot_id = f"s_{ULID.from_datetime(created_at)}"
            if snapshot_id not in existing:
                return snapshot_id

    def _commit(self, items: List[ContentSnapshot]) -> None:
        try:
            self.preferences.set(
                CLIPBOARD_HISTORY,
                [SnapshotRecord.from_snapshot(s).to_dict() for s in items],
            )
        except PersistenceFailure as e:
            logger.error("Failed to persist clipboard history: %s", e)
        self._items = items
