"""
Conversation Store — in-memory transcript of the current session.

Responsibility:
- Append transcript entries in creation order
- Replace an entry's snapshot by id (text, status, raw payload)
- Enforce the entry lifecycle: pending -> resolved_ok | resolved_error
- Notify read-only subscribers of every change

Concurrency:
- Entries are frozen snapshots; an update swaps one list slot under a lock,
  so writers from threads, tasks or one event loop never contend on the
  same entry

Prohibitions:
- Never reorders or deletes entries within a session
- Never persists the transcript
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable

from shared.errors import InvalidTransitionError
from shared.models import AggregatedOracleData, ConversationEntry, EntryRole, EntryStatus
from shared.oracle_catalog import WELCOME_TEXT

logger = logging.getLogger(__name__)

# (event, entry, full ordered snapshot); event is "append", "update" or "clear"
TranscriptListener = Callable[[str, ConversationEntry | None, tuple[ConversationEntry, ...]], None]

_VALID_STATUSES = {"pending", "resolved_ok", "resolved_error"}


class ConversationStore:
    """Append-only transcript log with a replace-by-id reducer."""

    def __init__(self) -> None:
        self._entries: list[ConversationEntry] = []
        self._positions: dict[str, int] = {}
        self._listeners: list[TranscriptListener] = []
        self._sequence = itertools.count(1)
        self._welcome_seeded = False
        self._lock = threading.RLock()

    # ─── Writes ───────────────────────────────────────────────

    def append(
        self,
        role: EntryRole,
        text: str,
        status: EntryStatus | None = None,
        raw_payload: AggregatedOracleData | None = None,
    ) -> str:
        """Create a new entry at the end of the transcript and return its id."""
        if status is not None and status not in _VALID_STATUSES:
            raise ValueError(f"Unknown entry status: {status!r}")

        with self._lock:
            entry = ConversationEntry(
                id=self._next_id(),
                role=role,
                text=text,
                raw_payload=raw_payload,
                created_at=datetime.now(timezone.utc),
                status=status,
            )
            self._positions[entry.id] = len(self._entries)
            self._entries.append(entry)
            snapshot = tuple(self._entries)

        self._notify("append", entry, snapshot)
        return entry.id

    def update(self, entry_id: str, **fields: Any) -> ConversationEntry | None:
        """
        Merge fields into the entry with this id.
        Unknown ids are ignored (late resolution after a clear) and return None.
        Only text, status and raw_payload may change.
        """
        unknown = set(fields) - {"text", "status", "raw_payload"}
        if unknown:
            raise ValueError(f"Fields cannot be updated: {sorted(unknown)}")

        with self._lock:
            position = self._positions.get(entry_id)
            if position is None:
                logger.debug("Ignoring update for unknown entry %s", entry_id)
                return None

            current = self._entries[position]
            if "status" in fields:
                self._check_transition(current, fields["status"])
            updated = current.model_copy(update=fields)
            self._entries[position] = updated
            snapshot = tuple(self._entries)

        self._notify("update", updated, snapshot)
        return updated

    def seed_welcome(self) -> str | None:
        """Add the system welcome entry once, only into an empty transcript."""
        with self._lock:
            if self._welcome_seeded or self._entries:
                return None
            self._welcome_seeded = True
        return self.append("system", WELCOME_TEXT)

    def clear(self) -> None:
        """Start a fresh transcript. Pending ids from before become unknown."""
        with self._lock:
            self._entries = []
            self._positions = {}
            self._welcome_seeded = False
        self._notify("clear", None, ())

    # ─── Reads ────────────────────────────────────────────────

    def get(self, entry_id: str) -> ConversationEntry | None:
        with self._lock:
            position = self._positions.get(entry_id)
            return None if position is None else self._entries[position]

    def entries(self) -> tuple[ConversationEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def pending(self) -> list[ConversationEntry]:
        return [entry for entry in self.entries() if entry.status == "pending"]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def subscribe(self, listener: TranscriptListener) -> Callable[[], None]:
        """Register a change listener; returns a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ─── Internals ────────────────────────────────────────────

    def _next_id(self) -> str:
        # Nanosecond clock first so ids sort by creation time
        return f"{time.time_ns():020d}-{next(self._sequence):06d}"

    @staticmethod
    def _check_transition(current: ConversationEntry, new_status: Any) -> None:
        if new_status == current.status:
            if current.is_terminal:
                raise InvalidTransitionError(f"Entry {current.id} is already {current.status}")
            return
        if new_status not in _VALID_STATUSES:
            raise ValueError(f"Unknown entry status: {new_status!r}")
        if current.status != "pending" or new_status == "pending":
            raise InvalidTransitionError(
                f"Illegal transition for entry {current.id}: {current.status} -> {new_status}"
            )

    def _notify(
        self,
        event: str,
        entry: ConversationEntry | None,
        snapshot: tuple[ConversationEntry, ...],
    ) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event, entry, snapshot)
            except Exception:
                logger.exception("Transcript listener failed on '%s'", event)
