"""
Feedback Ledger Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

Renaming a screenshot produces a new filesystem notification for the new
name. The ledger remembers the names the pipeline itself produced so that
the notification is dropped instead of being classified again. Entries
expire after a short TTL so a later, unrelated file with the same name is
processed normally.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import threading
import time
from typing import Callable, Dict, Optional

from .models import EntryKind, LedgerEntry, normalise_path

DEFAULT_LEDGER_TTL = 5.0


class FeedbackLedger:
    """
    Registry of paths produced by the pipeline's own renames.

    All operations are atomic with respect to each other. A path has at most
    one entry; inserting again replaces the previous entry.

    Attributes:
        ttl (float): Seconds before an unconsumed entry expires
    """

    def __init__(self, ttl: float = DEFAULT_LEDGER_TTL, clock: Callable[[], float] = None):
        self.ttl = ttl
        self.clock = clock or time.monotonic
        self._entries: Dict[str, LedgerEntry] = {}
        self._lock = threading.Lock()

    def _insert(self, path: str, kind: EntryKind) -> LedgerEntry:
        entry = LedgerEntry(path=normalise_path(path), kind=kind, inserted_at=self.clock())
        with self._lock:
            self._entries[entry.path] = entry
        return entry

    def _expired(self, entry: LedgerEntry, now: float) -> bool:
        return now - entry.inserted_at >= self.ttl

    def mark_pending(self, path: str) -> LedgerEntry:
        """Record that the pipeline is about to write ``path``."""
        return self._insert(path, EntryKind.PENDING_SELF_WRITE)

    def mark_produced(self, path: str) -> LedgerEntry:
        """Record that ``path`` was just produced by a successful rename."""
        return self._insert(path, EntryKind.PRODUCED_BY_RENAME)

    def discard(self, path: str) -> None:
        with self._lock:
            self._entries.pop(normalise_path(path), None)

    def should_suppress(self, path: str) -> bool:
        """
        Decide whether an event for ``path`` is the echo of our own rename.

        A live PRODUCED_BY_RENAME entry is consumed and suppresses exactly one
        event. A live PENDING_SELF_WRITE entry suppresses without being
        consumed. Expired entries are removed and never suppress.

        Args:
            path (str): Path named by the incoming event

        Returns:
            bool: True if the event must be dropped
        """
        key = normalise_path(path)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False

            if self._expired(entry, self.clock()):
                del self._entries[key]
                return False

            if entry.kind is EntryKind.PRODUCED_BY_RENAME:
                del self._entries[key]
            return True

    def sweep(self) -> int:
        """
        Remove expired entries.

        Returns:
            int: Number of entries removed
        """
        now = self.clock()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if self._expired(entry, now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def entry(self, path: str) -> Optional[LedgerEntry]:
        with self._lock:
            return self._entries.get(normalise_path(path))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, path: str) -> bool:
        return self.entry(path) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
