"""
Pipeline Data Model

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

Value types shared by the debouncer, stability poller, feedback ledger and
rename coordinator, plus the per-path candidate table owned by the pipeline.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from .access import AccessGrant


def normalise_path(path: Union[str, Path]) -> str:
    """Return the absolute, normalised string form used as a table key."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


class EventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    RENAMED = "renamed"


@dataclass(frozen=True)
class FileEvent:
    """One raw notification delivered by the notification source."""

    path: str
    kind: EventKind
    timestamp: float


@dataclass
class CandidateFile:
    """
    Per-path bookkeeping for a file moving through debounce and polling.

    Attributes:
        path (str): Normalised file path
        last_known_size (int, optional): Size recorded by the previous poll
        attempt_count (int): Poll attempts made in the current cycle
        debounce_deadline (float, optional): Clock time the debounce expires
        poll_scheduled (bool): Whether a poll cycle is running
    """

    path: str
    last_known_size: Optional[int] = None
    attempt_count: int = 0
    debounce_deadline: Optional[float] = None
    poll_scheduled: bool = False
    debounce_timer: Optional[object] = field(default=None, repr=False)
    poll_timer: Optional[object] = field(default=None, repr=False)

    @property
    def idle(self) -> bool:
        return self.debounce_timer is None and not self.poll_scheduled

    def reset_poll(self) -> None:
        self.last_known_size = None
        self.attempt_count = 0
        self.poll_scheduled = False
        self.poll_timer = None


class CandidateTable:
    """
    The single table of candidate files, keyed by normalised path.

    Only the pipeline thread touches it; the debouncer and the poller reach
    entries through these methods and never hold raw references across calls.
    """

    def __init__(self):
        self._entries: Dict[str, CandidateFile] = {}

    def get(self, path: str) -> Optional[CandidateFile]:
        return self._entries.get(path)

    def get_or_create(self, path: str) -> CandidateFile:
        entry = self._entries.get(path)
        if entry is None:
            entry = CandidateFile(path=path)
            self._entries[path] = entry
        return entry

    def discard(self, path: str) -> None:
        self._entries.pop(path, None)

    def release_if_idle(self, path: str) -> bool:
        """Drop the entry when neither a debounce nor a poll cycle is pending."""
        entry = self._entries.get(path)
        if entry is not None and entry.idle:
            del self._entries[path]
            return True
        return False

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CandidateFile]:
        return iter(list(self._entries.values()))


class EntryKind(str, Enum):
    PENDING_SELF_WRITE = "pending_self_write"
    PRODUCED_BY_RENAME = "produced_by_rename"


@dataclass(frozen=True)
class LedgerEntry:
    path: str
    kind: EntryKind
    inserted_at: float


class PollOutcome(str, Enum):
    STABLE = "stable"
    DISAPPEARED = "disappeared"
    IO_ERROR = "io_error"
    TIMEOUT = "timeout"


class RenameOutcome(str, Enum):
    RENAMED = "renamed"
    UNCHANGED = "unchanged"
    COLLISION = "collision"
    SOURCE_VANISHED = "source_vanished"
    IO_ERROR = "io_error"
    CLASSIFIER_FAILED = "classifier_failed"
    EMPTY_NAME = "empty_name"
    DUPLICATE = "duplicate"


@dataclass
class RenameRecord:
    """
    Result of one classify-and-rename cycle. Never persisted.

    Attributes:
        original_path (str): File that was classified
        suggested_name (str, optional): Sanitized name derived from the description
        final_path (str, optional): Path after the cycle (original path if untouched)
        outcome (RenameOutcome): What happened
        error (Exception, optional): Error surfaced by a failed cycle
    """

    original_path: str
    suggested_name: Optional[str]
    final_path: Optional[str]
    outcome: RenameOutcome
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.outcome in (RenameOutcome.RENAMED, RenameOutcome.UNCHANGED)


@dataclass
class WatchTarget:
    """The directory being watched and the grant that authorizes access to it."""

    directory: str
    grant: AccessGrant

    def __post_init__(self):
        self.directory = normalise_path(self.directory)
