"""
Event Debouncer Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

Screenshots usually arrive as a burst of notifications (created, modified,
renamed by the capture tool). The debouncer coalesces each burst into a
single "settled" signal once a path has been quiet for a fixed delay.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import os
from pathlib import Path
from typing import Callable, Iterable, Optional

from .models import CandidateTable, EventKind
from .scheduler import Scheduler
from ..utils.logger import get_logger

DEFAULT_IMAGE_EXTENSIONS = ('png', 'jpg', 'jpeg', 'tiff', 'bmp', 'gif')
DEFAULT_DEBOUNCE_DELAY = 0.5


def is_image_candidate(path: str, extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS) -> bool:
    """
    Check whether a path names a visible image file.

    Args:
        path (str): File path
        extensions (Iterable[str]): Allowed extensions without the dot

    Returns:
        bool: False for dotfiles and for any extension outside the allowed set
    """
    name = os.path.basename(path)
    if not name or name.startswith('.'):
        return False
    suffix = Path(name).suffix.lower().lstrip('.')
    return suffix in {ext.lower().lstrip('.') for ext in extensions}


def is_readable_file(path: str) -> bool:
    """True when ``path`` is an existing regular file this process can read."""
    return os.path.isfile(path) and os.access(path, os.R_OK)


class Debouncer:
    """
    Per-path coalescing of raw events into settle signals.

    At most one debounce timer exists per path: a later event for a path that
    is already debouncing cancels the pending timer and starts a fresh one.

    Attributes:
        delay (float): Quiet period in seconds
        extensions (tuple): Accepted image extensions
    """

    def __init__(self, scheduler: Scheduler, table: CandidateTable,
                 on_settled: Callable[[str], None],
                 delay: float = DEFAULT_DEBOUNCE_DELAY,
                 extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
                 validator: Callable[[str], bool] = is_readable_file):
        self.scheduler = scheduler
        self.table = table
        self.on_settled = on_settled
        self.delay = delay
        self.extensions = tuple(ext.lower().lstrip('.') for ext in extensions)
        self.validator = validator
        self.logger = get_logger()

    def accepts(self, path: str) -> bool:
        return is_image_candidate(path, self.extensions)

    def on_event(self, path: str, kind: EventKind, timestamp: Optional[float] = None) -> bool:
        """
        Register a raw event for ``path``.

        Args:
            path (str): Normalised file path
            kind (EventKind): Notification kind (used for logging only)
            timestamp (float, optional): Wall-clock time of the notification

        Returns:
            bool: True if the event was accepted and a debounce timer is pending
        """
        if not self.accepts(path):
            return False

        entry = self.table.get_or_create(path)
        if entry.debounce_timer is not None:
            self.scheduler.cancel(entry.debounce_timer)

        entry.debounce_timer = self.scheduler.call_later(self.delay, self._expire, path)
        entry.debounce_deadline = entry.debounce_timer.deadline
        self.logger.debug(
            "Debounce timer (re)started",
            file_path=path,
            kind=getattr(kind, 'value', kind),
            timestamp=timestamp,
            event_type='debounce_started'
        )
        return True

    def _expire(self, path: str) -> None:
        entry = self.table.get(path)
        if entry is None:
            return
        entry.debounce_timer = None
        entry.debounce_deadline = None

        # Time has passed since the event; the file may be gone by now
        if not self.validator(path):
            self.logger.debug("Dropping settled path that is no longer a readable file",
                              file_path=path, event_type='settle_dropped')
            self.table.release_if_idle(path)
            return

        self.logger.file_settled(path)
        self.on_settled(path)

    def pending(self, path: str) -> bool:
        entry = self.table.get(path)
        return entry is not None and entry.debounce_timer is not None

    def cancel_all(self) -> None:
        for entry in self.table:
            if entry.debounce_timer is not None:
                self.scheduler.cancel(entry.debounce_timer)
                entry.debounce_timer = None
                entry.debounce_deadline = None
