"""
Write Completion Poller Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

The notification stream fires when a file is created, not when its last
byte is written. This module samples the file size on a fixed interval and
declares the file ready once two consecutive samples agree on a positive
size, giving up after a bounded number of attempts.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import os
import stat as stat_module
from typing import Callable

from .models import CandidateTable, PollOutcome
from .scheduler import Scheduler
from ..errors import Disappeared, PollAborted, PollTimeout, StatIOError
from ..utils.logger import get_logger

DEFAULT_POLL_INTERVAL = 0.25
DEFAULT_MAX_ATTEMPTS = 12

_ABORT_OUTCOMES = {
    Disappeared: PollOutcome.DISAPPEARED,
    StatIOError: PollOutcome.IO_ERROR,
    PollTimeout: PollOutcome.TIMEOUT,
}


def read_file_size(path: str) -> int:
    """
    Return the size of a regular file.

    Raises:
        FileNotFoundError: If the path is missing or no longer a regular file
        OSError: For any other stat failure
    """
    st = os.stat(path)
    if not stat_module.S_ISREG(st.st_mode):
        raise FileNotFoundError(path)
    return st.st_size


class StabilityPoller:
    """
    Per-path size-plateau detector.

    States: Idle -> Polling(attempt=n) -> Polling(n+1) | Stable | Aborted.
    A path has at most one poll cycle; ``begin_polling`` on a path that is
    already polling resets the cycle instead of starting a second one.

    Attributes:
        interval (float): Seconds between samples
        max_attempts (int): Attempt ceiling per cycle
    """

    def __init__(self, scheduler: Scheduler, table: CandidateTable,
                 on_ready: Callable[[str], None],
                 on_aborted: Callable[[str, PollAborted], None] = None,
                 interval: float = DEFAULT_POLL_INTERVAL,
                 max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 size_reader: Callable[[str], int] = read_file_size):
        self.scheduler = scheduler
        self.table = table
        self.on_ready = on_ready
        self.on_aborted = on_aborted
        self.interval = interval
        self.max_attempts = max_attempts
        self.size_reader = size_reader
        self.logger = get_logger()

    def begin_polling(self, path: str) -> None:
        """Start a fresh poll cycle for ``path``, discarding any previous one."""
        entry = self.table.get_or_create(path)
        if entry.poll_timer is not None:
            self.scheduler.cancel(entry.poll_timer)
        entry.reset_poll()
        entry.poll_scheduled = True
        self.logger.debug("Polling started", file_path=path, event_type='poll_started')
        self._schedule(path)

    def _schedule(self, path: str) -> None:
        entry = self.table.get(path)
        entry.poll_timer = self.scheduler.call_later(self.interval, self._poll, path)

    def _poll(self, path: str) -> None:
        entry = self.table.get(path)
        if entry is None or not entry.poll_scheduled:
            return
        entry.poll_timer = None
        entry.attempt_count += 1
        attempt = entry.attempt_count

        if attempt > self.max_attempts:
            self._abort(path, PollTimeout(path, attempt, self.max_attempts))
            return

        try:
            size = self.size_reader(path)
        except FileNotFoundError:
            self._abort(path, Disappeared(path, attempt))
            return
        except OSError as e:
            self._abort(path, StatIOError(path, attempt, e))
            return

        if size > 0 and entry.last_known_size == size:
            self._release(path)
            self.logger.file_ready(path, size, attempt)
            self.on_ready(path)
            return

        # Empty files are never stable; a changed size needs another sample
        entry.last_known_size = size
        self.logger.debug(
            f"Poll attempt {attempt}/{self.max_attempts}, size {size} bytes",
            file_path=path,
            size=size,
            attempt=attempt,
            event_type='poll_attempt'
        )
        self._schedule(path)

    def _abort(self, path: str, error: PollAborted) -> None:
        self._release(path)
        reason = _ABORT_OUTCOMES.get(type(error), PollOutcome.IO_ERROR).value
        self.logger.poll_aborted(path, reason, error.attempt, str(error))
        if self.on_aborted:
            self.on_aborted(path, error)

    def _release(self, path: str) -> None:
        entry = self.table.get(path)
        if entry is None:
            return
        if entry.poll_timer is not None:
            self.scheduler.cancel(entry.poll_timer)
        entry.reset_poll()
        self.table.release_if_idle(path)

    def is_polling(self, path: str) -> bool:
        entry = self.table.get(path)
        return entry is not None and entry.poll_scheduled

    def active_count(self) -> int:
        return sum(1 for entry in self.table if entry.poll_scheduled)

    def cancel_all(self) -> None:
        for entry in self.table:
            if entry.poll_timer is not None:
                self.scheduler.cancel(entry.poll_timer)
            entry.reset_poll()
