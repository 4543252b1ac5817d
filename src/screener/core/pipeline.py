"""
Screenshot Pipeline Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module owns all mutable pipeline state for one watched directory: the
candidate table, the feedback ledger, the in-flight set and every timer.
Notifications, timer expiries and classifier completions are all turned into
messages and handled one at a time on a single pipeline thread, so none of
that state is ever touched concurrently.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from queue import Empty, Queue
from typing import Callable, Iterable, Optional

from .debounce import DEFAULT_DEBOUNCE_DELAY, DEFAULT_IMAGE_EXTENSIONS, Debouncer
from .ledger import DEFAULT_LEDGER_TTL, FeedbackLedger
from .models import CandidateTable, EventKind, FileEvent, RenameRecord, normalise_path
from .naming import MAX_NAME_LENGTH
from .renamer import RenameCoordinator
from .scheduler import Scheduler
from .stability import DEFAULT_MAX_ATTEMPTS, DEFAULT_POLL_INTERVAL, StabilityPoller, read_file_size
from ..utils.logger import get_logger

_STOP = object()


class _Classified:
    __slots__ = ("path", "future")

    def __init__(self, path: str, future: Future):
        self.path = path
        self.future = future


class WatchPipeline:
    """
    Serialized processing context for one watched directory.

    Only ``post_event`` and ``stop`` may be called from other threads. Every
    other method runs on the pipeline thread (or on the caller's thread via
    ``process_pending`` when no pipeline thread was started).

    Attributes:
        scheduler (Scheduler): Debounce, poll and sweep timers
        candidates (CandidateTable): Per-path debounce/poll bookkeeping
        ledger (FeedbackLedger): Paths produced by our own renames
        debouncer (Debouncer): Burst coalescing
        poller (StabilityPoller): Write-completion detection
        coordinator (RenameCoordinator): Classification and rename
        on_result (Callable): Optional listener for every RenameRecord
    """

    def __init__(self, classifier,
                 debounce_delay: float = DEFAULT_DEBOUNCE_DELAY,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 max_poll_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 ledger_ttl: float = DEFAULT_LEDGER_TTL,
                 max_name_length: int = MAX_NAME_LENGTH,
                 extensions: Iterable[str] = DEFAULT_IMAGE_EXTENSIONS,
                 executor: Optional[Executor] = None,
                 max_workers: int = 2,
                 clock: Callable[[], float] = None,
                 size_reader: Callable[[str], int] = read_file_size,
                 on_result: Optional[Callable[[RenameRecord], None]] = None):
        self.log = get_logger()
        self.clock = clock or time.monotonic
        self.on_result = on_result

        self._queue: Queue = Queue()
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._stopped = False

        self.scheduler = Scheduler(self.clock)
        self.candidates = CandidateTable()
        self.ledger = FeedbackLedger(ttl=ledger_ttl, clock=self.clock)
        self.debouncer = Debouncer(
            self.scheduler, self.candidates,
            on_settled=self._on_settled,
            delay=debounce_delay,
            extensions=extensions
        )
        self.poller = StabilityPoller(
            self.scheduler, self.candidates,
            on_ready=self._on_ready,
            interval=poll_interval,
            max_attempts=max_poll_attempts,
            size_reader=size_reader
        )
        self.executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="screener-classifier"
        )
        self.coordinator = RenameCoordinator(
            classifier, self.ledger,
            executor=self.executor,
            deliver=self._post_classified,
            max_name_length=max_name_length
        )
        self._sweep_timer = None

    # Cross-thread entry points ------------------------------------------

    def post_event(self, path: str, kind: EventKind = EventKind.CREATED,
                   timestamp: Optional[float] = None) -> None:
        """Queue a raw notification. Safe to call from any thread."""
        if self._stopped:
            return
        event = FileEvent(
            path=normalise_path(path),
            kind=EventKind(kind),
            timestamp=timestamp if timestamp is not None else time.time()
        )
        self._queue.put(event)

    def _post_classified(self, path: str, future: Future) -> None:
        # Runs on a classifier worker thread (or inline for finished futures)
        if not self._stopped:
            self._queue.put(_Classified(path, future))

    # Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        """Start the pipeline thread."""
        if self._running:
            self.log.warning("Pipeline already running")
            return
        self._running = True
        self._schedule_sweep()
        self._thread = threading.Thread(target=self._run, name="screener-pipeline", daemon=True)
        self._thread.start()
        self.log.info("Pipeline started")

    def stop(self, wait: bool = False, timeout: float = None) -> None:
        """
        Stop processing and drop all per-path state.

        Args:
            wait (bool): Block until the pipeline thread has exited
            timeout (float, optional): Upper bound for ``wait``
        """
        if self._stopped:
            return
        self._stopped = True

        if self._thread is not None and self._thread.is_alive():
            self._queue.put(_STOP)
            if wait and self._thread is not threading.current_thread():
                self._thread.join(timeout)
        else:
            self._teardown()

    @property
    def running(self) -> bool:
        return self._running and not self._stopped

    def _run(self) -> None:
        while True:
            timeout = self.scheduler.next_delay()
            try:
                message = self._queue.get(timeout=timeout)
            except Empty:
                message = None

            if message is _STOP:
                break
            if message is not None:
                self._dispatch(message)
            self._fire_timers()

        self._teardown()

    def _teardown(self) -> None:
        self.debouncer.cancel_all()
        self.poller.cancel_all()
        self.scheduler.clear()
        self.candidates.clear()
        self.ledger.clear()
        self.coordinator.clear()
        self.executor.shutdown(wait=False, cancel_futures=True)
        # Discard messages that raced with the stop request
        while True:
            try:
                self._queue.get_nowait()
            except Empty:
                break
        self._running = False
        self.log.info("Pipeline stopped")

    def process_pending(self) -> int:
        """
        Handle every queued message and due timer on the calling thread.

        Returns:
            int: Number of messages and timers handled
        """
        handled = 0
        while True:
            try:
                message = self._queue.get_nowait()
            except Empty:
                fired = self._fire_timers()
                handled += fired
                if fired == 0 and self._queue.empty():
                    break
                continue

            if message is _STOP:
                self._teardown()
                break
            self._dispatch(message)
            handled += 1
        return handled

    # Pipeline thread ------------------------------------------------------

    def _dispatch(self, message) -> None:
        try:
            if isinstance(message, FileEvent):
                self.handle_event(message)
            elif isinstance(message, _Classified):
                self._handle_classified(message)
        except Exception as e:
            self.log.error(f"Error handling {type(message).__name__}: {e}", exc_info=True)

    def _fire_timers(self) -> int:
        try:
            return self.scheduler.run_due()
        except Exception as e:
            self.log.error(f"Timer callback failed: {e}", exc_info=True)
            return 1

    def handle_event(self, event: FileEvent) -> bool:
        """
        Pipeline entry point for one raw event.

        Returns:
            bool: True if the event reached the debouncer and was accepted
        """
        if self.ledger.should_suppress(event.path):
            self.log.event_suppressed(event.path, event.kind.value)
            return False
        return self.debouncer.on_event(event.path, event.kind, event.timestamp)

    def _on_settled(self, path: str) -> None:
        self.poller.begin_polling(path)

    def _on_ready(self, path: str) -> None:
        record = self.coordinator.on_ready(path)
        if record is not None:
            self._emit(record)

    def _handle_classified(self, message: _Classified) -> None:
        record = self.coordinator.complete(message.path, message.future)
        self._emit(record)

    def _emit(self, record: RenameRecord) -> None:
        if self.on_result is not None:
            try:
                self.on_result(record)
            except Exception as e:
                self.log.error(f"Result listener failed: {e}", exc_info=True)

    def _schedule_sweep(self) -> None:
        self._sweep_timer = self.scheduler.call_later(self.ledger.ttl, self._sweep)

    def _sweep(self) -> None:
        removed = self.ledger.sweep()
        if removed:
            self.log.debug(f"Expired {removed} feedback ledger entries", event_type='ledger_sweep')
        self._schedule_sweep()
