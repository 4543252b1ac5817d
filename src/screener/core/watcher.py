"""
File Watcher Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module subscribes to filesystem notifications for the watched folder
using the watchdog library and forwards every relevant file event to the
pipeline. Delivery is at-least-once and may be duplicated or batched; all
filtering and coalescing happens downstream.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import os
import time
from typing import Callable, Optional
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler, FileSystemEvent

from .models import EventKind, normalise_path
from ..errors import SubscriptionFailed
from ..utils.logger import get_logger

EventSink = Callable[[str, EventKind, float], None]


class ScreenshotEventHandler(FileSystemEventHandler):
    """
    Translate watchdog callbacks into raw pipeline events.

    Attributes:
        sink (Callable): Receives ``(path, kind, timestamp)`` for each file event
        directory (str): Normalised watched directory
    """

    def __init__(self, sink: EventSink, directory: str):
        """
        Initialize file event handler.

        Args:
            sink (Callable): Function called for every file event
            directory (str): Watched directory
        """
        super().__init__()
        self.sink = sink
        self.directory = normalise_path(directory)

    def _in_directory(self, path: str) -> bool:
        return os.path.dirname(normalise_path(path)) == self.directory

    def _emit(self, path, kind: EventKind):
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if self._in_directory(path):
            self.sink(normalise_path(path), kind, time.time())

    def on_created(self, event: FileSystemEvent):
        """
        Handle file creation events.

        Args:
            event (FileSystemEvent): File system event
        """
        if not event.is_directory:
            self._emit(event.src_path, EventKind.CREATED)

    def on_modified(self, event: FileSystemEvent):
        """
        Handle file modification events.

        Args:
            event (FileSystemEvent): File system event
        """
        if not event.is_directory:
            self._emit(event.src_path, EventKind.MODIFIED)

    def on_moved(self, event: FileSystemEvent):
        """
        Handle rename events. Only the destination can be a new file.

        Args:
            event (FileSystemEvent): File system event
        """
        if not event.is_directory:
            self._emit(event.dest_path, EventKind.RENAMED)


class DirectoryObserver:
    """
    Notification source for a single directory.

    Attributes:
        directory (str): Directory to watch (not recursive)
        sink (Callable): Event sink, normally ``WatchPipeline.post_event``
        observer (Observer): Watchdog observer instance
    """

    def __init__(self, directory: str, sink: EventSink, observer_factory: Callable = Observer):
        self.directory = normalise_path(directory)
        self.sink = sink
        self.observer_factory = observer_factory
        self.observer: Optional[Observer] = None
        self.handler = ScreenshotEventHandler(sink, self.directory)
        self.logger = get_logger()

    @property
    def running(self) -> bool:
        return self.observer is not None

    def start(self):
        """
        Subscribe to changes in the directory.

        Raises:
            SubscriptionFailed: If the observer cannot be scheduled or started
        """
        if self.observer is not None:
            self.logger.warning("Watcher already running", directory=self.directory)
            return

        observer = self.observer_factory()
        try:
            observer.schedule(self.handler, self.directory, recursive=False)
            observer.start()
        except Exception as e:
            self.logger.error(f"Failed to watch {self.directory}: {e}", directory=self.directory)
            raise SubscriptionFailed(self.directory, e) from e

        self.observer = observer
        self.logger.info(f"Monitoring: {self.directory}", directory=self.directory)

    def stop(self, wait: bool = False, timeout: float = 2.0):
        """
        Stop receiving notifications.

        Args:
            wait (bool): Join the observer thread before returning
            timeout (float): Upper bound for the join
        """
        observer, self.observer = self.observer, None
        if observer is None:
            return

        observer.stop()
        if wait:
            observer.join(timeout)
        self.logger.info("Watcher stopped", directory=self.directory)
