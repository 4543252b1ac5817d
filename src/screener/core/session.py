"""
Watch Session Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

A watch session binds one watched folder, its access grant, a notification
source and a pipeline. The monitor keeps exactly one watch target at a time
and replaces the session whenever a new folder is chosen.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

from contextlib import ExitStack
from typing import Callable, Optional

from .access import AccessGrant, DirectoryAccess, scoped_access
from .models import WatchTarget
from .pipeline import WatchPipeline
from .watcher import DirectoryObserver
from ..errors import AccessDenied, SubscriptionFailed
from ..utils.logger import get_logger


class WatchSession:
    """
    One running watch over one directory.

    Attributes:
        target (WatchTarget): Directory and access grant
        pipeline (WatchPipeline): Processing context
        source (DirectoryObserver): Notification source feeding the pipeline
    """

    def __init__(self, target: WatchTarget, pipeline: WatchPipeline,
                 source: Optional[DirectoryObserver] = None):
        self.target = target
        self.pipeline = pipeline
        self.source = source or DirectoryObserver(target.directory, pipeline.post_event)
        self.active = False
        self._resources: Optional[ExitStack] = None
        self.logger = get_logger()

    def start(self) -> None:
        """
        Acquire access, start the pipeline and subscribe to notifications.

        Raises:
            AccessDenied: If the grant refuses access to the directory
            SubscriptionFailed: If notifications cannot be received
        """
        if self.active:
            return

        # Unwinds in reverse: source, pipeline, then the grant
        with ExitStack() as stack:
            stack.enter_context(scoped_access(self.target.grant))
            self.pipeline.start()
            stack.callback(self.pipeline.stop)
            self.source.start()
            stack.callback(self.source.stop)
            self._resources = stack.pop_all()

        self.active = True
        self.logger.info(f"Screenshot monitoring started for {self.target.directory}",
                         directory=self.target.directory)

    def stop(self) -> None:
        """Stop notifications, cancel all pipeline work and release access. Never blocks."""
        resources, self._resources = self._resources, None
        try:
            if resources is not None:
                resources.close()
        finally:
            self.target.grant.end()
            if self.active:
                self.active = False
                self.logger.info("Screenshot monitoring stopped", directory=self.target.directory)

    def __enter__(self) -> "WatchSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()


class ScreenshotMonitor:
    """
    Holds the single active watch target and toggles monitoring on it.

    Attributes:
        classifier: Vision client used by every new pipeline
        pipeline_factory (Callable): Builds a WatchPipeline for a classifier
        grant_factory (Callable): Builds an AccessGrant for a directory
        target (WatchTarget, optional): Current watch target
        session (WatchSession, optional): Running session, if monitoring
    """

    def __init__(self, classifier, pipeline_factory: Callable[..., WatchPipeline] = None,
                 grant_factory: Callable[[str], AccessGrant] = DirectoryAccess,
                 source_factory: Callable[[str, Callable], DirectoryObserver] = DirectoryObserver):
        self.classifier = classifier
        self.pipeline_factory = pipeline_factory or WatchPipeline
        self.grant_factory = grant_factory
        self.source_factory = source_factory
        self.target: Optional[WatchTarget] = None
        self.session: Optional[WatchSession] = None
        self.logger = get_logger()

    @property
    def is_monitoring(self) -> bool:
        return self.session is not None and self.session.active

    def set_folder(self, directory: str) -> WatchTarget:
        """
        Replace the watch target. Monitoring restarts on the new folder if it was running.

        Args:
            directory (str): Folder to watch

        Returns:
            WatchTarget: The new target
        """
        was_monitoring = self.is_monitoring
        if was_monitoring:
            self.stop()

        self.target = WatchTarget(directory, self.grant_factory(directory))
        self.logger.info(f"Watched folder set to {self.target.directory}")

        if was_monitoring:
            self.start()
        return self.target

    def start(self) -> bool:
        """
        Start monitoring the current target.

        Returns:
            bool: True if monitoring is running afterwards
        """
        if self.is_monitoring:
            return True

        if self.target is None:
            self.logger.warning("Cannot start: watched folder not set")
            return False

        has_credential = getattr(self.classifier, 'has_credential', None)
        if has_credential is not None and not has_credential():
            self.logger.warning("Cannot start: classifier credential missing")
            return False

        pipeline = self.pipeline_factory(self.classifier)
        source = self.source_factory(self.target.directory, pipeline.post_event)
        session = WatchSession(self.target, pipeline, source)
        try:
            session.start()
        except (AccessDenied, SubscriptionFailed) as e:
            self.logger.error(f"Failed to start monitoring: {e}", directory=self.target.directory)
            return False

        self.session = session
        return True

    def stop(self) -> None:
        session, self.session = self.session, None
        if session is not None:
            session.stop()

    def toggle(self) -> bool:
        """Start if stopped, stop if running. Returns the new monitoring state."""
        if self.is_monitoring:
            self.stop()
            return False
        return self.start()
