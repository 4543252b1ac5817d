"""
Rename Coordinator Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module turns "file ready" signals into renamed files. It submits each
ready file to the classifier exactly once, sanitizes the returned description
into a filename and renames the file in place without ever overwriting an
existing file. Every successful rename is recorded in the feedback ledger so
the notification it generates is not mistaken for a new screenshot.

NOTICE: This software is proprietary and confidential. Unauthorized copying,
modification, distribution, or use is strictly prohibited.
See LICENSE.txt for full terms and conditions.

Version: 1.0.0
Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import os
import logging
from concurrent.futures import Executor, Future
from typing import Callable, Optional, Set

from .ledger import FeedbackLedger
from .models import RenameOutcome, RenameRecord, normalise_path
from .naming import MAX_NAME_LENGTH, build_target_path, sanitize_name
from ..errors import (
    ClassifierFailure,
    FailureReason,
    RenameCollision,
    RenameError,
    RenameIOError,
    SourceVanished,
)
from ..utils.logger import get_logger

# Initialize logger for audit trail
logger = logging.getLogger(__name__)


def rename_no_clobber(source: str, target: str) -> None:
    """
    Rename ``source`` to ``target`` inside the same directory, never overwriting.

    Args:
        source (str): Existing file
        target (str): New path

    Raises:
        SourceVanished: If ``source`` no longer exists
        RenameCollision: If ``target`` exists and is a different file
        RenameIOError: For any other operating system failure
    """
    if not os.path.lexists(source):
        raise SourceVanished(source, target)

    if os.path.lexists(target):
        # Case-only renames on case-insensitive filesystems see the source here
        try:
            same_file = os.path.samefile(source, target)
        except OSError:
            same_file = False
        if not same_file:
            raise RenameCollision(source, target)
        try:
            os.rename(source, target)
        except OSError as e:
            raise RenameIOError(source, target, e)
        return

    # link() refuses an existing target atomically; rename() would replace it
    try:
        os.link(source, target)
    except FileExistsError:
        raise RenameCollision(source, target)
    except FileNotFoundError:
        raise SourceVanished(source, target)
    except OSError as e:
        raise RenameIOError(source, target, e)

    try:
        os.unlink(source)
    except FileNotFoundError:
        # Someone else removed the old name; the new one is in place
        return
    except OSError as e:
        os.unlink(target)
        raise RenameIOError(source, target, e)


class RenameCoordinator:
    """
    Classify ready files and rename them from the description.

    Attributes:
        classifier: Object with ``describe(file_path) -> str``
        ledger (FeedbackLedger): Registry of self-produced paths
        executor (Executor): Runs classifier calls off the pipeline thread
        deliver (Callable): Hands a finished classifier future back to the pipeline
        in_flight (Set[str]): Paths submitted to the classifier, result pending
    """

    def __init__(self, classifier, ledger: FeedbackLedger, executor: Optional[Executor] = None,
                 deliver: Optional[Callable[[str, Future], None]] = None,
                 max_name_length: int = MAX_NAME_LENGTH):
        self.classifier = classifier
        self.ledger = ledger
        self.executor = executor
        self.deliver = deliver
        self.max_name_length = max_name_length
        self.in_flight: Set[str] = set()
        self.log = get_logger()

    def on_ready(self, path: str) -> Optional[RenameRecord]:
        """
        Submit a ready file to the classifier.

        Args:
            path (str): Normalised path of a file whose size has settled

        Returns:
            RenameRecord or None: A DUPLICATE record if the file is already in
            flight, otherwise None (the result arrives through ``deliver``)
        """
        if path in self.in_flight:
            record = RenameRecord(path, None, path, RenameOutcome.DUPLICATE)
            self.log.rename_result(path, path, record.outcome.value)
            return record

        self.in_flight.add(path)
        logger.info(f"Submitting {path} for classification")
        future = self.executor.submit(self.classifier.describe, path)
        future.add_done_callback(lambda f: self.deliver(path, f))
        return None

    def complete(self, path: str, future: Future) -> RenameRecord:
        """
        Finish a classification: rename on success, leave the file untouched on failure.

        Runs on the pipeline thread.
        """
        self.in_flight.discard(path)
        try:
            description = future.result()
        except ClassifierFailure as e:
            return self._classifier_failed(path, e)
        except Exception as e:
            failure = ClassifierFailure(FailureReason.API_ERROR, f"Unexpected classifier error: {e}", path)
            failure.__cause__ = e
            return self._classifier_failed(path, failure)

        return self.apply_suggestion(path, description)

    def rename_file(self, path: str) -> RenameRecord:
        """
        Classify and rename one file synchronously on the calling thread.

        Args:
            path (str): File to process

        Returns:
            RenameRecord: Outcome of the cycle
        """
        path = normalise_path(path)
        try:
            description = self.classifier.describe(path)
        except ClassifierFailure as e:
            return self._classifier_failed(path, e)
        return self.apply_suggestion(path, description)

    def apply_suggestion(self, path: str, description: str) -> RenameRecord:
        """
        Rename ``path`` after a classifier description.

        Args:
            path (str): Current file path
            description (str): Raw classifier output

        Returns:
            RenameRecord: RENAMED, UNCHANGED, EMPTY_NAME, COLLISION,
            SOURCE_VANISHED or IO_ERROR
        """
        name = sanitize_name(description, self.max_name_length)
        if not name:
            record = RenameRecord(path, name, path, RenameOutcome.EMPTY_NAME)
            self.log.rename_result(path, path, record.outcome.value, name,
                                   error=f"No usable characters in description {description!r}")
            return record

        target = build_target_path(path, name)
        if target == path:
            record = RenameRecord(path, name, path, RenameOutcome.UNCHANGED)
            self.log.rename_result(path, target, record.outcome.value, name)
            return record

        self.ledger.mark_pending(target)
        try:
            rename_no_clobber(path, target)
        except RenameError as e:
            self.ledger.discard(target)
            return self._rename_failed(path, name, e)

        self.ledger.mark_produced(target)
        record = RenameRecord(path, name, target, RenameOutcome.RENAMED)
        self.log.rename_result(path, target, record.outcome.value, name)
        return record

    def _classifier_failed(self, path: str, error: ClassifierFailure) -> RenameRecord:
        self.log.classifier_failure(path, error.reason.value, str(error))
        return RenameRecord(path, None, path, RenameOutcome.CLASSIFIER_FAILED, error)

    def _rename_failed(self, path: str, name: str, error: RenameError) -> RenameRecord:
        if isinstance(error, RenameCollision):
            outcome = RenameOutcome.COLLISION
        elif isinstance(error, SourceVanished):
            outcome = RenameOutcome.SOURCE_VANISHED
        else:
            outcome = RenameOutcome.IO_ERROR
        self.log.rename_result(path, error.target, outcome.value, name, error=str(error))
        final = None if outcome is RenameOutcome.SOURCE_VANISHED else path
        return RenameRecord(path, name, final, outcome, error)

    def clear(self) -> None:
        self.in_flight.clear()
