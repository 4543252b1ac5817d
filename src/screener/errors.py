"""
Error Types Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

This module defines the exception hierarchy used across the screenshot
pipeline. Session-level errors (access, subscription) stop a watch session;
every other error is local to a single file and never blocks the pipeline.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

from enum import Enum
from typing import Optional


class ScreenerError(Exception):
    """Base exception for all screener errors."""
    pass


class ConfigurationError(ScreenerError):
    """Exception for invalid or malformed configuration."""
    pass


# Session-level errors ------------------------------------------------------

class AccessDenied(ScreenerError):
    """The directory access grant was refused; watching must not start."""

    def __init__(self, directory: str, message: str = None):
        super().__init__(message or f"Access to directory refused: {directory}")
        self.directory = directory


class SubscriptionFailed(ScreenerError):
    """The filesystem notification subscription could not be established."""

    def __init__(self, directory: str, cause: Exception = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not subscribe to changes in {directory}{detail}")
        self.directory = directory
        self.cause = cause


# Poll cycle errors ---------------------------------------------------------

class PollAborted(ScreenerError):
    """A stability poll cycle for one file ended without a stable size."""

    def __init__(self, path: str, attempt: int, message: str):
        super().__init__(message)
        self.path = path
        self.attempt = attempt


class Disappeared(PollAborted):
    """The file vanished while it was being polled."""

    def __init__(self, path: str, attempt: int):
        super().__init__(path, attempt, f"File disappeared during poll attempt {attempt}: {path}")


class StatIOError(PollAborted):
    """Reading the file size failed for a reason other than a missing file."""

    def __init__(self, path: str, attempt: int, cause: OSError):
        super().__init__(path, attempt, f"Could not stat {path} on attempt {attempt}: {cause}")
        self.cause = cause


class PollTimeout(PollAborted):
    """The file size never settled within the attempt budget."""

    def __init__(self, path: str, attempt: int, max_attempts: int):
        super().__init__(path, attempt, f"Size of {path} not stable after {max_attempts} attempts")
        self.max_attempts = max_attempts


# Classifier errors ---------------------------------------------------------

class FailureReason(str, Enum):
    """Why a classification request did not produce a description."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_IMAGE = "invalid_image"
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    API_ERROR = "api_error"
    MALFORMED_RESPONSE = "malformed_response"


class ClassifierFailure(ScreenerError):
    """The external classifier could not describe an image."""

    def __init__(self, reason: FailureReason, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.reason = reason
        self.path = path

    def __str__(self) -> str:
        return f"[{self.reason.value}] {super().__str__()}"


# Rename errors -------------------------------------------------------------

class RenameError(ScreenerError):
    """Base exception for a rename that left the file untouched."""

    def __init__(self, source: str, target: str, message: str):
        super().__init__(message)
        self.source = source
        self.target = target


class RenameCollision(RenameError):
    """The target name is already taken by another file."""

    def __init__(self, source: str, target: str):
        super().__init__(source, target, f"Target already exists: {target}")


class SourceVanished(RenameError):
    """The file to rename no longer exists."""

    def __init__(self, source: str, target: str):
        super().__init__(source, target, f"Source file vanished before rename: {source}")


class RenameIOError(RenameError):
    """The operating system refused the rename."""

    def __init__(self, source: str, target: str, cause: OSError):
        super().__init__(source, target, f"Could not rename {source} -> {target}: {cause}")
        self.cause = cause
