"""
Directory Access Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

A watch session may only run while it holds an access grant for its
directory. The grant is acquired once when watching starts and released on
every exit path, including abnormal termination of the session.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import AccessDenied

logger = logging.getLogger(__name__)


class AccessGrant:
    """
    Capability handle for a watched directory.

    Subclasses decide how access is obtained. ``end()`` must be idempotent and
    safe to call even if ``begin()`` returned False.
    """

    def __init__(self, directory: str):
        self.directory = str(Path(directory).expanduser())
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def begin(self) -> bool:
        self._active = True
        return True

    def end(self) -> None:
        self._active = False


class DirectoryAccess(AccessGrant):
    """Grant access when the process can list, read and rename inside the directory."""

    def begin(self) -> bool:
        if self._active:
            return True

        path = Path(self.directory)
        if not path.is_dir():
            logger.warning(f"Watched folder is not a directory: {self.directory}")
            return False

        if not os.access(self.directory, os.R_OK | os.W_OK | os.X_OK):
            logger.warning(f"Insufficient permissions for watched folder: {self.directory}")
            return False

        self._active = True
        logger.info(f"Access granted for {self.directory}")
        return True

    def end(self) -> None:
        if self._active:
            self._active = False
            logger.info(f"Access released for {self.directory}")


@contextmanager
def scoped_access(grant: AccessGrant) -> Iterator[AccessGrant]:
    """
    Hold ``grant`` for the duration of a block.

    Raises:
        AccessDenied: If the grant refuses access
    """
    if not grant.begin():
        grant.end()
        raise AccessDenied(grant.directory)
    try:
        yield grant
    finally:
        grant.end()
