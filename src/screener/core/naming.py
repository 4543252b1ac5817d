"""
File Naming Module

Copyright (c) 2025 Alexandru Emanuel Vasile. All rights reserved.
Proprietary Software - 200-Key Limited Release License

Filename helpers for turning a classifier description into a safe name.

NOTICE: This software is proprietary and confidential.
See LICENSE.txt for full terms and conditions.

Author: Alexandru Emanuel Vasile
License: Proprietary (200-key limited release)
"""

import os
import re

MAX_NAME_LENGTH = 100

_UNSAFE_RUN = re.compile(r'[^A-Za-z0-9_-]+')
_UNDERSCORE_RUN = re.compile(r'_{2,}')


def sanitize_name(text: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Reduce free text to a filesystem-safe file stem.

    Args:
        text (str): Description returned by the classifier
        max_length (int): Maximum length of the result

    Returns:
        str: Name made of ``[A-Za-z0-9_-]`` only; may be empty

    Example:
        >>> sanitize_name("Login Error: 404!! Page")
        'Login_Error_404_Page'
    """
    if not text:
        return ""
    name = _UNSAFE_RUN.sub('_', text)
    name = _UNDERSCORE_RUN.sub('_', name).strip('_')
    # Truncation can expose a trailing underscore
    return name[:max_length].rstrip('_')


def build_target_path(original_path: str, name: str) -> str:
    """
    Build the renamed path in the same directory, keeping the original extension.

    Args:
        original_path (str): Current file path
        name (str): Sanitized stem

    Returns:
        str: ``<dir>/<name>.<ext>``, or ``<dir>/<name>`` if there is no extension
    """
    directory, filename = os.path.split(original_path)
    _, ext = os.path.splitext(filename)
    return os.path.join(directory, f"{name}{ext}")
