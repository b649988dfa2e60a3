# SPDX-License-Identifier: MIT
# Copyright (c) 2025 vaultbridge contributors

"""Name validation for items and locations.

Backends interpolate names into command lines and request paths, so every
caller-supplied name is checked here before any I/O happens.
"""

import unicodedata

from .exceptions import InvalidNameError

# Shell metacharacters that could enable command injection
DANGEROUS_CHARS = ";|&$`<>(){}[]!*?~#%^\\\"'"

MAX_NAME_LENGTH = 255


def validate_name(name: str) -> None:
    """Check that a name is safe to hand to a backend.

    Args:
        name: Proposed item or location name

    Raises:
        InvalidNameError: If the name is empty, longer than 255 characters,
            contains a NUL byte, a control character other than newline or
            tab, or a shell metacharacter

    Example:
        >>> validate_name("prod.database.password")
        >>> validate_name("name; rm -rf /")
        Traceback (most recent call last):
        ...
        vaultbridge.exceptions.InvalidNameError: invalid item name: ...
    """
    if not name:
        raise InvalidNameError("name cannot be empty")

    if len(name) > MAX_NAME_LENGTH:
        raise InvalidNameError(f"name exceeds maximum length of {MAX_NAME_LENGTH} characters")

    if "\0" in name:
        raise InvalidNameError("name contains null byte")

    if any(unicodedata.category(c) == "Cc" and c not in "\n\t" for c in name):
        raise InvalidNameError("name contains control characters")

    if any(c in DANGEROUS_CHARS for c in name):
        raise InvalidNameError(f"name contains dangerous characters (not allowed: {DANGEROUS_CHARS})")


def validate_item_name(name: str) -> None:
    """Validate an item name. See :func:`validate_name`."""
    validate_name(name)


def validate_location_name(name: str) -> None:
    """Validate a location (folder, vault, directory) name with the item rules."""
    validate_name(name)
