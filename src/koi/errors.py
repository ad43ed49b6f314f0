"""Shared error types for koi.

Input problems are raised before anything touches the disk. Read-time
corruption is not an error here: the store skips bad files instead.
"""


class KoiError(Exception):
    """Base error for koi."""


class InvalidInputError(KoiError):
    """Tool arguments failed validation (missing content, unknown scope, ...)."""


class MemoryDecodeError(KoiError):
    """A memory document is missing required fields or is malformed."""
