"""Varindex exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class VarIndexError(Exception):
    """Base exception for all varindex failures."""


class VarIndexConfigError(VarIndexError):
    """Raised for invalid runtime configuration."""


class VarIndexRegistrationError(VarIndexError):
    """Raised when a variant file cannot be acquired or registered."""


class VarIndexOrderingError(VarIndexError):
    """Raised when a record stream is not sorted by start position."""


class VarIndexIndexError(VarIndexError):
    """Raised for feature index write failures.

    Attributes:
        file_id: Identifier of the variant file being indexed.
    """

    def __init__(self, message: str, file_id: int | None = None) -> None:
        super().__init__(message)
        self.file_id = file_id


class VarIndexNotFoundError(VarIndexError):
    """Raised when a requested file, sample, or variation does not exist."""


class VarIndexReadError(VarIndexError):
    """Raised for reader construction and positional search failures."""


class VarIndexStoreError(VarIndexError):
    """Raised for catalog and metadata persistence failures."""


class VarIndexDownloadError(VarIndexError):
    """Raised when a remote resource cannot be materialized locally."""


class VarIndexGeneReadError(VarIndexError):
    """Raised when gene annotations cannot be read."""
