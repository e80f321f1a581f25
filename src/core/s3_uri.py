"""S3 URI parsing helpers.

This module centralizes S3 URI parsing for remote downloads.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import VarIndexDownloadError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 object location."""

    bucket: str
    key: str


def is_s3_uri(uri: str) -> bool:
    """Return whether a URI addresses an S3 object."""
    return uri.startswith("s3://")


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 object URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and key pair.

    Raises:
        VarIndexDownloadError: If the URI lacks a bucket or key.
    """
    stripped_uri = uri.removeprefix("s3://")
    bucket, _, key = stripped_uri.partition("/")
    if not bucket or not key:
        raise VarIndexDownloadError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/key. "
            "Provide both bucket and object key."
        )
    return S3Location(bucket=bucket, key=key)
