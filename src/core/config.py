"""Runtime configuration model for varindex.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

import getpass
import os
from dataclasses import dataclass
from pathlib import Path

from core.constants import DEFAULT_DATA_ROOT
from core.errors import VarIndexConfigError


@dataclass(frozen=True)
class VarIndexConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory for catalogs, indexes, and downloads.
        info_whitelist: INFO field names exposed for filtering; empty means all.
        owner: Owner recorded on newly registered files.
        record_service_url: Optional base URL of the external record service.
        s3_region: Optional default AWS region for S3 downloads.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    data_root: Path
    info_whitelist: tuple[str, ...]
    owner: str
    record_service_url: str | None
    s3_region: str | None
    s3_profile: str | None

    @classmethod
    def from_env(cls) -> "VarIndexConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            VarIndexConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("VARINDEX_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        whitelist_value = os.getenv("VARINDEX_INFO_WHITELIST", "")
        owner = os.getenv("VARINDEX_OWNER") or _default_owner()
        record_service_url = _parse_service_url(os.getenv("VARINDEX_RECORD_SERVICE_URL"))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            info_whitelist=_parse_whitelist(whitelist_value),
            owner=owner,
            record_service_url=record_service_url,
            s3_region=os.getenv("VARINDEX_S3_REGION"),
            s3_profile=os.getenv("VARINDEX_S3_PROFILE"),
        )


def _parse_whitelist(raw_value: str) -> tuple[str, ...]:
    """Split a comma-separated whitelist into unique field names."""
    names: list[str] = []
    for token in raw_value.split(","):
        name = token.strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _parse_service_url(raw_value: str | None) -> str | None:
    """Validate the record service URL.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Normalized URL without trailing slash, or ``None`` when unset.

    Raises:
        VarIndexConfigError: If the URL is not http(s).
    """
    if not raw_value:
        return None
    if not raw_value.startswith(("http://", "https://")):
        raise VarIndexConfigError(
            "Invalid VARINDEX_RECORD_SERVICE_URL value: "
            f"expected http(s) URL, got '{raw_value}'. "
            "Set VARINDEX_RECORD_SERVICE_URL to the record service base URL."
        )
    return raw_value.rstrip("/")


def _default_owner() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"
