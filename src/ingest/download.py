"""Remote resource download for the DOWNLOAD acquisition kind.

This module materializes ``http(s)://`` resources with requests and
``s3://`` objects with boto3 under the local downloads directory.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any
from urllib.parse import urlparse

import boto3
import requests

from core.config import VarIndexConfig
from core.constants import DOWNLOAD_CHUNK_SIZE, DOWNLOADS_DIR_NAME
from core.errors import VarIndexDownloadError
from core.logging_config import get_logger
from core.s3_uri import is_s3_uri, parse_s3_uri

_LOGGER = get_logger(__name__)


class RemoteDownloader:
    """Download collaborator writing into ``<data_root>/downloads``."""

    def __init__(self, config: VarIndexConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._downloads_root = config.data_root / DOWNLOADS_DIR_NAME
        self._session = session or requests.Session()

    def fetch(self, url: str) -> Path:
        """Download a remote resource to local storage.

        Args:
            url: ``http(s)://`` or ``s3://`` location.

        Returns:
            Path of the downloaded local file.

        Raises:
            VarIndexDownloadError: If the URL is unsupported or the transfer fails.
        """
        target_path = self._target_path(url)
        target_path.parent.mkdir(parents=True, exist_ok=True)
        if is_s3_uri(url):
            self._fetch_s3(url, target_path)
        elif url.startswith(("http://", "https://")):
            self._fetch_http(url, target_path)
        else:
            raise VarIndexDownloadError(
                f"Unsupported download URL '{url}'. Use an http(s):// or s3:// location."
            )
        _LOGGER.info("variant_file_downloaded", url=url, path=str(target_path))
        return target_path

    def _fetch_http(self, url: str, target_path: Path) -> None:
        try:
            with self._session.get(url, stream=True) as response:
                response.raise_for_status()
                with target_path.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        handle.write(chunk)
        except (requests.RequestException, OSError) as error:
            raise VarIndexDownloadError(
                f"Failed to download {url} to {target_path}: {error}. "
                "Check the URL and network access, then retry registration."
            ) from error

    def _fetch_s3(self, url: str, target_path: Path) -> None:
        location = parse_s3_uri(url)
        s3_client = _create_s3_client(self._config)
        try:
            s3_client.download_file(location.bucket, location.key, str(target_path))
        except Exception as error:
            raise VarIndexDownloadError(
                f"Failed to download {url} to {target_path}: {error}. "
                "Check AWS credentials and object permissions."
            ) from error

    def _target_path(self, url: str) -> Path:
        file_name = remote_file_name(url)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        digest = hashlib.sha256(f"{url}|{timestamp}".encode("utf-8")).hexdigest()[:10]
        return self._downloads_root / f"{timestamp}-{digest}" / file_name


def remote_file_name(url: str) -> str:
    """Return the last path segment of a remote URL."""
    if is_s3_uri(url):
        path = parse_s3_uri(url).key
    else:
        path = urlparse(url).path
    name = PurePosixPath(path).name
    if not name:
        raise VarIndexDownloadError(
            f"Cannot derive a file name from '{url}'. Point the URL at a file."
        )
    return name


def _create_s3_client(config: VarIndexConfig) -> Any:
    """Create a boto3 S3 client from config session settings."""
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")
