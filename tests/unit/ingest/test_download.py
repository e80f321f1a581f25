"""Unit tests for remote downloads."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest
import requests

from core.config import VarIndexConfig
from core.errors import VarIndexDownloadError
from ingest.download import RemoteDownloader, remote_file_name


class _FakeStreamResponse:
    def __init__(self, chunks: list[bytes], status_code: int = 200) -> None:
        self._chunks = chunks
        self.status_code = status_code

    def __enter__(self) -> "_FakeStreamResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def iter_content(self, chunk_size: int):
        return iter(self._chunks)


class _FakeSession:
    def __init__(self, response: _FakeStreamResponse) -> None:
        self._response = response

    def get(self, url: str, stream: bool = False) -> _FakeStreamResponse:
        return self._response


def _config(tmp_path: Path) -> VarIndexConfig:
    return replace(VarIndexConfig.from_env(), data_root=tmp_path)


def test_fetch_http_writes_under_downloads(tmp_path: Path) -> None:
    """HTTP downloads should land in the downloads directory."""
    session = _FakeSession(_FakeStreamResponse([b"##fileformat=", b"VCFv4.2\n"]))
    downloader = RemoteDownloader(_config(tmp_path), session=session)

    local_path = downloader.fetch("https://data.example.org/files/cohort.vcf")

    assert local_path.name == "cohort.vcf"
    assert tmp_path / "downloads" in local_path.parents
    assert local_path.read_bytes() == b"##fileformat=VCFv4.2\n"


def test_fetch_http_failure_is_download_error(tmp_path: Path) -> None:
    """HTTP errors should surface as download errors."""
    session = _FakeSession(_FakeStreamResponse([], status_code=404))
    downloader = RemoteDownloader(_config(tmp_path), session=session)

    with pytest.raises(VarIndexDownloadError):
        downloader.fetch("https://data.example.org/files/missing.vcf")


def test_fetch_rejects_unsupported_scheme(tmp_path: Path) -> None:
    """Only http(s) and s3 locations should be accepted."""
    downloader = RemoteDownloader(_config(tmp_path))

    with pytest.raises(VarIndexDownloadError, match="Unsupported"):
        downloader.fetch("ftp://data.example.org/files/cohort.vcf")


def test_remote_file_name_handles_s3_keys() -> None:
    """S3 URIs should resolve to the last key segment."""
    assert remote_file_name("s3://bucket/cohorts/2024/cohort.vcf.gz") == "cohort.vcf.gz"
