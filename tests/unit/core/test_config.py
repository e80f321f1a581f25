"""Unit tests for core config parsing."""

from __future__ import annotations

import pytest

from core.config import VarIndexConfig
from core.errors import VarIndexConfigError


def test_from_env_reads_data_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve data root from environment."""
    monkeypatch.setenv("VARINDEX_DATA_ROOT", "./.tmp-varindex")

    config = VarIndexConfig.from_env()

    assert config.data_root.name == ".tmp-varindex"


def test_from_env_parses_info_whitelist(monkeypatch: pytest.MonkeyPatch) -> None:
    """Whitelist should split on commas and drop blanks and duplicates."""
    monkeypatch.setenv("VARINDEX_INFO_WHITELIST", "DP, AF,,DP")

    config = VarIndexConfig.from_env()

    assert config.info_whitelist == ("DP", "AF")


def test_from_env_defaults_to_empty_whitelist(monkeypatch: pytest.MonkeyPatch) -> None:
    """Unset whitelist should expose every INFO field."""
    monkeypatch.delenv("VARINDEX_INFO_WHITELIST", raising=False)

    config = VarIndexConfig.from_env()

    assert config.info_whitelist == ()


def test_from_env_raises_for_invalid_service_url(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-http record service URL."""
    monkeypatch.setenv("VARINDEX_RECORD_SERVICE_URL", "ftp://records.example.org")

    with pytest.raises(VarIndexConfigError):
        VarIndexConfig.from_env()


def test_from_env_strips_service_url_slash(monkeypatch: pytest.MonkeyPatch) -> None:
    """Service URL should be normalized without a trailing slash."""
    monkeypatch.setenv("VARINDEX_RECORD_SERVICE_URL", "https://records.example.org/v1/")

    config = VarIndexConfig.from_env()

    assert config.record_service_url == "https://records.example.org/v1"


def test_from_env_reads_owner(monkeypatch: pytest.MonkeyPatch) -> None:
    """Owner should come from the environment when set."""
    monkeypatch.setenv("VARINDEX_OWNER", "lab-user")

    config = VarIndexConfig.from_env()

    assert config.owner == "lab-user"
