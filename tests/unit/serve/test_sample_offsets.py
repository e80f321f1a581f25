"""Unit tests for sample offset resolution."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.errors import VarIndexNotFoundError
from core.types import Sample, SourceKind, VariantFile
from serve.sample_offsets import resolve_sample_offset


def _variant_file(*samples: Sample) -> VariantFile:
    return VariantFile(
        id=1,
        name="calls.vcf",
        path="/data/calls.vcf",
        source_kind=SourceKind.LOCAL_FILE,
        compressed=False,
        reference_id=1,
        created_at=datetime.now(timezone.utc),
        owner="tester",
        samples=samples,
    )


def test_default_sample_is_first_declared() -> None:
    """Without a requested id the first sample's offset should be used."""
    variant_file = _variant_file(Sample("A", 0), Sample("B", 1))

    assert resolve_sample_offset(None, variant_file) == 0


def test_requested_sample_resolves_its_offset() -> None:
    """A requested sample should map to its own column."""
    variant_file = _variant_file(Sample("A", 0), Sample("B", 1))

    assert resolve_sample_offset("B", variant_file) == 1


def test_file_without_samples_has_no_offset() -> None:
    """Sites-only files should resolve to no sample."""
    assert resolve_sample_offset("A", _variant_file()) is None


def test_unknown_sample_is_not_found() -> None:
    """Requesting a sample missing from the file should fail fast."""
    with pytest.raises(VarIndexNotFoundError, match="Z"):
        resolve_sample_offset("Z", _variant_file(Sample("A", 0)))
