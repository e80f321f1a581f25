"""Unit tests for directional nearest-variation lookup."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

import pytest

from core.config import VarIndexConfig
from core.errors import VarIndexNotFoundError
from core.types import Direction, Genotype, IndexDescriptor, Sample, SourceKind, VariantFile
from serve.nearest_variation import NearestVariationLocator, is_search_exhausted
from serve.variation_reader import FileVariationReader, VariationReaders
from store.file_catalog import FileCatalog
from tests.variant_fakes import FakeDecoder, chromosome, header, record

_PATH = "/data/calls.vcf.gz"


def _catalog(tmp_path: Path) -> FileCatalog:
    return FileCatalog(replace(VarIndexConfig.from_env(), data_root=tmp_path))


def _register(catalog: FileCatalog, indexed: bool = True) -> VariantFile:
    created_at = datetime.now(timezone.utc)
    variant_file = VariantFile(
        id=catalog.next_file_id(),
        name="calls.vcf.gz",
        path=_PATH,
        source_kind=SourceKind.LOCAL_FILE,
        compressed=True,
        reference_id=1,
        created_at=created_at,
        owner="tester",
        samples=(Sample("A", 0), Sample("B", 1)),
        index=IndexDescriptor(_PATH + ".tbi", SourceKind.LOCAL_FILE, "calls_index", created_at, "tester")
        if indexed
        else None,
    )
    catalog.save(variant_file)
    return variant_file


def _locator(tmp_path: Path, decoder: FakeDecoder) -> tuple[NearestVariationLocator, FileCatalog]:
    catalog = _catalog(tmp_path)
    return NearestVariationLocator(catalog, VariationReaders(FileVariationReader(decoder))), catalog


def _decoder() -> FakeDecoder:
    decoder = FakeDecoder()
    decoder.add(
        _PATH,
        header(samples=("A", "B")),
        [
            record("chr1", 100, genotypes=(Genotype((0, 1)), Genotype((1, 1)))),
            record("chr1", 200, genotypes=(Genotype((0, 0)), Genotype((0, 1)))),
            record("chr1", 30_000, genotypes=(Genotype((1, 1)), Genotype((0, 0)))),
        ],
    )
    return decoder


def test_is_search_exhausted_at_boundaries() -> None:
    """Boundary positions should short-circuit in their direction."""
    assert is_search_exhausted(999, 1000, Direction.FORWARD)
    assert not is_search_exhausted(998, 1000, Direction.FORWARD)
    assert is_search_exhausted(1, 1000, Direction.BACKWARD)
    assert not is_search_exhausted(2, 1000, Direction.BACKWARD)


def test_boundary_returns_none_without_file_access(tmp_path: Path) -> None:
    """Exhausted searches should not open the file nor need it registered."""
    decoder = _decoder()
    locator, _ = _locator(tmp_path, decoder)
    current = chromosome(1, "chr1", size=1000)

    forward = locator.locate(999, 404, current, Direction.FORWARD)
    backward = locator.locate(1, 404, current, Direction.BACKWARD)

    assert forward is None and backward is None
    assert decoder.open_count == 0


def test_forward_returns_next_variation_with_sample_genotype(tmp_path: Path) -> None:
    """Forward search should skip the current position."""
    decoder = _decoder()
    locator, catalog = _locator(tmp_path, decoder)
    variant_file = _register(catalog)

    variation = locator.locate(100, variant_file.id, chromosome(1, "chr1"), Direction.FORWARD, "B")

    assert variation is not None and variation.start_index == 200
    assert variation.genotype == Genotype((0, 1))
    assert decoder.close_count == 1


def test_backward_expands_window_until_found(tmp_path: Path) -> None:
    """Backward search should widen past the first window."""
    locator, catalog = _locator(tmp_path, _decoder())
    variant_file = _register(catalog)

    variation = locator.locate(30_000, variant_file.id, chromosome(1, "chr1"), Direction.BACKWARD)

    assert variation is not None and variation.start_index == 200


def test_backward_returns_none_before_first_variation(tmp_path: Path) -> None:
    """Nothing before the first record should yield no variation."""
    locator, catalog = _locator(tmp_path, _decoder())
    variant_file = _register(catalog)

    assert locator.locate(50, variant_file.id, chromosome(1, "chr1"), Direction.BACKWARD) is None


def test_unindexed_file_is_not_found(tmp_path: Path) -> None:
    """Files without a positional index cannot be searched."""
    locator, catalog = _locator(tmp_path, _decoder())
    variant_file = _register(catalog, indexed=False)

    with pytest.raises(VarIndexNotFoundError, match="index"):
        locator.locate(100, variant_file.id, chromosome(1, "chr1"), Direction.FORWARD)


def test_unknown_file_is_not_found(tmp_path: Path) -> None:
    """Unknown file ids should fail once past the boundary check."""
    locator, _ = _locator(tmp_path, _decoder())

    with pytest.raises(VarIndexNotFoundError):
        locator.locate(100, 404, chromosome(1, "chr1"), Direction.FORWARD)
