"""Unit tests for the reference genome catalog."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from core.config import VarIndexConfig
from core.errors import VarIndexNotFoundError
from core.types import GeneFile
from store.reference_catalog import ReferenceCatalog
from tests.variant_fakes import chromosome, reference


def _catalog(tmp_path: Path) -> ReferenceCatalog:
    return ReferenceCatalog(replace(VarIndexConfig.from_env(), data_root=tmp_path))


def test_register_and_load_reference(tmp_path: Path) -> None:
    """Registered references should load with chromosomes and gene file."""
    catalog = _catalog(tmp_path)
    genome = replace(
        reference(chromosome(11, "chr1"), chromosome(12, "chr2")),
        gene_file=GeneFile(id=5, path="/refs/genes.bed"),
    )

    catalog.register_reference(genome)

    assert catalog.load_reference(genome.id) == genome


def test_load_chromosome_searches_all_references(tmp_path: Path) -> None:
    """Chromosome ids should resolve across registered references."""
    catalog = _catalog(tmp_path)
    catalog.register_reference(reference(chromosome(11, "chr1"), reference_id=1))
    catalog.register_reference(reference(chromosome(21, "chrX", reference_id=2), reference_id=2))

    assert catalog.load_chromosome(21).name == "chrX"


def test_unknown_reference_is_not_found(tmp_path: Path) -> None:
    """Unknown references should raise not-found errors."""
    with pytest.raises(VarIndexNotFoundError):
        _catalog(tmp_path).load_reference(404)
