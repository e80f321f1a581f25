"""Gene annotation lookups for reference genomes.

Gene files are BED-like tables: ``chrom start end gene_id [gene_name]``
with 0-based half-open coordinates, optionally gzip compressed. Bgzipped
files with a tabix index next to them are queried by region for point
lookups.
"""

from __future__ import annotations

import gzip
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import pysam

from core.chromosome_map import chromosome_name_variants
from core.constants import GZIP_SUFFIXES, TABIX_INDEX_SUFFIX
from core.errors import VarIndexGeneReadError
from core.types import Chromosome, GeneFile

_SKIPPED_LINE_PREFIXES = ("#", "track", "browser")


@dataclass(frozen=True)
class GeneInterval:
    """Gene interval with 1-based inclusive coordinates."""

    gene_id: str
    gene_name: str
    start: int
    end: int

    def overlaps(self, start: int, end: int) -> bool:
        return self.start <= end and start <= self.end


class GeneAnnotationReader:
    """Reads gene intervals per chromosome from gene files."""

    def load_genes(self, gene_files: Iterable[GeneFile], chromosome: Chromosome) -> list[GeneInterval]:
        """Load all gene intervals on a chromosome.

        Args:
            gene_files: Gene files to read.
            chromosome: Target chromosome.

        Returns:
            Gene intervals sorted by start.

        Raises:
            VarIndexGeneReadError: If a gene file is missing or malformed.
        """
        names = set(chromosome_name_variants(chromosome.name))
        genes: list[GeneInterval] = []
        for gene_file in gene_files:
            genes.extend(_read_gene_file(Path(gene_file.path), names))
        return sorted(genes, key=lambda gene: gene.start)

    def fetch_gene_ids(
        self,
        start: int,
        end: int,
        gene_files: Iterable[GeneFile],
        chromosome: Chromosome,
    ) -> set[str]:
        """Return ids of genes overlapping ``[start, end]``.

        Tabix-indexed gene files are queried for the region only; other
        files are scanned for the whole chromosome.

        Raises:
            VarIndexGeneReadError: If a gene file is missing or malformed.
        """
        names = chromosome_name_variants(chromosome.name)
        gene_ids: set[str] = set()
        for gene_file in gene_files:
            path = Path(gene_file.path)
            if _has_tabix_index(path):
                genes: Iterable[GeneInterval] = _query_gene_file(path, names, start, end)
            else:
                genes = _read_gene_file(path, set(names))
            gene_ids.update(gene.gene_id for gene in genes if gene.overlaps(start, end))
        return gene_ids


def overlapping_genes(genes: list[GeneInterval], start: int, end: int) -> list[GeneInterval]:
    """Select genes overlapping a region from a start-sorted list."""
    matches: list[GeneInterval] = []
    for gene in genes:
        if gene.start > end:
            break
        if gene.overlaps(start, end):
            matches.append(gene)
    return matches


def _read_gene_file(path: Path, chromosome_names: set[str]) -> Iterator[GeneInterval]:
    try:
        with _open_text(path) as handle:
            for line_number, line in enumerate(handle, 1):
                if not line.strip() or line.startswith(_SKIPPED_LINE_PREFIXES):
                    continue
                columns = line.rstrip("\n").split("\t")
                if columns[0] not in chromosome_names:
                    continue
                yield _parse_gene_columns(columns, f"{path}:{line_number}")
    except OSError as error:
        raise VarIndexGeneReadError(
            f"Failed to read gene file {path}: {error}. "
            "Check the reference gene file path."
        ) from error


def _parse_gene_columns(columns: list[str], location: str) -> GeneInterval:
    if len(columns) < 4:
        raise VarIndexGeneReadError(
            f"Invalid gene record at {location}: expected at least 4 columns. "
            "Provide a BED-like gene file."
        )
    try:
        start = int(columns[1]) + 1
        end = int(columns[2])
    except ValueError as error:
        raise VarIndexGeneReadError(
            f"Invalid gene coordinates at {location}: {error}."
        ) from error
    gene_id = columns[3]
    gene_name = columns[4] if len(columns) > 4 and columns[4] else gene_id
    return GeneInterval(gene_id=gene_id, gene_name=gene_name, start=start, end=end)


def _open_text(path: Path) -> TextIO:
    if path.suffix.lower() in GZIP_SUFFIXES:
        return gzip.open(path, "rt", encoding="utf-8")
    return path.open("r", encoding="utf-8")


def _has_tabix_index(path: Path) -> bool:
    if path.suffix.lower() not in GZIP_SUFFIXES:
        return False
    return Path(str(path) + TABIX_INDEX_SUFFIX).is_file()


def _query_gene_file(
    path: Path,
    chromosome_names: Iterable[str],
    start: int,
    end: int,
) -> list[GeneInterval]:
    """Fetch genes overlapping a 1-based region through the tabix index."""
    try:
        tabix = pysam.TabixFile(str(path))
    except (OSError, ValueError) as error:
        raise VarIndexGeneReadError(
            f"Failed to open tabix gene file {path}: {error}. "
            "Rebuild the index with tabix -p bed."
        ) from error
    try:
        contigs = set(tabix.contigs)
        for name in chromosome_names:
            if name not in contigs:
                continue
            rows = tabix.fetch(name, max(start - 1, 0), end)
            location = f"{path} ({name}:{start}-{end})"
            return [_parse_gene_columns(row.split("\t"), location) for row in rows]
        return []
    except OSError as error:
        raise VarIndexGeneReadError(f"Failed to query gene file {path}: {error}.") from error
    finally:
        tabix.close()
