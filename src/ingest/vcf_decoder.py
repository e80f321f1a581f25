"""VCF decoding adapter.

This module wraps pysam behind small typed views so the ingest engine and
readers never touch decoder objects directly. Records are exposed with
1-based coordinates.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, ContextManager, Protocol

import pysam

from core.chromosome_map import chromosome_name_variants
from core.constants import BCF_SUFFIX, GZIP_SUFFIXES, TABIX_INDEX_SUFFIX
from core.errors import VarIndexReadError
from core.logging_config import get_logger
from core.types import Genotype, InfoItem, VariantRecord

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class VariantHeader:
    """Decoded header of a variant file.

    Attributes:
        sample_names: Sample column names in file order.
        info_items: INFO field descriptors.
        filter_ids: FILTER labels declared in the header.
        contigs: Contig names declared in the header.
    """

    sample_names: tuple[str, ...] = ()
    info_items: tuple[InfoItem, ...] = ()
    filter_ids: tuple[str, ...] = ()
    contigs: tuple[str, ...] = ()

    def sample_offsets(self) -> dict[str, int]:
        """Return sample name to column offset mapping in file order."""
        return {name: offset for offset, name in enumerate(self.sample_names)}

    def info_descriptors(self) -> tuple[InfoItem, ...]:
        """Return declared INFO field descriptors."""
        return self.info_items

    def filter_labels(self) -> tuple[str, ...]:
        """Return declared FILTER labels."""
        return self.filter_ids


class VariantSource(Protocol):
    """Opened variant stream with its header."""

    header: VariantHeader

    def __iter__(self) -> Iterator[VariantRecord]:
        """Iterate all records once, in file order."""

    def query(self, contig: str, start: int, end: int) -> Iterator[VariantRecord]:
        """Iterate records overlapping a 1-based inclusive region."""


class VariantDecoder(Protocol):
    """Opens variant sources from paths or URLs."""

    def open(
        self,
        path: str,
        index_path: str | None = None,
        require_index: bool = False,
    ) -> ContextManager[VariantSource]:
        """Open a source; the stream is closed when the context exits."""


class IndexBuilder(Protocol):
    """Builds positional indexes for local files."""

    def build_index(self, path: Path, target_dir: Path) -> tuple[Path, Path]:
        """Return ``(data_path, index_path)`` of the indexed file."""


class PysamVariantSource:
    """Variant source backed by ``pysam.VariantFile``."""

    def __init__(self, handle: Any, path: str) -> None:
        self._handle = handle
        self._path = path
        self.header = _header_from_pysam(handle.header)

    def __iter__(self) -> Iterator[VariantRecord]:
        """Iterate all records in file order.

        Raises:
            VarIndexReadError: If a record cannot be decoded.
        """
        try:
            for record in self._handle:
                yield record_from_pysam(record)
        except (OSError, ValueError) as error:
            raise VarIndexReadError(
                f"Failed to read variant records from {self._path}: {error}. "
                "Check that the file is a valid, uncorrupted VCF."
            ) from error

    def query(self, contig: str, start: int, end: int) -> Iterator[VariantRecord]:
        """Iterate records in ``[start, end]``, trying both contig spellings."""
        for candidate in chromosome_name_variants(contig):
            try:
                rows = self._handle.fetch(candidate, max(start - 1, 0), end)
            except ValueError:
                continue
            return self._convert_rows(rows, contig)
        return iter(())

    def close(self) -> None:
        """Close the underlying pysam handle."""
        self._handle.close()

    def _convert_rows(self, rows: Any, contig: str) -> Iterator[VariantRecord]:
        try:
            for record in rows:
                yield record_from_pysam(record)
        except (OSError, ValueError) as error:
            raise VarIndexReadError(
                f"Failed to query {contig} in {self._path}: {error}. "
                "Check the file and its index."
            ) from error


class PysamDecoder:
    """Decoder collaborator implemented with pysam."""

    @contextmanager
    def open(
        self,
        path: str,
        index_path: str | None = None,
        require_index: bool = False,
    ) -> Iterator[PysamVariantSource]:
        """Open a VCF/BCF file or URL.

        Args:
            path: Local path or remote URL.
            index_path: Optional tabix/CSI index path.
            require_index: Fail when no index can be loaded.

        Yields:
            Opened variant source, closed on exit.

        Raises:
            VarIndexReadError: If the file or its index cannot be opened.
        """
        try:
            handle = pysam.VariantFile(path, index_filename=index_path)
        except (OSError, ValueError) as error:
            raise VarIndexReadError(
                f"Failed to open variant file {path}: {error}. "
                "Provide a readable VCF/BCF file."
            ) from error
        source = PysamVariantSource(handle, path)
        try:
            if require_index and handle.index is None:
                raise VarIndexReadError(
                    f"Variant file {path} has no usable index. "
                    "Provide a tabix or CSI index path."
                )
            yield source
        finally:
            source.close()


class PysamIndexBuilder:
    """Builds tabix indexes with pysam."""

    def build_index(self, path: Path, target_dir: Path) -> tuple[Path, Path]:
        """Build a tabix index for a local VCF.

        Plain-text files are bgzip-compressed into ``target_dir`` first and
        the compressed copy becomes the indexed data file. BCF files
        are rejected; register them with their CSI index instead.

        Args:
            path: Local VCF path.
            target_dir: Directory that receives the index.

        Returns:
            Pair of indexed data path and index path.

        Raises:
            VarIndexReadError: If compression or indexing fails, or the file
                is a BCF.
        """
        if path.suffix.lower() == BCF_SUFFIX:
            raise VarIndexReadError(
                f"Cannot build a tabix index for BCF file {path}. "
                "Index it with bcftools index and pass the .csi path as the index path."
            )
        target_dir.mkdir(parents=True, exist_ok=True)
        try:
            if path.suffix.lower() in GZIP_SUFFIXES:
                index_path = target_dir / (path.name + TABIX_INDEX_SUFFIX)
                pysam.tabix_index(str(path), preset="vcf", force=True, index=str(index_path))
                data_path = path
            else:
                data_path = target_dir / (path.name + ".gz")
                pysam.tabix_compress(str(path), str(data_path), force=True)
                pysam.tabix_index(str(data_path), preset="vcf", force=True)
                index_path = Path(str(data_path) + TABIX_INDEX_SUFFIX)
        except (OSError, ValueError) as error:
            raise VarIndexReadError(
                f"Failed to build tabix index for {path}: {error}. "
                "Sort the file by position and compress it with bgzip."
            ) from error
        _LOGGER.info("tabix_index_built", path=str(data_path), index_path=str(index_path))
        return data_path, index_path


def record_from_pysam(record: Any) -> VariantRecord:
    """Convert a ``pysam.VariantRecord`` into a typed record."""
    return VariantRecord(
        contig=record.contig,
        start=record.pos,
        end=record.stop,
        feature_id=record.id,
        reference=record.ref or "N",
        alternatives=tuple(record.alts or ()),
        quality=record.qual,
        filters=tuple(record.filter.keys()),
        info=dict(record.info.items()),
        genotypes=tuple(_genotype_from_sample(sample) for sample in record.samples.values()),
    )


def _genotype_from_sample(sample: Any) -> Genotype:
    if "GT" not in sample:
        return Genotype(allele_indices=())
    allele_indices = sample["GT"] or ()
    return Genotype(allele_indices=tuple(allele_indices), phased=bool(sample.phased))


def _header_from_pysam(header: Any) -> VariantHeader:
    info_items = tuple(
        InfoItem(
            name=str(meta.name),
            type=str(meta.type),
            number=str(meta.number),
            description=str(meta.description or ""),
        )
        for meta in header.info.values()
    )
    return VariantHeader(
        sample_names=tuple(header.samples),
        info_items=info_items,
        filter_ids=tuple(header.filters.keys()),
        contigs=tuple(header.contigs.keys()),
    )
