"""Single-pass streaming ingestion of sorted variant records.

This module walks a record stream once, validates that start positions never
decrease within a contig, tracks the first and last start of every known
chromosome, and hands per-chromosome batches to the feature index writer.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from core.chromosome_map import find_chromosome
from core.errors import VarIndexOrderingError
from core.logging_config import get_logger
from core.types import (
    Chromosome,
    FilterInfo,
    GeneFile,
    IndexEntry,
    IntervalMap,
    VariantFile,
    VariantRecord,
)
from ingest.vcf_decoder import VariantHeader
from store.feature_index import FeatureIndexWriter

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class IndexingContext:
    """Collaborators required when the pass also builds the feature index."""

    writer: FeatureIndexWriter
    filter_info: FilterInfo
    header: VariantHeader
    gene_files: tuple[GeneFile, ...] = ()


class StreamingIngestRunner:
    """Stateful single-pass runner over one record stream."""

    def __init__(
        self,
        variant_file: VariantFile,
        chromosome_map: Mapping[str, Chromosome],
        indexing: IndexingContext | None = None,
    ) -> None:
        self._variant_file = variant_file
        self._chromosome_map = chromosome_map
        self._indexing = indexing
        self._interval_map: IntervalMap = {}
        self._buffer: list[IndexEntry] = []
        self._current_contig: str | None = None
        self._current_chromosome: Chromosome | None = None
        self._chrom_start = 0
        self._chrom_end = 0
        self._last_record: VariantRecord | None = None
        self._record_count = 0

    def run(self, records: Iterable[VariantRecord]) -> IntervalMap:
        """Consume the stream and return the interval map of known chromosomes.

        Args:
            records: Sorted record stream, consumed exactly once.

        Returns:
            Mapping of contig name to (first start, last start).

        Raises:
            VarIndexOrderingError: If a record starts before its predecessor
                on the same contig.
            VarIndexIndexError: If a chromosome batch cannot be written.
            VarIndexGeneReadError: If gene annotations cannot be joined.
        """
        for record in records:
            if record.contig != self._current_contig:
                self._close_contig()
                self._open_contig(record)
            self._check_sorted(record)
            if self._indexing is not None and self._current_chromosome is not None:
                self._buffer.append(self._project(self._indexing, record))
            self._last_record = record
            self._chrom_end = record.start
            self._record_count += 1
        self._close_contig()
        _LOGGER.info(
            "streaming_pass_completed",
            file_id=self._variant_file.id,
            record_count=self._record_count,
            chromosome_count=len(self._interval_map),
            indexed=self._indexing is not None,
        )
        return self._interval_map

    def _open_contig(self, record: VariantRecord) -> None:
        self._current_contig = record.contig
        self._current_chromosome = find_chromosome(self._chromosome_map, record.contig)
        self._chrom_start = record.start
        self._chrom_end = record.start

    def _close_contig(self) -> None:
        """Record bounds and flush the buffer of the contig being left."""
        if self._current_contig is None or self._current_chromosome is None:
            return
        self._interval_map[self._current_contig] = (self._chrom_start, self._chrom_end)
        if self._indexing is not None:
            self._flush_chromosome(self._indexing, self._current_chromosome)

    def _check_sorted(self, record: VariantRecord) -> None:
        last = self._last_record
        if last is None or last.contig != record.contig or record.start >= last.start:
            return
        raise VarIndexOrderingError(
            f"Input file {self._variant_file.name} is not sorted by start position. "
            f"Saw a record with a start of {record.contig}:{record.start} "
            f"after a record with a start of {last.contig}:{last.start}. "
            "Sort the file by contig and position and register it again."
        )

    def _project(self, indexing: IndexingContext, record: VariantRecord) -> IndexEntry:
        return indexing.writer.project_record(
            self._variant_file,
            record,
            self._chromosome_map,
            indexing.filter_info,
            indexing.header,
        )

    def _flush_chromosome(self, indexing: IndexingContext, chromosome: Chromosome) -> None:
        processed = indexing.writer.post_process(
            self._buffer,
            indexing.gene_files,
            chromosome,
            indexing.header,
        )
        indexing.writer.flush(self._variant_file, processed)
        _LOGGER.info(
            "feature_index_chromosome_written",
            file_id=self._variant_file.id,
            chromosome=chromosome.name,
            entry_count=len(processed),
        )
        self._buffer = []


def build_interval_map(
    variant_file: VariantFile,
    records: Iterable[VariantRecord],
    chromosome_map: Mapping[str, Chromosome],
    indexing: IndexingContext | None = None,
) -> IntervalMap:
    """Run one streaming pass and return its interval map."""
    return StreamingIngestRunner(variant_file, chromosome_map, indexing).run(records)
