"""Positional variation readers.

This module loads variations for a chromosome window from indexed VCF
files and searches for the nearest variation around a position. Readers
are selected by the acquisition kind of the registered file.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import replace
from typing import Protocol

from core.constants import DEFAULT_BACKWARD_SEARCH_WINDOW
from core.errors import VarIndexReadError
from core.logging_config import get_logger
from core.types import Chromosome, SourceKind, Track, VariantFile, VariantRecord, Variation
from core.variation_types import classify_variation_type
from ingest.vcf_decoder import VariantDecoder

_LOGGER = get_logger(__name__)

_PASS_FILTER = "PASS"


class VariationReader(Protocol):
    """Read-side collaborator for one family of variant sources."""

    def read_variations(
        self,
        variant_file: VariantFile,
        track: Track,
        chromosome: Chromosome,
        sample_offset: int | None,
        load_info: bool,
        collapse: bool,
    ) -> Track:
        """Return the track filled with variations of its window."""

    def next_or_previous_variation(
        self,
        from_position: int,
        variant_file: VariantFile,
        sample_offset: int | None,
        chromosome: Chromosome,
        forward: bool,
    ) -> Variation | None:
        """Return the nearest variation strictly beyond ``from_position``."""


class FileVariationReader:
    """Reads variations from tabix-indexed local or remote VCF files."""

    def __init__(self, decoder: VariantDecoder) -> None:
        self._decoder = decoder

    def read_variations(
        self,
        variant_file: VariantFile,
        track: Track,
        chromosome: Chromosome,
        sample_offset: int | None,
        load_info: bool,
        collapse: bool,
    ) -> Track:
        """Load a track window from a registered file.

        Args:
            variant_file: Registered file with its index descriptor.
            track: Window to load.
            chromosome: Chromosome of the window.
            sample_offset: Genotype column to project, if any.
            load_info: Whether to attach INFO values.
            collapse: Whether to thin variations on zoomed-out tracks.

        Returns:
            Track with its blocks filled.

        Raises:
            VarIndexReadError: If the file cannot be opened or queried.
        """
        index_path = variant_file.index.path if variant_file.index else None
        return self.read_path_variations(
            variant_file.path, index_path, track, chromosome, sample_offset, load_info, collapse
        )

    def read_path_variations(
        self,
        path: str,
        index_path: str | None,
        track: Track,
        chromosome: Chromosome,
        sample_offset: int | None,
        load_info: bool,
        collapse: bool,
    ) -> Track:
        """Load a track window directly from a file path or URL.

        Args:
            path: VCF path or URL.
            index_path: Tabix index path or URL.
            track: Window to load.
            chromosome: Chromosome of the window.
            sample_offset: Genotype column to project, if any.
            load_info: Whether to attach INFO values.
            collapse: Whether to thin variations on zoomed-out tracks.

        Returns:
            Track with its blocks filled.

        Raises:
            VarIndexReadError: If the file cannot be opened or queried.
        """
        with self._decoder.open(path, index_path, require_index=True) as source:
            records = list(source.query(chromosome.name, track.start_index, track.end_index))
        variations = [
            variation_from_record(record, sample_offset, load_info) for record in records
        ]
        if collapse:
            variations = collapse_variations(variations, track.scale_factor)
        _LOGGER.debug(
            "variations_loaded",
            path=path,
            chromosome=chromosome.name,
            start=track.start_index,
            end=track.end_index,
            count=len(variations),
        )
        return replace(track, chromosome=chromosome, blocks=tuple(variations))

    def next_or_previous_variation(
        self,
        from_position: int,
        variant_file: VariantFile,
        sample_offset: int | None,
        chromosome: Chromosome,
        forward: bool,
    ) -> Variation | None:
        """Return the nearest variation strictly before or after a position.

        Backward searches scan windows of doubling size below the position.

        Args:
            from_position: 1-based position to search from.
            variant_file: Registered file with its index descriptor.
            sample_offset: Genotype column to project, if any.
            chromosome: Chromosome to search.
            forward: Search towards the chromosome end when true.

        Returns:
            Nearest variation, or ``None`` when the chromosome has none beyond
            the position.

        Raises:
            VarIndexReadError: If the file cannot be opened or queried.
        """
        index_path = variant_file.index.path if variant_file.index else None
        with self._decoder.open(variant_file.path, index_path, require_index=True) as source:
            if forward:
                candidates = source.query(chromosome.name, from_position + 1, chromosome.size)
                record = next((item for item in candidates if item.start > from_position), None)
            else:
                record = _search_backward(source.query, chromosome.name, from_position)
        if record is None:
            return None
        return variation_from_record(record, sample_offset, load_info=False)


def _search_backward(
    query: Callable[[str, int, int], Iterator[VariantRecord]],
    contig: str,
    from_position: int,
) -> VariantRecord | None:
    """Scan windows of doubling size below ``from_position``."""
    window = DEFAULT_BACKWARD_SEARCH_WINDOW
    end = from_position - 1
    while True:
        start = max(1, from_position - window)
        previous = [record for record in query(contig, start, end) if record.start < from_position]
        if previous:
            return max(previous, key=lambda record: record.start)
        if start == 1:
            return None
        window *= 2


class VariationReaders:
    """Selects the reader matching a file's acquisition kind."""

    def __init__(
        self,
        file_reader: FileVariationReader,
        service_reader: VariationReader | None = None,
    ) -> None:
        self._file_reader = file_reader
        self._service_reader = service_reader

    @property
    def file_reader(self) -> FileVariationReader:
        return self._file_reader

    def for_file(self, variant_file: VariantFile) -> VariationReader:
        """Return the reader for a registered file.

        Raises:
            VarIndexReadError: If no reader serves the file's source kind.
        """
        if variant_file.source_kind is SourceKind.EXTERNAL_SERVICE:
            if self._service_reader is None:
                raise VarIndexReadError(
                    f"File {variant_file.id} is served by the record service but "
                    "VARINDEX_RECORD_SERVICE_URL is not set."
                )
            return self._service_reader
        return self._file_reader


def variation_from_record(
    record: VariantRecord,
    sample_offset: int | None,
    load_info: bool,
) -> Variation:
    """Project a decoded record into a read-side variation."""
    genotype = None
    if sample_offset is not None and sample_offset < len(record.genotypes):
        genotype = record.genotypes[sample_offset]
    return Variation(
        start_index=record.start,
        end_index=record.end,
        reference=record.reference,
        alternatives=record.alternatives,
        variation_type=classify_variation_type(record.reference, record.alternatives),
        identifier=record.feature_id,
        quality=record.quality,
        failed_filter=any(label != _PASS_FILTER for label in record.filters),
        genotype=genotype,
        info=dict(record.info) if load_info else None,
    )


def collapse_variations(variations: Iterable[Variation], scale_factor: float) -> list[Variation]:
    """Keep one variation per bucket of ``ceil(1 / scale_factor)`` base pairs.

    Tracks at scale factor 1 or above are returned unchanged.
    """
    variation_list = list(variations)
    if scale_factor >= 1 or scale_factor <= 0:
        return variation_list
    bucket_size = math.ceil(1 / scale_factor)
    collapsed: list[Variation] = []
    last_bucket: int | None = None
    for variation in variation_list:
        bucket = variation.start_index // bucket_size
        if bucket != last_bucket:
            collapsed.append(variation)
            last_bucket = bucket
    return collapsed

