"""Python SDK for variant file operations.

This module exposes high-level APIs for registering, reindexing, reading,
and unregistering variant files backed by the file catalog and the
feature index.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

from core.chromosome_map import build_chromosome_map
from core.config import VarIndexConfig
from core.errors import (
    VarIndexGeneReadError,
    VarIndexIndexError,
    VarIndexNotFoundError,
    VarIndexReadError,
    VarIndexRegistrationError,
)
from core.logging_config import get_logger
from core.types import (
    Chromosome,
    Direction,
    FilterInfo,
    Reference,
    RegistrationRequest,
    SourceKind,
    Track,
    VariantFile,
    Variation,
    VariationQuery,
)
from ingest.acquisition import AcquisitionSelector
from ingest.download import RemoteDownloader
from ingest.header_metadata import FilterInfoExtractor
from ingest.record_service import RecordServiceClient
from ingest.streaming_ingest import IndexingContext, build_interval_map
from ingest.vcf_decoder import IndexBuilder, PysamDecoder, PysamIndexBuilder, VariantDecoder
from serve.nearest_variation import NearestVariationLocator
from serve.record_service_reader import RecordServiceVariationReader
from serve.sample_offsets import resolve_sample_offset
from serve.variation_reader import FileVariationReader, VariationReaders
from store.feature_index import FeatureIndexWriter
from store.file_catalog import FileCatalog
from store.gene_annotations import GeneAnnotationReader
from store.reference_catalog import ReferenceCatalog

_LOGGER = get_logger(__name__)


class VarIndexClient:
    """Primary SDK entry point for variant file workflows."""

    def __init__(
        self,
        config: VarIndexConfig | None = None,
        decoder: VariantDecoder | None = None,
        index_builder: IndexBuilder | None = None,
        downloader: RemoteDownloader | None = None,
        record_service: RecordServiceClient | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            decoder: Optional VCF decoder, pysam by default.
            index_builder: Optional tabix index builder, pysam by default.
            downloader: Optional downloader for the DOWNLOAD source kind.
            record_service: Optional record-service client; built from
                ``record_service_url`` when omitted.
        """
        self._config = config or VarIndexConfig.from_env()
        self._decoder = decoder or PysamDecoder()
        self._catalog = FileCatalog(self._config)
        self._references = ReferenceCatalog(self._config)
        self._gene_reader = GeneAnnotationReader()
        self._index_writer = FeatureIndexWriter(self._catalog, self._gene_reader)
        self._extractor = FilterInfoExtractor(self._config.info_whitelist)
        if record_service is None and self._config.record_service_url:
            record_service = RecordServiceClient(self._config.record_service_url)
        self._acquisition = AcquisitionSelector(
            config=self._config,
            catalog=self._catalog,
            decoder=self._decoder,
            index_builder=index_builder or PysamIndexBuilder(),
            index_writer=self._index_writer,
            extractor=self._extractor,
            downloader=downloader or RemoteDownloader(self._config),
            record_service=record_service,
        )
        service_reader = RecordServiceVariationReader(record_service) if record_service else None
        self._readers = VariationReaders(FileVariationReader(self._decoder), service_reader)
        self._locator = NearestVariationLocator(self._catalog, self._readers)

    @property
    def config(self) -> VarIndexConfig:
        return self._config

    def register_reference(self, reference: Reference) -> None:
        """Register a reference genome that variant files can align to."""
        self._references.register_reference(reference)

    def register(self, request: RegistrationRequest) -> VariantFile:
        """Register a variant file and build its interval metadata and index.

        Args:
            request: Registration request.

        Returns:
            Registered variant file.

        Raises:
            VarIndexRegistrationError: If the request is invalid or the source
                cannot be acquired.
            VarIndexOrderingError: If a local file is not sorted by position.
        """
        if not request.path:
            raise VarIndexRegistrationError(
                "Registration request has no path. Provide a file path or URL."
            )
        try:
            reference = self._references.load_reference(request.reference_id)
        except VarIndexNotFoundError as error:
            raise VarIndexRegistrationError(
                f"Failed to register '{request.path}': {error}"
            ) from error
        variant_file = self._acquisition.acquire(request, reference)
        self._catalog.save(variant_file)
        _LOGGER.info(
            "variant_file_registered",
            file_id=variant_file.id,
            name=variant_file.name,
            source_kind=variant_file.source_kind.value,
            reference_id=variant_file.reference_id,
        )
        return variant_file

    def reindex(self, file_id: int) -> VariantFile:
        """Rebuild the feature index and interval metadata of a file.

        Args:
            file_id: Registered file identifier.

        Returns:
            Reindexed variant file.

        Raises:
            VarIndexNotFoundError: If the file is not registered.
            VarIndexIndexError: If the index cannot be rebuilt.
            VarIndexOrderingError: If the file is not sorted by position.
        """
        variant_file = self._require_file(file_id)
        if variant_file.source_kind is SourceKind.EXTERNAL_SERVICE:
            raise VarIndexIndexError(
                f"File {file_id} is served by the record service and has no local index "
                "to rebuild.",
                file_id=file_id,
            )
        reference = self._references.load_reference(variant_file.reference_id)
        chromosome_map = build_chromosome_map(reference.chromosomes)
        gene_files = (reference.gene_file,) if reference.gene_file else ()
        try:
            self._index_writer.delete_index(variant_file)
            index_path = variant_file.index.path if variant_file.index else None
            with self._decoder.open(variant_file.path, index_path) as source:
                indexing = IndexingContext(
                    writer=self._index_writer,
                    filter_info=self._extractor.extract_one(source.header),
                    header=source.header,
                    gene_files=gene_files,
                )
                interval_map = build_interval_map(variant_file, source, chromosome_map, indexing)
            self._catalog.write_interval_metadata(variant_file, interval_map)
        except (OSError, VarIndexGeneReadError, VarIndexReadError) as error:
            raise VarIndexIndexError(
                f"Failed to reindex file {file_id} ({variant_file.name}): {error}",
                file_id=file_id,
            ) from error
        self._catalog.save(variant_file)
        _LOGGER.info("variant_file_reindexed", file_id=file_id, chromosome_count=len(interval_map))
        return variant_file

    def unregister(self, file_id: int) -> VariantFile:
        """Remove a file from the catalog and delete its local directory.

        Raises:
            VarIndexNotFoundError: If the file is not registered.
            OSError: If the file directory cannot be removed.
        """
        variant_file = self._require_file(file_id)
        self._catalog.delete(file_id)
        if variant_file.source_kind is not SourceKind.EXTERNAL_SERVICE:
            self._catalog.delete_file_dir(variant_file)
        _LOGGER.info("variant_file_unregistered", file_id=file_id)
        return variant_file

    def get_filters_info(self, file_ids: list[int]) -> FilterInfo:
        """Merge filterable INFO fields and FILTER labels of several files.

        Raises:
            VarIndexNotFoundError: If any file is not registered.
            VarIndexReadError: If a header cannot be read.
        """
        headers = []
        for file_id in file_ids:
            variant_file = self._require_file(file_id)
            if variant_file.source_kind is SourceKind.EXTERNAL_SERVICE:
                continue
            index_path = variant_file.index.path if variant_file.index else None
            with self._decoder.open(variant_file.path, index_path) as source:
                headers.append(source.header)
        return self._extractor.extract(headers)

    def load_variations(
        self,
        track: Track,
        sample_id: str | None = None,
        load_info: bool = False,
        collapse: bool = True,
    ) -> Track:
        """Load variations of a registered file inside the track window.

        Args:
            track: Window to load; ``track.id`` is the file identifier.
            sample_id: Sample whose genotype is projected, first sample by default.
            load_info: Whether to attach INFO values.
            collapse: Whether to thin variations on zoomed-out tracks.

        Returns:
            Track with its blocks filled.

        Raises:
            VarIndexReadError: If the track is invalid or the file cannot be read.
            VarIndexNotFoundError: If the file, its index, or the sample is unknown.
        """
        chromosome = _validated_chromosome(track)
        if track.id is None:
            raise VarIndexReadError("Track has no file id. Set track.id to a registered file.")
        variant_file = self._require_file(track.id)
        if variant_file.index is None:
            raise VarIndexNotFoundError(
                f"Variant file {track.id} has no positional index. Reindex the file first."
            )
        sample_offset = resolve_sample_offset(sample_id, variant_file)
        reader = self._readers.for_file(variant_file)
        return reader.read_variations(
            variant_file, track, chromosome, sample_offset, load_info, collapse
        )

    def load_url_variations(
        self,
        track: Track,
        file_url: str,
        index_url: str,
        sample_offset: int | None = None,
        load_info: bool = False,
        collapse: bool = True,
    ) -> Track:
        """Load variations of an unregistered remote file.

        Raises:
            VarIndexReadError: If the track is invalid or the file cannot be read.
        """
        chromosome = _validated_chromosome(track)
        return self._readers.file_reader.read_path_variations(
            file_url, index_url, track, chromosome, sample_offset, load_info, collapse
        )

    def load_variation(self, query: VariationQuery) -> Variation:
        """Load the variation at one position, with overlapping gene ids.

        Raises:
            VarIndexNotFoundError: If no variation starts at the position.
            VarIndexGeneReadError: If gene annotations cannot be read.
        """
        chromosome = self._references.load_chromosome(query.chromosome_id)
        track = Track(
            chromosome=chromosome,
            start_index=query.position,
            end_index=query.position,
            id=query.file_id,
        )
        loaded = self.load_variations(track, query.sample_id, load_info=True, collapse=False)
        if not loaded.blocks:
            raise VarIndexNotFoundError(
                f"No variation found in file {query.file_id} at {chromosome.name}:{query.position}."
            )
        variation = next(
            (item for item in loaded.blocks if item.start_index == query.position),
            loaded.blocks[0],
        )
        return self._with_gene_ids(variation, chromosome)

    def load_url_variation(
        self,
        query: VariationQuery,
        file_url: str,
        index_url: str,
        sample_offset: int | None = None,
    ) -> Variation:
        """Load the variation at one position of an unregistered remote file.

        Args:
            query: Position to load; ``query.file_id`` is ignored.
            file_url: VCF URL or path.
            index_url: Tabix index URL or path.
            sample_offset: Genotype column to project, if any.

        Returns:
            Variation with INFO values and overlapping gene ids.

        Raises:
            VarIndexNotFoundError: If the chromosome is unknown or no variation
                starts at the position.
            VarIndexReadError: If the file cannot be read.
            VarIndexGeneReadError: If gene annotations cannot be read.
        """
        chromosome = self._references.load_chromosome(query.chromosome_id)
        track = Track(
            chromosome=chromosome,
            start_index=query.position,
            end_index=query.position,
        )
        loaded = self._readers.file_reader.read_path_variations(
            file_url, index_url, track, chromosome, sample_offset, load_info=True, collapse=False
        )
        if not loaded.blocks:
            raise VarIndexNotFoundError(
                f"No variation found in {file_url} at {chromosome.name}:{query.position}."
            )
        variation = next(
            (item for item in loaded.blocks if item.start_index == query.position),
            loaded.blocks[0],
        )
        return self._with_gene_ids(variation, chromosome)

    def nearest_variation(
        self,
        position: int,
        file_id: int,
        chromosome_id: int,
        sample_id: str | None = None,
        direction: Direction = Direction.FORWARD,
    ) -> Variation | None:
        """Return the next or previous variation around a position.

        Raises:
            VarIndexNotFoundError: If the chromosome, file, index, or sample is unknown.
            VarIndexReadError: If the file cannot be searched.
        """
        chromosome = self._references.load_chromosome(chromosome_id)
        return self._locator.locate(position, file_id, chromosome, direction, sample_id)

    def load_file(self, file_id: int) -> VariantFile:
        """Load registered file metadata.

        Raises:
            VarIndexNotFoundError: If the file is not registered.
        """
        return self._require_file(file_id)

    def with_data_root(self, data_root: str) -> "VarIndexClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        updated_config = replace(self._config, data_root=resolved_root)
        return VarIndexClient(updated_config, decoder=self._decoder)

    def _with_gene_ids(self, variation: Variation, chromosome: Chromosome) -> Variation:
        reference = self._references.load_reference(chromosome.reference_id)
        if reference.gene_file is None:
            return variation
        gene_ids = self._gene_reader.fetch_gene_ids(
            variation.start_index, variation.end_index, [reference.gene_file], chromosome
        )
        return replace(variation, gene_names=frozenset(gene_ids))

    def _require_file(self, file_id: int) -> VariantFile:
        variant_file = self._catalog.load(file_id)
        if variant_file is None:
            raise VarIndexNotFoundError(f"Variant file {file_id} is not registered.")
        return variant_file


def _validated_chromosome(track: Track) -> Chromosome:
    if track.chromosome is None:
        raise VarIndexReadError("Track has no chromosome. Set track.chromosome before loading.")
    if track.start_index > track.end_index:
        raise VarIndexReadError(
            f"Invalid track window {track.start_index}-{track.end_index}: start is after end."
        )
    return track.chromosome
