"""Acquisition of variant files by source kind.

This module resolves a registration request into a registered
``VariantFile`` draft. Each source kind has its own strategy; local files
also run the streaming pass that builds interval metadata and the
feature index.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Mapping

from core.chromosome_map import build_chromosome_map
from core.config import VarIndexConfig
from core.constants import GZIP_SUFFIXES, INDEX_DESCRIPTOR_NAME_SUFFIX
from core.errors import (
    VarIndexDownloadError,
    VarIndexGeneReadError,
    VarIndexIndexError,
    VarIndexReadError,
    VarIndexRegistrationError,
)
from core.logging_config import get_logger
from core.types import (
    Chromosome,
    IndexDescriptor,
    Reference,
    RegistrationRequest,
    Sample,
    SourceKind,
    VariantFile,
)
from ingest.download import RemoteDownloader, remote_file_name
from ingest.header_metadata import FilterInfoExtractor
from ingest.record_service import RecordServiceClient, sample_offsets_from_call_sets
from ingest.streaming_ingest import IndexingContext, build_interval_map
from ingest.vcf_decoder import IndexBuilder, VariantDecoder, VariantHeader, VariantSource
from store.feature_index import FeatureIndexWriter
from store.file_catalog import FileCatalog

_LOGGER = get_logger(__name__)


class AcquisitionSelector:
    """Dispatches registration requests to per-source acquisition strategies."""

    def __init__(
        self,
        config: VarIndexConfig,
        catalog: FileCatalog,
        decoder: VariantDecoder,
        index_builder: IndexBuilder,
        index_writer: FeatureIndexWriter,
        extractor: FilterInfoExtractor,
        downloader: RemoteDownloader | None = None,
        record_service: RecordServiceClient | None = None,
    ) -> None:
        self._config = config
        self._catalog = catalog
        self._decoder = decoder
        self._index_builder = index_builder
        self._index_writer = index_writer
        self._extractor = extractor
        self._downloader = downloader
        self._record_service = record_service

    def acquire(self, request: RegistrationRequest, reference: Reference) -> VariantFile:
        """Acquire a variant file according to its source kind.

        Args:
            request: Registration request.
            reference: Reference genome the file is aligned to.

        Returns:
            Variant file ready to be stored in the catalog.

        Raises:
            VarIndexRegistrationError: If the source cannot be acquired.
            VarIndexOrderingError: If a local file is not sorted.
        """
        chromosome_map = build_chromosome_map(reference.chromosomes)
        if request.source_kind is SourceKind.LOCAL_FILE:
            return self._acquire_local(request, reference, chromosome_map)
        if request.source_kind is SourceKind.URL:
            return self._acquire_url(request, reference, chromosome_map)
        if request.source_kind is SourceKind.DOWNLOAD:
            return self._acquire_download(request, reference, chromosome_map)
        if request.source_kind is SourceKind.EXTERNAL_SERVICE:
            return self._acquire_external(request)
        raise VarIndexRegistrationError(f"Unsupported source kind '{request.source_kind}'.")

    def _acquire_local(
        self,
        request: RegistrationRequest,
        reference: Reference,
        chromosome_map: Mapping[str, Chromosome],
    ) -> VariantFile:
        path = Path(request.path).expanduser().resolve()
        _check_local_file(path, request)
        request = replace(
            request,
            path=str(path),
            index_path=_resolved_index_path(request.index_path),
        )
        try:
            with self._decoder.open(
                str(path),
                request.index_path,
                require_index=request.index_path is not None,
            ) as source:
                variant_file = self._draft_file(request, source.header, SourceKind.LOCAL_FILE)
                file_dir = self._catalog.make_file_dir(variant_file.id)
                if not request.index_path:
                    data_path, index_path = self._index_builder.build_index(path, file_dir)
                    variant_file = replace(
                        variant_file,
                        path=str(data_path),
                        compressed=_is_gzip_name(data_path.name),
                        index=self._index_descriptor(
                            str(index_path), variant_file.name, SourceKind.LOCAL_FILE
                        ),
                    )
                interval_map = self._stream(
                    variant_file, source, reference, chromosome_map, request
                )
                self._catalog.write_interval_metadata(variant_file, interval_map)
        except (
            VarIndexReadError,
            VarIndexIndexError,
            VarIndexGeneReadError,
            OSError,
        ) as error:
            raise VarIndexRegistrationError(
                f"Failed to register file '{request.name or path.name}': {error}"
            ) from error
        return variant_file

    def _stream(
        self,
        variant_file: VariantFile,
        source: VariantSource,
        reference: Reference,
        chromosome_map: Mapping[str, Chromosome],
        request: RegistrationRequest,
    ) -> dict[str, tuple[int, int]]:
        indexing = None
        if request.do_index:
            indexing = IndexingContext(
                writer=self._index_writer,
                filter_info=self._extractor.extract_one(source.header),
                header=source.header,
                gene_files=(reference.gene_file,) if reference.gene_file else (),
            )
        return build_interval_map(variant_file, source, chromosome_map, indexing)

    def _acquire_url(
        self,
        request: RegistrationRequest,
        reference: Reference,
        chromosome_map: Mapping[str, Chromosome],
    ) -> VariantFile:
        if not request.index_path:
            raise VarIndexRegistrationError(
                f"Failed to register URL '{request.path}': an index path is required "
                "for remote files."
            )
        try:
            with self._decoder.open(request.path, request.index_path, require_index=True) as source:
                variant_file = self._draft_file(request, source.header, SourceKind.URL)
                has_variations = _probe_chromosomes(source, chromosome_map)
        except VarIndexReadError as error:
            raise VarIndexRegistrationError(
                f"Failed to register file '{request.name or request.path}': {error}"
            ) from error
        if not has_variations:
            raise VarIndexRegistrationError(
                f"File {request.path} is corrupted or empty for reference '{reference.name}': "
                "no chromosome of the reference yielded a record."
            )
        return variant_file

    def _acquire_download(
        self,
        request: RegistrationRequest,
        reference: Reference,
        chromosome_map: Mapping[str, Chromosome],
    ) -> VariantFile:
        if self._downloader is None:
            raise VarIndexRegistrationError(
                f"Failed to register '{request.path}': no downloader is configured."
            )
        try:
            local_path = self._downloader.fetch(request.path)
            default_name = PurePosixPath(remote_file_name(request.path)).stem
        except VarIndexDownloadError as error:
            raise VarIndexRegistrationError(
                f"Failed to register file '{request.name or request.path}': {error}"
            ) from error
        local_request = replace(
            request,
            path=str(local_path),
            index_path=None,
            name=request.name or default_name,
            source_kind=SourceKind.LOCAL_FILE,
        )
        return self._acquire_local(local_request, reference, chromosome_map)

    def _acquire_external(self, request: RegistrationRequest) -> VariantFile:
        if self._record_service is None:
            raise VarIndexRegistrationError(
                f"Failed to register '{request.path}': VARINDEX_RECORD_SERVICE_URL is not set."
            )
        name = request.name or request.path
        try:
            call_sets = self._record_service.list_call_sets(request.path)
        except VarIndexReadError as error:
            raise VarIndexRegistrationError(f"Failed to register file '{name}': {error}") from error
        sample_offsets = sample_offsets_from_call_sets(call_sets)
        variant_file = VariantFile(
            id=self._catalog.next_file_id(),
            name=name,
            path=request.path,
            source_kind=SourceKind.EXTERNAL_SERVICE,
            compressed=True,
            reference_id=request.reference_id,
            created_at=datetime.now(timezone.utc),
            owner=self._config.owner,
            samples=tuple(Sample(name=key, offset=value) for key, value in sample_offsets.items()),
            index=self._index_descriptor(request.path, "", SourceKind.EXTERNAL_SERVICE),
        )
        _log_draft(variant_file)
        return variant_file

    def _draft_file(
        self,
        request: RegistrationRequest,
        header: VariantHeader,
        source_kind: SourceKind,
    ) -> VariantFile:
        file_name = PurePosixPath(request.path).name
        name = request.name or file_name
        index = None
        if request.index_path:
            index = self._index_descriptor(request.index_path, name, source_kind)
        variant_file = VariantFile(
            id=self._catalog.next_file_id(),
            name=name,
            path=request.path,
            source_kind=source_kind,
            compressed=source_kind is SourceKind.LOCAL_FILE and _is_gzip_name(file_name),
            reference_id=request.reference_id,
            created_at=datetime.now(timezone.utc),
            owner=self._config.owner,
            samples=tuple(
                Sample(name=sample_name, offset=offset)
                for sample_name, offset in header.sample_offsets().items()
            ),
            index=index,
        )
        _log_draft(variant_file)
        return variant_file

    def _index_descriptor(
        self,
        path: str,
        file_name: str,
        source_kind: SourceKind,
    ) -> IndexDescriptor:
        return IndexDescriptor(
            path=path,
            source_kind=source_kind,
            name=file_name + INDEX_DESCRIPTOR_NAME_SUFFIX if file_name else "",
            created_at=datetime.now(timezone.utc),
            owner=self._config.owner,
        )


def _check_local_file(path: Path, request: RegistrationRequest) -> None:
    """Fail unless the path is an existing non-empty file."""
    if not path.is_file():
        raise VarIndexRegistrationError(
            f"Failed to register file '{request.name or path.name}': {path} does not exist. "
            "Provide an existing VCF file."
        )
    if path.stat().st_size == 0:
        raise VarIndexRegistrationError(
            f"Failed to register file '{request.name or path.name}': {path} is empty."
        )


def _resolved_index_path(index_path: str | None) -> str | None:
    if not index_path:
        return None
    return str(Path(index_path).expanduser().resolve())


def _probe_chromosomes(source: VariantSource, chromosome_map: Mapping[str, Chromosome]) -> bool:
    """Return whether any reference chromosome yields at least one record."""
    for chromosome in chromosome_map.values():
        if next(iter(source.query(chromosome.name, 1, chromosome.size)), None) is not None:
            return True
    return False


def _is_gzip_name(file_name: str) -> bool:
    return file_name.lower().endswith(GZIP_SUFFIXES)


def _log_draft(variant_file: VariantFile) -> None:
    _LOGGER.info(
        "variant_file_acquired",
        file_id=variant_file.id,
        path=variant_file.path,
        source_kind=variant_file.source_kind.value,
        sample_count=len(variant_file.samples),
    )
