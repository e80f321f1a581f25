"""Feature index persistence for variant files.

This module projects variant records into index entries, joins gene
annotations per chromosome, and appends entries to an Apache Lance
dataset with a JSONL mirror for lightweight reads.
"""

from __future__ import annotations

import json
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

import lance
import pyarrow as pa

from core.chromosome_map import find_chromosome
from core.constants import INDEX_DIR_NAME, INDEX_ENTRIES_FILE_NAME, LANCE_DIR_NAME
from core.errors import VarIndexIndexError
from core.logging_config import get_logger
from core.types import (
    Chromosome,
    FilterInfo,
    GeneFile,
    IndexEntry,
    VariantFile,
    VariantRecord,
)
from core.variation_types import classify_variation_type
from ingest.vcf_decoder import VariantHeader
from store.file_catalog import FileCatalog
from store.gene_annotations import GeneAnnotationReader, overlapping_genes
from store.record_payload import (
    append_index_entries_jsonl,
    index_entry_to_payload,
    read_index_entries_jsonl,
)

_LOGGER = get_logger(__name__)

_PASS_FILTER = "PASS"

_INDEX_SCHEMA = pa.schema(
    [
        pa.field("file_id", pa.int64()),
        pa.field("chromosome", pa.string()),
        pa.field("start_index", pa.int64()),
        pa.field("end_index", pa.int64()),
        pa.field("feature_id", pa.string()),
        pa.field("variation_type", pa.string()),
        pa.field("reference", pa.string()),
        pa.field("alternatives", pa.list_(pa.string())),
        pa.field("quality", pa.float64()),
        pa.field("failed_filter", pa.bool_()),
        pa.field("filters", pa.list_(pa.string())),
        pa.field("info", pa.string()),
        pa.field("gene_ids", pa.list_(pa.string())),
        pa.field("gene_names", pa.list_(pa.string())),
    ]
)


class FeatureIndexWriter:
    """Writes chromosome-partitioned index entries for variant files."""

    def __init__(
        self,
        catalog: FileCatalog,
        gene_reader: GeneAnnotationReader | None = None,
    ) -> None:
        self._catalog = catalog
        self._gene_reader = gene_reader or GeneAnnotationReader()

    def project_record(
        self,
        variant_file: VariantFile,
        record: VariantRecord,
        chromosome_map: Mapping[str, Chromosome],
        filter_info: FilterInfo,
        header: VariantHeader,
    ) -> IndexEntry:
        """Project one record into an index entry.

        Args:
            variant_file: File being indexed.
            record: Decoded record.
            chromosome_map: Reference chromosomes by name.
            filter_info: Filterable INFO fields; only these are indexed.
            header: Header of the file being indexed.

        Returns:
            Index entry tagged with the reference chromosome name.
        """
        chromosome = find_chromosome(chromosome_map, record.contig)
        info_names = filter_info.info_names()
        return IndexEntry(
            file_id=variant_file.id,
            chromosome=chromosome.name if chromosome else record.contig,
            start_index=record.start,
            end_index=record.end,
            feature_id=record.feature_id,
            variation_type=classify_variation_type(record.reference, record.alternatives),
            reference=record.reference,
            alternatives=record.alternatives,
            quality=record.quality,
            failed_filter=_is_failed_filter(record.filters),
            filters=record.filters,
            info={
                name: _render_info_value(value)
                for name, value in record.info.items()
                if name in info_names
            },
        )

    def post_process(
        self,
        entries: list[IndexEntry],
        gene_files: Iterable[GeneFile],
        chromosome: Chromosome,
        header: VariantHeader,
    ) -> list[IndexEntry]:
        """Attach overlapping genes to the entries of one chromosome.

        Raises:
            VarIndexGeneReadError: If gene annotations cannot be read.
        """
        gene_file_list = list(gene_files)
        if not gene_file_list or not entries:
            return list(entries)
        genes = self._gene_reader.load_genes(gene_file_list, chromosome)
        processed: list[IndexEntry] = []
        for entry in entries:
            matches = overlapping_genes(genes, entry.start_index, entry.end_index)
            processed.append(
                _with_genes(
                    entry,
                    tuple(gene.gene_id for gene in matches),
                    tuple(gene.gene_name for gene in matches),
                )
            )
        return processed

    def flush(self, variant_file: VariantFile, entries: list[IndexEntry]) -> None:
        """Append entries to the file's feature index.

        Raises:
            VarIndexIndexError: If the index cannot be written.
        """
        if not entries:
            return
        index_dir = self.index_dir(variant_file)
        try:
            index_dir.mkdir(parents=True, exist_ok=True)
            append_index_entries_jsonl(index_dir / INDEX_ENTRIES_FILE_NAME, entries)
        except OSError as error:
            raise VarIndexIndexError(
                f"Failed to write feature index for file {variant_file.id} at {index_dir}: "
                f"{error}. Check write permissions and available disk space.",
                file_id=variant_file.id,
            ) from error
        _append_lance_entries(variant_file, index_dir / LANCE_DIR_NAME, entries)

    def delete_index(self, variant_file: VariantFile) -> None:
        """Remove all feature index state of a file.

        Raises:
            VarIndexIndexError: If the index directory cannot be removed.
        """
        index_dir = self.index_dir(variant_file)
        if not index_dir.exists():
            return
        try:
            shutil.rmtree(index_dir)
        except OSError as error:
            raise VarIndexIndexError(
                f"Failed to delete feature index for file {variant_file.id} at {index_dir}: "
                f"{error}.",
                file_id=variant_file.id,
            ) from error
        _LOGGER.info("feature_index_deleted", file_id=variant_file.id, path=str(index_dir))

    def read_entries(self, variant_file: VariantFile) -> list[IndexEntry]:
        """Load index entries of a file in write order.

        Raises:
            VarIndexIndexError: If the index is missing or invalid.
        """
        entries_path = self.index_dir(variant_file) / INDEX_ENTRIES_FILE_NAME
        if not entries_path.exists():
            raise VarIndexIndexError(
                f"Feature index not found for file {variant_file.id} at {entries_path}. "
                "Reindex the file to rebuild it.",
                file_id=variant_file.id,
            )
        try:
            return read_index_entries_jsonl(entries_path)
        except (OSError, ValueError) as error:
            raise VarIndexIndexError(
                f"Failed to load feature index at {entries_path}: {error}. "
                "Reindex the file to rebuild it.",
                file_id=variant_file.id,
            ) from error

    def index_dir(self, variant_file: VariantFile) -> Path:
        """Return the directory holding the file's feature index."""
        return self._catalog.file_dir(variant_file.id) / INDEX_DIR_NAME


def _append_lance_entries(
    variant_file: VariantFile,
    lance_path: Path,
    entries: list[IndexEntry],
) -> None:
    """Append one chromosome batch to the Lance dataset."""
    table = pa.Table.from_pylist([_lance_row(entry) for entry in entries], schema=_INDEX_SCHEMA)
    mode = "append" if lance_path.exists() else "create"
    try:
        lance.write_dataset(table, str(lance_path), mode=mode)
    except Exception as error:
        raise VarIndexIndexError(
            f"Failed to write Lance dataset at {lance_path}: {error}. "
            "Validate lance/pyarrow compatibility and reindex the file.",
            file_id=variant_file.id,
        ) from error


def _lance_row(entry: IndexEntry) -> dict[str, Any]:
    row = dict(index_entry_to_payload(entry))
    row["info"] = json.dumps(row["info"], sort_keys=True)
    return row


def _with_genes(
    entry: IndexEntry,
    gene_ids: tuple[str, ...],
    gene_names: tuple[str, ...],
) -> IndexEntry:
    if not gene_ids:
        return entry
    return replace(entry, gene_ids=gene_ids, gene_names=gene_names)


def _is_failed_filter(filters: tuple[str, ...]) -> bool:
    return any(label != _PASS_FILTER for label in filters)


def _render_info_value(value: Any) -> str:
    if isinstance(value, (tuple, list)):
        return ",".join("." if item is None else str(item) for item in value)
    if value is None:
        return "."
    return str(value)
