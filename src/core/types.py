"""Shared typed models.

This module defines immutable data models used by ingest, store,
and serving layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

IntervalMap = dict[str, tuple[int, int]]


class SourceKind(str, Enum):
    """Acquisition strategy of a registered variant file."""

    LOCAL_FILE = "LOCAL_FILE"
    URL = "URL"
    DOWNLOAD = "DOWNLOAD"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE"


class Direction(str, Enum):
    """Search direction for nearest-variation lookups."""

    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class Sample:
    """Named sample column of a variant file.

    Attributes:
        name: Sample identifier, unique within a file.
        offset: Column position of the sample in decoded records.
    """

    name: str
    offset: int


@dataclass(frozen=True)
class Chromosome:
    """Reference chromosome.

    Attributes:
        id: Chromosome identifier.
        name: Chromosome name, e.g. ``chr1``.
        size: Chromosome length in base pairs.
        reference_id: Owning reference genome identifier.
    """

    id: int
    name: str
    size: int
    reference_id: int


@dataclass(frozen=True)
class GeneFile:
    """Gene annotation file attached to a reference genome."""

    id: int
    path: str


@dataclass(frozen=True)
class Reference:
    """Reference genome with its chromosome set.

    Attributes:
        id: Reference identifier.
        name: Display name.
        chromosomes: Chromosomes of the reference.
        gene_file: Optional gene annotation file.
    """

    id: int
    name: str
    chromosomes: tuple[Chromosome, ...]
    gene_file: GeneFile | None = None


@dataclass(frozen=True)
class IndexDescriptor:
    """Positional index attached to a variant file.

    Attributes:
        path: Index file path or record-service path.
        source_kind: Acquisition kind of the index resource.
        name: Display name of the index.
        created_at: UTC creation timestamp.
        owner: User that registered the index.
    """

    path: str
    source_kind: SourceKind
    name: str
    created_at: datetime
    owner: str


@dataclass(frozen=True)
class VariantFile:
    """Registered variant file.

    Attributes:
        id: Unique file identifier.
        name: Display name.
        path: Storage path, URL, or record-service path.
        source_kind: Acquisition kind.
        compressed: Whether the stored file is gzip compressed.
        reference_id: Reference genome identifier.
        created_at: UTC registration timestamp.
        owner: User that registered the file.
        samples: Samples in declared order.
        index: Optional positional index descriptor.
    """

    id: int
    name: str
    path: str
    source_kind: SourceKind
    compressed: bool
    reference_id: int
    created_at: datetime
    owner: str
    samples: tuple[Sample, ...] = ()
    index: IndexDescriptor | None = None


@dataclass(frozen=True)
class RegistrationRequest:
    """Request to register a variant file.

    Attributes:
        path: Local path, URL, or record-service path.
        reference_id: Reference genome identifier.
        source_kind: Acquisition kind.
        index_path: Optional positional index path.
        name: Optional display name.
        do_index: Whether to build the feature index during registration.
    """

    path: str
    reference_id: int
    source_kind: SourceKind = SourceKind.LOCAL_FILE
    index_path: str | None = None
    name: str | None = None
    do_index: bool = True


@dataclass(frozen=True)
class InfoItem:
    """INFO field descriptor declared in a file header."""

    name: str
    type: str
    number: str
    description: str


@dataclass(frozen=True)
class FilterInfo:
    """FILTER labels and INFO descriptors available for filtering.

    Attributes:
        info_items: INFO field descriptors, never containing ``ANN``.
        available_filters: Distinct FILTER labels.
    """

    info_items: frozenset[InfoItem] = frozenset()
    available_filters: frozenset[str] = frozenset()

    def info_names(self) -> frozenset[str]:
        """Return names of the exposed INFO fields."""
        return frozenset(item.name for item in self.info_items)


@dataclass(frozen=True)
class Genotype:
    """Genotype call of one sample.

    Attributes:
        allele_indices: Allele index per ploidy slot; ``None`` marks a missing call.
        phased: Whether the call is phased.
    """

    allele_indices: tuple[int | None, ...]
    phased: bool = False

    @property
    def zygosity(self) -> str:
        """Return ``NO_CALL``, ``HOM_REF``, ``HET``, or ``HOM_VAR``."""
        called = [index for index in self.allele_indices if index is not None]
        if not called or len(called) != len(self.allele_indices):
            return "NO_CALL"
        if len(set(called)) > 1:
            return "HET"
        return "HOM_REF" if called[0] == 0 else "HOM_VAR"


@dataclass(frozen=True)
class VariantRecord:
    """Decoded variant record with 1-based coordinates.

    Attributes:
        contig: Contig name as written in the file.
        start: 1-based start position.
        end: 1-based inclusive end position.
        feature_id: Record identifier, ``None`` when absent.
        reference: Reference allele.
        alternatives: Alternative alleles.
        quality: Phred quality, ``None`` when absent.
        filters: FILTER labels carried by the record.
        info: INFO values keyed by field name.
        genotypes: Per-sample genotype calls in column order.
    """

    contig: str
    start: int
    end: int
    feature_id: str | None = None
    reference: str = "N"
    alternatives: tuple[str, ...] = ()
    quality: float | None = None
    filters: tuple[str, ...] = ()
    info: Mapping[str, Any] = field(default_factory=dict)
    genotypes: tuple[Genotype, ...] = ()


@dataclass(frozen=True)
class IndexEntry:
    """Index-ready projection of one variant record.

    Attributes:
        file_id: Owning variant file identifier.
        chromosome: Reference chromosome name.
        start_index: 1-based start position.
        end_index: 1-based end position.
        feature_id: Record identifier.
        variation_type: SNV, MNP, INS, DEL, or SV.
        reference: Reference allele.
        alternatives: Alternative alleles.
        quality: Phred quality.
        failed_filter: Whether the record failed any filter.
        filters: FILTER labels.
        info: Whitelisted INFO values rendered as strings.
        gene_ids: Overlapping gene identifiers.
        gene_names: Overlapping gene names.
    """

    file_id: int
    chromosome: str
    start_index: int
    end_index: int
    feature_id: str | None
    variation_type: str
    reference: str
    alternatives: tuple[str, ...]
    quality: float | None
    failed_filter: bool
    filters: tuple[str, ...] = ()
    info: Mapping[str, str] = field(default_factory=dict)
    gene_ids: tuple[str, ...] = ()
    gene_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class Variation:
    """Read-side view of one variation.

    Attributes:
        start_index: 1-based start position.
        end_index: 1-based end position.
        reference: Reference allele.
        alternatives: Alternative alleles.
        variation_type: SNV, MNP, INS, DEL, or SV.
        identifier: Record identifier.
        quality: Phred quality.
        failed_filter: Whether the record failed any filter.
        genotype: Genotype of the selected sample, if any.
        info: INFO values when extended info was requested.
        gene_names: Overlapping gene identifiers when looked up.
    """

    start_index: int
    end_index: int
    reference: str
    alternatives: tuple[str, ...]
    variation_type: str
    identifier: str | None = None
    quality: float | None = None
    failed_filter: bool = False
    genotype: Genotype | None = None
    info: Mapping[str, Any] | None = None
    gene_names: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Track:
    """Positional window over one chromosome.

    Attributes:
        chromosome: Chromosome the track covers.
        start_index: 1-based window start.
        end_index: 1-based window end.
        scale_factor: Pixels per base pair; below 1 the view is zoomed out.
        id: Variant file identifier.
        blocks: Loaded variations.
    """

    chromosome: Chromosome | None
    start_index: int
    end_index: int
    scale_factor: float = 1.0
    id: int | None = None
    blocks: tuple[Variation, ...] = ()


@dataclass(frozen=True)
class VariationQuery:
    """Single-position variation lookup."""

    file_id: int
    chromosome_id: int
    position: int
    sample_id: str | None = None


@dataclass(frozen=True)
class CallSet:
    """Call set enumerated by the external record service."""

    id: str
    sample_id: str
