"""Variation reader backed by the external record service.

Service payloads use 0-based half-open coordinates; variations are
returned 1-based inclusive like the file reader's.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from core.errors import VarIndexReadError
from core.types import Chromosome, Genotype, Track, VariantFile, Variation
from core.variation_types import classify_variation_type
from ingest.record_service import RecordServiceClient
from serve.variation_reader import collapse_variations


class RecordServiceVariationReader:
    """Reads variations of files registered from the record service."""

    def __init__(self, client: RecordServiceClient) -> None:
        self._client = client

    def read_variations(
        self,
        variant_file: VariantFile,
        track: Track,
        chromosome: Chromosome,
        sample_offset: int | None,
        load_info: bool,
        collapse: bool,
    ) -> Track:
        """Load a track window from the record service.

        Raises:
            VarIndexReadError: If the service request fails.
        """
        payloads = self._client.search_variants(
            variant_file.path, chromosome.name, track.start_index, track.end_index
        )
        variations = [variation_from_payload(item, sample_offset, load_info) for item in payloads]
        variations.sort(key=lambda variation: variation.start_index)
        if collapse:
            variations = collapse_variations(variations, track.scale_factor)
        return replace(track, chromosome=chromosome, blocks=tuple(variations))

    def next_or_previous_variation(
        self,
        from_position: int,
        variant_file: VariantFile,
        sample_offset: int | None,
        chromosome: Chromosome,
        forward: bool,
    ) -> Variation | None:
        """Return the nearest service variation before or after a position.

        Raises:
            VarIndexReadError: If the service request fails.
        """
        if forward:
            start, end = from_position + 1, chromosome.size
        else:
            start, end = 1, from_position - 1
        payloads = self._client.search_variants(variant_file.path, chromosome.name, start, end)
        variations = [variation_from_payload(item, sample_offset, False) for item in payloads]
        if forward:
            candidates = [item for item in variations if item.start_index > from_position]
            return min(candidates, key=lambda item: item.start_index, default=None)
        candidates = [item for item in variations if item.start_index < from_position]
        return max(candidates, key=lambda item: item.start_index, default=None)


def variation_from_payload(
    payload: Mapping[str, Any],
    sample_offset: int | None,
    load_info: bool,
) -> Variation:
    """Convert a service variant payload into a variation.

    Raises:
        VarIndexReadError: If required coordinates are missing.
    """
    try:
        start = int(payload["start"]) + 1
        end = int(payload["end"])
    except (KeyError, TypeError, ValueError) as error:
        raise VarIndexReadError(
            f"Record service returned a variant without valid coordinates: {payload!r}."
        ) from error
    reference = str(payload.get("referenceBases") or "N")
    alternatives = tuple(str(allele) for allele in payload.get("alternateBases") or ())
    names = payload.get("names") or ()
    quality = payload.get("quality")
    return Variation(
        start_index=start,
        end_index=max(end, start),
        reference=reference,
        alternatives=alternatives,
        variation_type=classify_variation_type(reference, alternatives),
        identifier=str(names[0]) if names else None,
        quality=float(quality) if quality is not None else None,
        failed_filter=bool(payload.get("filtersApplied")) and not payload.get("filtersPassed"),
        genotype=_genotype_for_offset(payload.get("calls") or (), sample_offset),
        info=dict(payload.get("info") or {}) if load_info else None,
    )


def _genotype_for_offset(calls: Any, sample_offset: int | None) -> Genotype | None:
    """Pick the call whose call set id ends with ``-<sample_offset>``."""
    if sample_offset is None:
        return None
    suffix = str(sample_offset)
    for call in calls:
        if str(call.get("callSetId", "")).rpartition("-")[2] != suffix:
            continue
        allele_indices = tuple(
            None if allele is None or int(allele) < 0 else int(allele)
            for allele in call.get("genotype") or ()
        )
        return Genotype(allele_indices=allele_indices, phased=bool(call.get("phaseset")))
    return None
