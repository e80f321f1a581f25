"""Sample selection for read-side projections."""

from __future__ import annotations

from core.errors import VarIndexNotFoundError
from core.types import VariantFile


def resolve_sample_offset(sample_id: str | None, variant_file: VariantFile) -> int | None:
    """Resolve the genotype column offset used for record projection.

    Files without samples yield ``None``. When no sample is requested the
    first sample in declared order is used.

    Args:
        sample_id: Requested sample name, or ``None`` for the default sample.
        variant_file: File whose sample list is consulted.

    Returns:
        Column offset of the selected sample, or ``None``.

    Raises:
        VarIndexNotFoundError: If the requested sample is not in the file.
    """
    if not variant_file.samples:
        return None
    if sample_id is None:
        return variant_file.samples[0].offset
    for sample in variant_file.samples:
        if sample.name == sample_id:
            return sample.offset
    raise VarIndexNotFoundError(
        f"Sample '{sample_id}' not found in file {variant_file.id} ({variant_file.name}). "
        f"Available samples: {', '.join(sample.name for sample in variant_file.samples)}."
    )
