"""Directional nearest-variation lookup."""

from __future__ import annotations

from core.errors import VarIndexNotFoundError
from core.logging_config import get_logger
from core.types import Chromosome, Direction, Variation
from serve.sample_offsets import resolve_sample_offset
from serve.variation_reader import VariationReaders
from store.file_catalog import FileCatalog

_LOGGER = get_logger(__name__)


def is_search_exhausted(position: int, chromosome_size: int, direction: Direction) -> bool:
    """Return whether ``position`` already sits at the boundary in ``direction``."""
    if direction is Direction.FORWARD:
        return position + 1 >= chromosome_size
    return position - 1 <= 0


class NearestVariationLocator:
    """Finds the next or previous variation around a position."""

    def __init__(self, catalog: FileCatalog, readers: VariationReaders) -> None:
        self._catalog = catalog
        self._readers = readers

    def locate(
        self,
        position: int,
        file_id: int,
        chromosome: Chromosome,
        direction: Direction,
        sample_id: str | None = None,
    ) -> Variation | None:
        """Return the nearest variation strictly beyond ``position``.

        The boundary check runs before the file is looked up, so exhausted
        searches never touch the catalog or the file.

        Args:
            position: 1-based reference position.
            file_id: Registered file identifier.
            chromosome: Chromosome to search.
            direction: Search direction.
            sample_id: Optional sample whose genotype is projected.

        Returns:
            Nearest variation, or ``None`` when the search is exhausted or
            nothing lies beyond ``position``.

        Raises:
            VarIndexNotFoundError: If the file, its index, or the sample is unknown.
            VarIndexReadError: If the file cannot be searched.
        """
        if is_search_exhausted(position, chromosome.size, direction):
            _LOGGER.debug(
                "nearest_variation_boundary",
                position=position,
                chromosome=chromosome.name,
                direction=direction.value,
            )
            return None
        variant_file = self._catalog.load(file_id)
        if variant_file is None:
            raise VarIndexNotFoundError(f"Variant file {file_id} is not registered.")
        if variant_file.index is None:
            raise VarIndexNotFoundError(
                f"Variant file {file_id} has no positional index. Reindex the file first."
            )
        sample_offset = resolve_sample_offset(sample_id, variant_file)
        reader = self._readers.for_file(variant_file)
        return reader.next_or_previous_variation(
            position,
            variant_file,
            sample_offset,
            chromosome,
            direction is Direction.FORWARD,
        )
