"""Chromosome name matching helpers.

Variant files and reference genomes disagree on the ``chr`` prefix
(``chr1`` versus ``1``). Lookups here accept either spelling.
"""

from __future__ import annotations

from typing import Mapping

from core.constants import CHROMOSOME_PREFIX
from core.types import Chromosome


def build_chromosome_map(chromosomes: tuple[Chromosome, ...]) -> dict[str, Chromosome]:
    """Index reference chromosomes by name."""
    return {chromosome.name: chromosome for chromosome in chromosomes}


def chromosome_name_variants(name: str) -> tuple[str, ...]:
    """Return the name followed by its alternate ``chr`` spelling."""
    if name.lower().startswith(CHROMOSOME_PREFIX):
        return (name, name[len(CHROMOSOME_PREFIX) :])
    return (name, CHROMOSOME_PREFIX + name)


def find_chromosome(chromosome_map: Mapping[str, Chromosome], name: str | None) -> Chromosome | None:
    """Look up a chromosome by contig name, tolerating prefix mismatch."""
    if name is None:
        return None
    for candidate in chromosome_name_variants(name):
        chromosome = chromosome_map.get(candidate)
        if chromosome is not None:
            return chromosome
    return None
