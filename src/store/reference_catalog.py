"""Reference genome catalog.

This module stores reference genomes, their chromosomes, and optional gene
files in a JSON catalog under the data root.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.config import VarIndexConfig
from core.constants import REFERENCE_CATALOG_FILE_NAME
from core.errors import VarIndexNotFoundError, VarIndexStoreError
from core.types import Chromosome, GeneFile, Reference


class ReferenceCatalog:
    """JSON-backed reference genome provider."""

    def __init__(self, config: VarIndexConfig) -> None:
        config.data_root.mkdir(parents=True, exist_ok=True)
        self._catalog_path = config.data_root / REFERENCE_CATALOG_FILE_NAME

    def register_reference(self, reference: Reference) -> None:
        """Create or replace a reference genome entry."""
        catalog = self._read_catalog()
        catalog[str(reference.id)] = _reference_to_payload(reference)
        self._catalog_path.write_text(json.dumps(catalog, indent=2) + "\n", encoding="utf-8")

    def load_reference(self, reference_id: int) -> Reference:
        """Load a reference genome by id.

        Raises:
            VarIndexNotFoundError: If the reference is not registered.
        """
        payload = self._read_catalog().get(str(reference_id))
        if payload is None:
            raise VarIndexNotFoundError(
                f"Reference genome {reference_id} is not registered. "
                "Register the reference before adding variant files."
            )
        return _reference_from_payload(payload)

    def load_chromosome(self, chromosome_id: int) -> Chromosome:
        """Load a chromosome by id across all references.

        Raises:
            VarIndexNotFoundError: If no reference holds the chromosome.
        """
        for payload in self._read_catalog().values():
            for chromosome in _reference_from_payload(payload).chromosomes:
                if chromosome.id == chromosome_id:
                    return chromosome
        raise VarIndexNotFoundError(f"Chromosome {chromosome_id} not found in any reference.")

    def _read_catalog(self) -> dict[str, Any]:
        if not self._catalog_path.exists():
            return {}
        try:
            payload = json.loads(self._catalog_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as error:
            raise VarIndexStoreError(
                f"Failed to parse reference catalog at {self._catalog_path}: {error.msg}. "
                "Re-register reference genomes."
            ) from error
        if not isinstance(payload, dict):
            raise VarIndexStoreError(
                f"Failed to parse reference catalog at {self._catalog_path}: "
                "expected JSON object at top level."
            )
        return payload


def _reference_to_payload(reference: Reference) -> dict[str, Any]:
    gene_file = reference.gene_file
    return {
        "id": reference.id,
        "name": reference.name,
        "chromosomes": [
            {"id": chromosome.id, "name": chromosome.name, "size": chromosome.size}
            for chromosome in reference.chromosomes
        ],
        "gene_file": None if gene_file is None else {"id": gene_file.id, "path": gene_file.path},
    }


def _reference_from_payload(payload: dict[str, Any]) -> Reference:
    reference_id = int(payload["id"])
    gene_payload = payload.get("gene_file")
    return Reference(
        id=reference_id,
        name=str(payload["name"]),
        chromosomes=tuple(
            Chromosome(
                id=int(item["id"]),
                name=str(item["name"]),
                size=int(item["size"]),
                reference_id=reference_id,
            )
            for item in payload.get("chromosomes", [])
        ),
        gene_file=None
        if not gene_payload
        else GeneFile(id=int(gene_payload["id"]), path=str(Path(gene_payload["path"]))),
    )
