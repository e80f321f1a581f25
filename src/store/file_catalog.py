"""Variant file catalog and per-file directory layout.

This module persists registered ``VariantFile`` metadata in a JSON catalog
and owns the on-disk directory of each file (index, interval metadata).
Catalog writes replace the file atomically.
"""

from __future__ import annotations

import json
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, cast

from core.config import VarIndexConfig
from core.constants import (
    FILE_CATALOG_FILE_NAME,
    INTERVAL_METADATA_FILE_NAME,
    VARIANT_FILES_DIR_NAME,
)
from core.errors import VarIndexStoreError
from core.logging_config import get_logger
from core.types import IndexDescriptor, IntervalMap, Sample, SourceKind, VariantFile

_LOGGER = get_logger(__name__)


class FileCatalog:
    """Filesystem-backed catalog of registered variant files."""

    def __init__(self, config: VarIndexConfig) -> None:
        self._files_root = config.data_root / VARIANT_FILES_DIR_NAME
        self._files_root.mkdir(parents=True, exist_ok=True)
        self._catalog_path = config.data_root / FILE_CATALOG_FILE_NAME

    def next_file_id(self) -> int:
        """Reserve and return a new unique file id."""
        catalog = self._read_catalog()
        file_id = int(catalog["next_id"])
        catalog["next_id"] = file_id + 1
        self._write_catalog(catalog)
        return file_id

    def save(self, variant_file: VariantFile) -> None:
        """Create or replace catalog metadata for a file."""
        catalog = self._read_catalog()
        files = cast(dict[str, Any], catalog["files"])
        files[str(variant_file.id)] = variant_file_to_payload(variant_file)
        self._write_catalog(catalog)

    def load(self, file_id: int) -> VariantFile | None:
        """Load a file by id, or ``None`` when it is not registered."""
        files = cast(dict[str, Any], self._read_catalog()["files"])
        payload = files.get(str(file_id))
        if payload is None:
            return None
        return variant_file_from_payload(payload)

    def delete(self, file_id: int) -> None:
        """Remove catalog metadata for a file."""
        catalog = self._read_catalog()
        files = cast(dict[str, Any], catalog["files"])
        files.pop(str(file_id), None)
        self._write_catalog(catalog)

    def file_dir(self, file_id: int) -> Path:
        """Return the on-disk directory of a file."""
        return self._files_root / str(file_id)

    def make_file_dir(self, file_id: int) -> Path:
        """Create and return the on-disk directory of a file."""
        file_dir = self.file_dir(file_id)
        file_dir.mkdir(parents=True, exist_ok=True)
        return file_dir

    def delete_file_dir(self, variant_file: VariantFile) -> None:
        """Delete the on-disk directory of a file with everything inside.

        Raises:
            OSError: If the directory cannot be removed.
        """
        file_dir = self.file_dir(variant_file.id)
        if file_dir.exists():
            shutil.rmtree(file_dir)
        _LOGGER.info("variant_file_dir_deleted", file_id=variant_file.id, path=str(file_dir))

    def write_interval_metadata(self, variant_file: VariantFile, interval_map: IntervalMap) -> Path:
        """Persist the per-chromosome interval map of a file."""
        metadata_path = self.make_file_dir(variant_file.id) / INTERVAL_METADATA_FILE_NAME
        payload = {name: [bounds[0], bounds[1]] for name, bounds in sorted(interval_map.items())}
        metadata_path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
        return metadata_path

    def read_interval_metadata(self, variant_file: VariantFile) -> IntervalMap:
        """Load the persisted interval map of a file.

        Raises:
            VarIndexStoreError: If metadata is missing or invalid.
        """
        metadata_path = self.file_dir(variant_file.id) / INTERVAL_METADATA_FILE_NAME
        if not metadata_path.exists():
            raise VarIndexStoreError(
                f"Index metadata not found for file {variant_file.id} at {metadata_path}. "
                "Reindex the file to rebuild it."
            )
        try:
            payload = json.loads(metadata_path.read_text(encoding="utf-8"))
            return {str(name): (int(bounds[0]), int(bounds[1])) for name, bounds in payload.items()}
        except (json.JSONDecodeError, AttributeError, IndexError, TypeError, ValueError) as error:
            raise VarIndexStoreError(
                f"Failed to parse index metadata at {metadata_path}: {error}. "
                "Reindex the file to rebuild it."
            ) from error

    def _read_catalog(self) -> dict[str, Any]:
        if not self._catalog_path.exists():
            return {"next_id": 1, "files": {}}
        try:
            payload = json.loads(self._catalog_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as error:
            raise VarIndexStoreError(
                f"Failed to parse file catalog at {self._catalog_path}: {error.msg}. "
                "Restore the catalog from backup or re-register files."
            ) from error
        if not isinstance(payload, dict) or "files" not in payload:
            raise VarIndexStoreError(
                f"Failed to parse file catalog at {self._catalog_path}: "
                "expected JSON object with 'files'. Restore the catalog."
            )
        return payload

    def _write_catalog(self, catalog: dict[str, Any]) -> None:
        temp_path = self._catalog_path.with_suffix(".tmp")
        try:
            temp_path.write_text(json.dumps(catalog, indent=2) + "\n", encoding="utf-8")
            os.replace(temp_path, self._catalog_path)
        except OSError as error:
            raise VarIndexStoreError(
                f"Failed to write file catalog at {self._catalog_path}: {error}. "
                "Check write permissions and available disk space."
            ) from error


def variant_file_to_payload(variant_file: VariantFile) -> dict[str, Any]:
    """Serialize a VariantFile into a JSON-safe dictionary."""
    index = variant_file.index
    return {
        "id": variant_file.id,
        "name": variant_file.name,
        "path": variant_file.path,
        "source_kind": variant_file.source_kind.value,
        "compressed": variant_file.compressed,
        "reference_id": variant_file.reference_id,
        "created_at": variant_file.created_at.isoformat(),
        "owner": variant_file.owner,
        "samples": [{"name": sample.name, "offset": sample.offset} for sample in variant_file.samples],
        "index": None
        if index is None
        else {
            "path": index.path,
            "source_kind": index.source_kind.value,
            "name": index.name,
            "created_at": index.created_at.isoformat(),
            "owner": index.owner,
        },
    }


def variant_file_from_payload(payload: dict[str, Any]) -> VariantFile:
    """Deserialize a VariantFile from a catalog dictionary."""
    index_payload = payload.get("index")
    index = None
    if index_payload:
        index = IndexDescriptor(
            path=str(index_payload["path"]),
            source_kind=SourceKind(index_payload["source_kind"]),
            name=str(index_payload["name"]),
            created_at=datetime.fromisoformat(str(index_payload["created_at"])),
            owner=str(index_payload["owner"]),
        )
    return VariantFile(
        id=int(payload["id"]),
        name=str(payload["name"]),
        path=str(payload["path"]),
        source_kind=SourceKind(payload["source_kind"]),
        compressed=bool(payload["compressed"]),
        reference_id=int(payload["reference_id"]),
        created_at=datetime.fromisoformat(str(payload["created_at"])),
        owner=str(payload["owner"]),
        samples=tuple(
            Sample(name=str(item["name"]), offset=int(item["offset"]))
            for item in payload.get("samples", [])
        ),
        index=index,
    )
