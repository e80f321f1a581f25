"""Shared JSONL serialization for IndexEntry payloads.

This module centralizes IndexEntry JSON serialization logic.
It is reused by the feature index JSONL mirror and the Lance table builder.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.types import IndexEntry


def index_entry_to_payload(entry: IndexEntry) -> dict[str, object]:
    """Serialize IndexEntry into JSON-safe payload.

    Args:
        entry: Index entry instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "file_id": entry.file_id,
        "chromosome": entry.chromosome,
        "start_index": entry.start_index,
        "end_index": entry.end_index,
        "feature_id": entry.feature_id,
        "variation_type": entry.variation_type,
        "reference": entry.reference,
        "alternatives": list(entry.alternatives),
        "quality": entry.quality,
        "failed_filter": entry.failed_filter,
        "filters": list(entry.filters),
        "info": dict(entry.info),
        "gene_ids": list(entry.gene_ids),
        "gene_names": list(entry.gene_names),
    }


def index_entry_from_payload(payload: dict[str, Any]) -> IndexEntry:
    """Deserialize JSON payload into IndexEntry.

    Args:
        payload: Serialized entry payload.

    Returns:
        Parsed IndexEntry.
    """
    quality = payload.get("quality")
    feature_id = payload.get("feature_id")
    return IndexEntry(
        file_id=int(payload["file_id"]),
        chromosome=str(payload["chromosome"]),
        start_index=int(payload["start_index"]),
        end_index=int(payload["end_index"]),
        feature_id=str(feature_id) if feature_id is not None else None,
        variation_type=str(payload.get("variation_type", "")),
        reference=str(payload.get("reference", "")),
        alternatives=tuple(str(item) for item in payload.get("alternatives", [])),
        quality=float(quality) if quality is not None else None,
        failed_filter=bool(payload.get("failed_filter", False)),
        filters=tuple(str(item) for item in payload.get("filters", [])),
        info={str(key): str(value) for key, value in dict(payload.get("info", {})).items()},
        gene_ids=tuple(str(item) for item in payload.get("gene_ids", [])),
        gene_names=tuple(str(item) for item in payload.get("gene_names", [])),
    )


def append_index_entries_jsonl(entries_path: Path, entries: list[IndexEntry]) -> None:
    """Append IndexEntry rows to a JSONL file.

    Args:
        entries_path: Output JSONL file path.
        entries: Entries to serialize.
    """
    lines = [json.dumps(index_entry_to_payload(entry), sort_keys=True) for entry in entries]
    with entries_path.open("a", encoding="utf-8") as handle:
        for line in lines:
            handle.write(line + "\n")


def read_index_entries_jsonl(entries_path: Path) -> list[IndexEntry]:
    """Read IndexEntry list from JSONL file.

    Args:
        entries_path: Input JSONL file path.

    Returns:
        Parsed entries in write order.

    Raises:
        ValueError: If JSONL rows are invalid.
    """
    parsed_entries: list[IndexEntry] = []
    for line_number, line in enumerate(entries_path.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        payload = _parse_payload_line(line, line_number)
        parsed_entries.append(index_entry_from_payload(payload))
    return parsed_entries


def _parse_payload_line(line: str, line_number: int) -> dict[str, Any]:
    """Parse and validate one JSONL payload row.

    Raises:
        ValueError: If JSON row is invalid.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ValueError(f"Invalid JSON at line {line_number}: {error.msg}") from error
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid payload at line {line_number}: expected JSON object")
    return payload
