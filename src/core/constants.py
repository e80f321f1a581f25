"""Core constants used across varindex modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".varindex")
VARIANT_FILES_DIR_NAME = "variant_files"
DOWNLOADS_DIR_NAME = "downloads"
INDEX_DIR_NAME = "index"
FILE_CATALOG_FILE_NAME = "variant_files.json"
REFERENCE_CATALOG_FILE_NAME = "references.json"
INTERVAL_METADATA_FILE_NAME = "index_metadata.json"
INDEX_ENTRIES_FILE_NAME = "entries.jsonl"
LANCE_DIR_NAME = "entries.lance"
TABIX_INDEX_SUFFIX = ".tbi"
GZIP_SUFFIXES = (".gz", ".bgz")
BCF_SUFFIX = ".bcf"
EXCLUDED_INFO_FIELD = "ANN"
INDEX_DESCRIPTOR_NAME_SUFFIX = "_index"
CHROMOSOME_PREFIX = "chr"
DEFAULT_BACKWARD_SEARCH_WINDOW = 10_000
RECORD_SERVICE_PAGE_SIZE = 256
DOWNLOAD_CHUNK_SIZE = 1 << 20
