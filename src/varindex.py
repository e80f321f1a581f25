"""Public SDK surface for VarIndex.

This module provides a stable import path for SDK users.
It re-exports the primary client and typed request models.
"""

from __future__ import annotations

from core.config import VarIndexConfig
from core.types import (
    Chromosome,
    Direction,
    FilterInfo,
    GeneFile,
    Reference,
    RegistrationRequest,
    SourceKind,
    Track,
    VariantFile,
    Variation,
    VariationQuery,
)
from serve.sample_offsets import resolve_sample_offset
from store.variant_sdk import VarIndexClient

__all__ = [
    "Chromosome",
    "Direction",
    "FilterInfo",
    "GeneFile",
    "Reference",
    "RegistrationRequest",
    "SourceKind",
    "Track",
    "VarIndexClient",
    "VarIndexConfig",
    "VariantFile",
    "Variation",
    "VariationQuery",
    "resolve_sample_offset",
]
