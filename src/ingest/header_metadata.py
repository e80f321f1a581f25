"""FILTER and INFO metadata extraction from variant headers.

This module aggregates the filterable header metadata of one or more
files into a single ``FilterInfo``.
"""

from __future__ import annotations

from collections.abc import Iterable

from core.constants import EXCLUDED_INFO_FIELD
from core.types import FilterInfo, InfoItem
from ingest.vcf_decoder import VariantHeader


class FilterInfoExtractor:
    """Builds ``FilterInfo`` from headers with an optional INFO whitelist."""

    def __init__(self, whitelist: Iterable[str] = ()) -> None:
        """Create an extractor.

        Args:
            whitelist: INFO field names to expose; empty exposes all fields.
        """
        self._whitelist = frozenset(whitelist)

    def extract(self, headers: Iterable[VariantHeader]) -> FilterInfo:
        """Aggregate INFO descriptors and FILTER labels across headers.

        Args:
            headers: Opened file headers.

        Returns:
            Union of INFO descriptors (``ANN`` excluded, whitelist applied)
            and union of FILTER labels.
        """
        info_items: set[InfoItem] = set()
        available_filters: set[str] = set()
        for header in headers:
            info_items.update(
                item
                for item in header.info_descriptors()
                if item.name.upper() != EXCLUDED_INFO_FIELD
            )
            available_filters.update(header.filter_labels())
        if self._whitelist:
            info_items = {item for item in info_items if item.name in self._whitelist}
        return FilterInfo(
            info_items=frozenset(info_items),
            available_filters=frozenset(available_filters),
        )

    def extract_one(self, header: VariantHeader) -> FilterInfo:
        """Extract filter metadata from a single header."""
        return self.extract((header,))
