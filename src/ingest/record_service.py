"""Client for the external GA4GH-style variant record service.

Call sets replace the local header sample list for files registered from
the service; variant searches back the read side of such files.
"""

from __future__ import annotations

from typing import Any

import requests

from core.constants import RECORD_SERVICE_PAGE_SIZE
from core.errors import VarIndexReadError, VarIndexRegistrationError
from core.types import CallSet


class RecordServiceClient:
    """Paginated JSON client for call set and variant searches."""

    def __init__(self, base_url: str, session: requests.Session | None = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()

    def list_call_sets(self, variant_set_id: str) -> list[CallSet]:
        """Enumerate all call sets of a variant set.

        Raises:
            VarIndexReadError: If the service cannot be queried.
        """
        payload = {"variantSetIds": [variant_set_id]}
        return [
            CallSet(id=str(item["id"]), sample_id=str(item.get("sampleId") or item["id"]))
            for item in self._search("callsets/search", payload, "callSets")
        ]

    def search_variants(
        self,
        variant_set_id: str,
        reference_name: str,
        start: int,
        end: int,
        call_set_ids: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Return variants overlapping a region.

        Args:
            variant_set_id: Variant set path registered for the file.
            reference_name: Chromosome name.
            start: 1-based inclusive start.
            end: 1-based inclusive end.
            call_set_ids: Call sets whose genotypes should be returned.

        Returns:
            Raw variant payloads with 0-based half-open coordinates.

        Raises:
            VarIndexReadError: If the service cannot be queried.
        """
        payload: dict[str, Any] = {
            "variantSetIds": [variant_set_id],
            "referenceName": reference_name,
            "start": max(start - 1, 0),
            "end": end,
        }
        if call_set_ids is not None:
            payload["callSetIds"] = call_set_ids
        return self._search("variants/search", payload, "variants")

    def _search(self, endpoint: str, payload: dict[str, Any], result_key: str) -> list[dict[str, Any]]:
        url = f"{self._base_url}/{endpoint}"
        results: list[dict[str, Any]] = []
        page_token: str | None = None
        while True:
            body = dict(payload, pageSize=RECORD_SERVICE_PAGE_SIZE)
            if page_token:
                body["pageToken"] = page_token
            response_payload = self._post(url, body)
            results.extend(response_payload.get(result_key) or [])
            page_token = response_payload.get("nextPageToken")
            if not page_token:
                return results

    def _post(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._session.post(url, json=body)
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as error:
            raise VarIndexReadError(
                f"Record service request to {url} failed: {error}. "
                "Check VARINDEX_RECORD_SERVICE_URL and service availability."
            ) from error
        if not isinstance(payload, dict):
            raise VarIndexReadError(f"Record service at {url} returned a non-object payload.")
        return payload


def decompose_call_set_id(call_set_id: str) -> tuple[str, int]:
    """Split a call set id into name and numeric suffix at its last hyphen.

    Raises:
        VarIndexRegistrationError: If the id has no numeric hyphen suffix.
    """
    name, separator, suffix = call_set_id.rpartition("-")
    if not separator or not suffix.isdigit():
        raise VarIndexRegistrationError(
            f"Invalid call set id '{call_set_id}': expected '<name>-<number>'."
        )
    return name, int(suffix)


def sample_offsets_from_call_sets(call_sets: list[CallSet]) -> dict[str, int]:
    """Map each call set's sample id to the numeric suffix of its id."""
    return {call_set.sample_id: decompose_call_set_id(call_set.id)[1] for call_set in call_sets}
