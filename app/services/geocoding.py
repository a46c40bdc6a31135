# app/services/geocoding.py
from collections.abc import Mapping
from typing import Any, List

import httpx

from app.core.errors import BackendDecodeError, BackendHTTPError, BackendUnavailableError
from app.core.logger import logger


def suggestion_label(result: Mapping) -> str:
    """
    "City, ST" for one autocomplete result, falling back to the provider's
    formatted address.
    """
    city = result.get("city") or result.get("name") or ""
    state = result.get("state_code") or result.get("state") or ""
    label = ", ".join(part for part in (city, state) if part)
    return label or result.get("formatted") or ""


def suggestion_labels(results: Any) -> List[str]:
    if not isinstance(results, list):
        return []
    labels = [suggestion_label(r) for r in results if isinstance(r, Mapping)]
    # dict keeps first-seen order
    return list(dict.fromkeys(label for label in labels if label))


class GeocodingClient:
    """
    City autocomplete through the Geoapify geocoding API, restricted to one
    country.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        url: str = "https://api.geoapify.com/v1/geocode/autocomplete",
        country_code: str = "us",
        limit: int = 8,
        excerpt_chars: int = 200,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self.url = url
        self.country_code = country_code
        self.limit = limit
        self.excerpt_chars = excerpt_chars

    async def autocomplete(self, text: str) -> List[str]:
        params = {
            "text": text,
            "type": "city",
            "filter": f"countrycode:{self.country_code}",
            "limit": str(self.limit),
            "lang": "en",
            "format": "json",
            "apiKey": self._api_key,
        }

        try:
            response = await self._client.get(self.url, params=params)
        except httpx.HTTPError as exc:
            logger.warning(f"Autocomplete request failed without a response: {exc!r}")
            raise BackendUnavailableError(f"Autocomplete failed: {exc}") from exc

        if not response.is_success:
            raise BackendHTTPError(response.status_code, response.text, prefix="Autocomplete failed")

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendDecodeError(response.text[: self.excerpt_chars]) from exc

        results = data.get("results") if isinstance(data, Mapping) else None
        return suggestion_labels(results)
