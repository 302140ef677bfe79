"""Place search against a Nominatim-style endpoint.

Assistive only: every failure degrades to an empty list or the default
coordinate. Callers debounce keystrokes; this client does not rate-limit.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from techmanager.config import GeocodingConfig
from techmanager.schemas import CityResult, Coordinates

logger = logging.getLogger(__name__)


def _city_name(item: dict[str, Any]) -> str:
    fallback = (item.get("display_name") or "").split(",")[0].strip()
    address = item.get("address")
    if not address:
        return fallback
    return (
        address.get("city") or address.get("town") or address.get("village")
        or address.get("municipality") or fallback
    )


def _state(item: dict[str, Any]) -> str:
    return (item.get("address") or {}).get("state") or ""


def dedupe_cities(items: list[dict[str, Any]]) -> list[CityResult]:
    """Collapse candidates sharing a lowercase ``name|state`` key; first one wins."""
    seen: set[str] = set()
    results: list[CityResult] = []
    for item in items:
        name, state = _city_name(item), _state(item)
        key = f"{name.lower()}|{state.lower()}"
        if key in seen:
            continue
        seen.add(key)
        results.append(CityResult(name=name, state=state, lat=float(item["lat"]), lng=float(item["lon"])))
    return results


class GeocodingClient:
    def __init__(self, config: GeocodingConfig | None = None, client: httpx.AsyncClient | None = None):
        self.config = config or GeocodingConfig()
        self._client = client or httpx.AsyncClient(timeout=self.config.timeout)
        self._owns_client = client is None

    @property
    def default_coordinates(self) -> Coordinates:
        return Coordinates(lat=self.config.default_lat, lng=self.config.default_lng)

    async def _search(self, query: str, limit: int) -> list[dict[str, Any]]:
        response = await self._client.get(
            self.config.base_url,
            params={
                "q": query,
                "format": "json",
                "limit": str(limit),
                "addressdetails": "1",
                "accept-language": self.config.language,
            },
            headers={"Accept-Language": self.config.language, "User-Agent": self.config.user_agent},
        )
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, list) else []

    async def search_cities(self, query: str) -> list[CityResult]:
        query = query.strip()
        if len(query) < self.config.min_query_length:
            return []
        try:
            items = await self._search(query, self.config.request_limit)
            return dedupe_cities(items)[: self.config.max_results]
        except (httpx.HTTPError, ValueError, KeyError, TypeError):
            logger.warning("City search failed for %r", query, exc_info=True)
            return []

    async def geocode_address(self, address: str) -> Coordinates:
        """Best single match for an address, or the default coordinate."""
        address = address.strip()
        if not address:
            return self.default_coordinates
        try:
            items = await self._search(address, 1)
            if items:
                return Coordinates(lat=float(items[0]["lat"]), lng=float(items[0]["lon"]))
        except (httpx.HTTPError, ValueError, KeyError, TypeError):
            logger.warning("Geocoding failed for %r", address, exc_info=True)
        return self.default_coordinates

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
