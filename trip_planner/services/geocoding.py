from __future__ import annotations

import abc
import logging
from dataclasses import dataclass

import httpx

from trip_planner.core.config import get_settings
from trip_planner.core.exceptions import InvalidCoordinateError, TransportError
from trip_planner.services.geometry import Coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SearchHit:
    id: str
    display_label: str
    lat: float
    lon: float
    category: str


class TextSearchProvider(abc.ABC):
    @abc.abstractmethod
    async def search(self, query: str, limit: int) -> list[SearchHit]:
        """Return ranked matches for ``query``; raise TransportError on any failure."""
        raise NotImplementedError


class NominatimSearchProvider(TextSearchProvider):
    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        *,
        user_agent: str = "TripPlanner/1.0 (geocoder)",
        timeout_sec: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout_sec = timeout_sec
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "NominatimSearchProvider":
        settings = get_settings()
        return cls(
            settings.nominatim_base_url,
            user_agent=settings.nominatim_user_agent,
            timeout_sec=settings.provider_timeout_sec,
        )

    @staticmethod
    def _parse_item(item: dict) -> SearchHit:
        display_name = str(item["display_name"]).strip()
        coordinate = Coordinate(lat=float(item["lat"]), lon=float(item["lon"]))
        # jsonv2 says "category", plain json says "class"
        category = item.get("category") or item.get("class") or ""
        return SearchHit(
            id=str(item["place_id"]),
            display_label=display_name,
            lat=coordinate.lat,
            lon=coordinate.lon,
            category=str(category),
        )

    async def search(self, query: str, limit: int) -> list[SearchHit]:
        params = {
            "q": query,
            "format": "jsonv2",
            "limit": max(1, limit),
            "addressdetails": 1,
        }
        headers = {"User-Agent": self.user_agent}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, headers=headers, transport=self.transport) as client:
                response = await client.get(f"{self.base_url}/search", params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                "Search provider returned an error status",
                details={"status_code": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Search provider unreachable: {exc.__class__.__name__}") from exc
        except ValueError as exc:
            raise TransportError("Search provider returned invalid JSON") from exc

        if not isinstance(payload, list):
            raise TransportError("Search provider returned an unexpected payload")
        try:
            return [self._parse_item(item) for item in payload[:limit]]
        except (KeyError, TypeError, ValueError) as exc:
            raise TransportError("Search provider returned a malformed item") from exc


class AddressResolver:
    """Resolves a committed address text to its single best-match coordinate.

    No caching and no debouncing: every call makes exactly one search request.
    Failures and empty result sets both come back as ``None``.
    """

    def __init__(self, provider: TextSearchProvider) -> None:
        self.provider = provider

    async def resolve(self, address_text: str) -> Coordinate | None:
        text = address_text.strip()
        if not text:
            return None
        try:
            hits = await self.provider.search(text, limit=1)
        except TransportError as exc:
            logger.warning(
                "Address resolution failed",
                extra={"provider": self.provider.__class__.__name__, "error": exc.message},
            )
            return None
        except Exception as exc:
            logger.warning(
                "Address provider raised unexpectedly",
                extra={"provider": self.provider.__class__.__name__, "error": str(exc)},
            )
            return None
        if not hits:
            logger.info("Address not found", extra={"address": text})
            return None
        top = hits[0]
        try:
            return Coordinate(lat=top.lat, lon=top.lon)
        except InvalidCoordinateError as exc:
            logger.warning(
                "Address provider returned a malformed hit",
                extra={"provider": self.provider.__class__.__name__, "error": str(exc)},
            )
            return None
