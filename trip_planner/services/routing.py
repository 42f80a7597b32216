from __future__ import annotations

import abc
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from trip_planner.core.config import get_settings
from trip_planner.core.enums import DistanceMethod
from trip_planner.core.exceptions import TransportError
from trip_planner.services.geometry import Coordinate, path_great_circle_km

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DistanceResult:
    kilometers: float
    method: DistanceMethod


class RouteProvider(abc.ABC):
    @abc.abstractmethod
    async def route(self, coordinates: Sequence[Coordinate]) -> float:
        """Total travel distance in meters along ``coordinates`` in the given order."""
        raise NotImplementedError


class OsrmRouteProvider(RouteProvider):
    def __init__(
        self,
        base_url: str = "https://router.project-osrm.org",
        *,
        profile: str = "driving",
        timeout_sec: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.profile = profile
        self.timeout_sec = timeout_sec
        self.transport = transport

    @classmethod
    def from_settings(cls) -> "OsrmRouteProvider":
        settings = get_settings()
        return cls(
            settings.osrm_base_url,
            profile=settings.osrm_profile,
            timeout_sec=settings.provider_timeout_sec,
        )

    @staticmethod
    def format_coordinates(coordinates: Sequence[Coordinate]) -> str:
        # OSRM wants lon,lat pairs separated by ';'
        return ";".join(f"{point.lon},{point.lat}" for point in coordinates)

    async def route(self, coordinates: Sequence[Coordinate]) -> float:
        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout_sec, transport=self.transport) as client:
                response = await client.get(url, params={"overview": "false"})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                "Route provider returned an error status",
                details={"status_code": exc.response.status_code},
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Route provider unreachable: {exc.__class__.__name__}") from exc
        except ValueError as exc:
            raise TransportError("Route provider returned invalid JSON") from exc

        if not isinstance(payload, dict) or payload.get("code") != "Ok":
            message = payload.get("message") if isinstance(payload, dict) else None
            raise TransportError(f"Route provider error: {message or 'unexpected payload'}")
        try:
            distance = float(payload["routes"][0]["distance"])
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise TransportError("Route provider returned a malformed route") from exc
        if not math.isfinite(distance) or distance < 0:
            raise TransportError("Route provider returned an invalid distance", details={"distance": distance})
        return distance


class RouteDistanceEngine:
    """Length of the path start -> waypoints -> end, routed when possible.

    The whole ordered sequence goes to the provider as a single request. Any
    provider failure degrades to the summed great-circle legs, so
    :meth:`compute_distance_km` never raises for provider problems.
    """

    def __init__(self, provider: RouteProvider) -> None:
        self.provider = provider

    @staticmethod
    def straight_line(coordinates: Sequence[Coordinate]) -> DistanceResult:
        return DistanceResult(kilometers=path_great_circle_km(coordinates), method=DistanceMethod.STRAIGHT_LINE)

    async def compute_distance_km(self, coordinates: Sequence[Coordinate]) -> DistanceResult:
        points = list(coordinates)
        if len(points) < 2:
            return DistanceResult(kilometers=0.0, method=DistanceMethod.STRAIGHT_LINE)

        try:
            meters = await self.provider.route(points)
        except Exception as exc:
            logger.warning(
                "Route provider failed, falling back to straight line",
                extra={
                    "provider": self.provider.__class__.__name__,
                    "points": len(points),
                    "error": exc.message if isinstance(exc, TransportError) else str(exc),
                },
            )
            return self.straight_line(points)
        if not isinstance(meters, (int, float)) or not math.isfinite(meters) or meters < 0:
            logger.warning(
                "Route provider returned an unusable distance, falling back to straight line",
                extra={"provider": self.provider.__class__.__name__, "distance": repr(meters)},
            )
            return self.straight_line(points)
        return DistanceResult(kilometers=meters / 1000, method=DistanceMethod.ROUTED)
