from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from trip_planner.core.config import get_settings
from trip_planner.core.enums import AddressRole
from trip_planner.core.exceptions import NotFoundError
from trip_planner.services.geocoding import AddressResolver, NominatimSearchProvider, TextSearchProvider
from trip_planner.services.geometry import Coordinate
from trip_planner.services.routing import DistanceResult, OsrmRouteProvider, RouteDistanceEngine, RouteProvider
from trip_planner.services.suggestions import SuggestionFetcher, SuggestionState
from trip_planner.services.trip import TripAddressState, TripDistanceOrchestrator, TripQuote, Waypoint, trip_cost

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MapEvents:
    """Callbacks a map widget invokes for user clicks; handed to it by whoever renders it."""

    on_map_click: Callable[[float, float], Awaitable[Waypoint]]
    on_marker_remove: Callable[[str], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class TripSnapshot:
    addresses: TripAddressState
    waypoints: tuple[Waypoint, ...]
    quote: TripQuote | None


class PlanningSession:
    """One user's planning session: the search box, the waypoint list and the trip distance."""

    def __init__(
        self,
        search_provider: TextSearchProvider,
        route_provider: RouteProvider,
        *,
        cost_per_km: float | None = None,
        currency: str | None = None,
        debounce_ms: int | None = None,
        on_suggestions: Callable[[SuggestionState], None] | None = None,
        on_quote: Callable[[TripQuote], None] | None = None,
    ) -> None:
        settings = get_settings()
        self.cost_per_km = settings.cost_per_km if cost_per_km is None else cost_per_km
        self.currency = currency or settings.currency
        self.on_quote = on_quote
        self.fetcher = SuggestionFetcher(search_provider, debounce_ms=debounce_ms, on_change=on_suggestions)
        self.orchestrator = TripDistanceOrchestrator(
            AddressResolver(search_provider),
            RouteDistanceEngine(route_provider),
            on_distance=self._publish_quote,
        )
        self._waypoints: list[Waypoint] = []

    @classmethod
    def from_settings(cls) -> "PlanningSession":
        return cls(NominatimSearchProvider.from_settings(), OsrmRouteProvider.from_settings())

    @property
    def waypoints(self) -> tuple[Waypoint, ...]:
        return tuple(self._waypoints)

    @property
    def quote(self) -> TripQuote | None:
        distance = self.orchestrator.distance
        if distance is None:
            return None
        return self._quote_for(distance)

    def snapshot(self) -> TripSnapshot:
        addresses = self.orchestrator.addresses
        return TripSnapshot(
            addresses=TripAddressState(
                start_text=addresses.start_text,
                end_text=addresses.end_text,
                start_coordinate=addresses.start_coordinate,
                end_coordinate=addresses.end_coordinate,
            ),
            waypoints=self.waypoints,
            quote=self.quote,
        )

    def on_query_changed(self, text: str) -> None:
        self.fetcher.on_query_changed(text)

    async def commit_address(self, role: AddressRole, text: str) -> None:
        await self.orchestrator.on_address_committed(role, text)

    async def add_waypoint_from_suggestion(self, suggestion_id: str) -> Waypoint:
        suggestion = self.fetcher.find(suggestion_id)
        if suggestion is None:
            raise NotFoundError("Suggestion not found", details={"suggestion_id": suggestion_id})
        waypoint = Waypoint(coordinate=suggestion.coordinate, label=suggestion.primary_label)
        self.fetcher.clear()
        await self._append(waypoint)
        return waypoint

    async def add_waypoint_from_map(self, lat: float, lon: float) -> Waypoint:
        waypoint = Waypoint(coordinate=Coordinate(lat=lat, lon=lon), label=f"Destination {len(self._waypoints) + 1}")
        await self._append(waypoint)
        return waypoint

    async def remove_waypoint(self, waypoint_id: str) -> None:
        remaining = [waypoint for waypoint in self._waypoints if waypoint.id != waypoint_id]
        if len(remaining) == len(self._waypoints):
            raise NotFoundError("Waypoint not found", details={"waypoint_id": waypoint_id})
        self._waypoints = remaining
        await self.orchestrator.on_waypoints_changed(self.waypoints)

    def map_events(self) -> MapEvents:
        return MapEvents(on_map_click=self.add_waypoint_from_map, on_marker_remove=self.remove_waypoint)

    def close(self) -> None:
        self.fetcher.close()
        logger.info("Planning session closed")

    async def _append(self, waypoint: Waypoint) -> None:
        self._waypoints.append(waypoint)
        await self.orchestrator.on_waypoints_changed(self.waypoints)

    def _quote_for(self, distance: DistanceResult) -> TripQuote:
        return TripQuote(
            kilometers=distance.kilometers,
            method=distance.method,
            cost=trip_cost(distance.kilometers, self.cost_per_km),
            currency=self.currency,
        )

    def _publish_quote(self, distance: DistanceResult) -> None:
        if self.on_quote is not None:
            self.on_quote(self._quote_for(distance))
