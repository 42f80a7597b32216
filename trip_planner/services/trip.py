from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from uuid import uuid4

from trip_planner.core.enums import AddressRole, DistanceMethod
from trip_planner.services.geocoding import AddressResolver
from trip_planner.services.geometry import Coordinate
from trip_planner.services.routing import DistanceResult, RouteDistanceEngine

logger = logging.getLogger(__name__)


def new_waypoint_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class Waypoint:
    coordinate: Coordinate
    label: str | None = None
    id: str = field(default_factory=new_waypoint_id)


@dataclass(slots=True)
class TripAddressState:
    start_text: str = ""
    end_text: str = ""
    start_coordinate: Coordinate | None = None
    end_coordinate: Coordinate | None = None


@dataclass(frozen=True, slots=True)
class TripQuote:
    kilometers: float
    method: DistanceMethod
    cost: float
    currency: str


def trip_cost(kilometers: float, cost_per_km: float) -> float:
    return kilometers * cost_per_km


class TripDistanceOrchestrator:
    """Keeps the trip distance in step with the start/end addresses and the waypoints.

    Every trigger recomputes from scratch: changed addresses are re-resolved,
    then the path [start] + waypoints + [end] is measured if it has at least
    two points. With fewer points nothing is published and the previous
    distance stays in place.

    Resolutions are not cancelled when a newer commit arrives; whichever
    response lands last is the one kept.
    """

    def __init__(
        self,
        resolver: AddressResolver,
        engine: RouteDistanceEngine,
        *,
        on_distance: Callable[[DistanceResult], None] | None = None,
    ) -> None:
        self.resolver = resolver
        self.engine = engine
        self.on_distance = on_distance
        self.addresses = TripAddressState()
        self._waypoints: tuple[Waypoint, ...] = ()
        self._distance: DistanceResult | None = None

    @property
    def waypoints(self) -> tuple[Waypoint, ...]:
        return self._waypoints

    @property
    def distance(self) -> DistanceResult | None:
        return self._distance

    @property
    def distance_km(self) -> float:
        return self._distance.kilometers if self._distance is not None else 0.0

    async def on_address_committed(self, role: AddressRole, text: str) -> None:
        current = self.addresses.start_text if role is AddressRole.START else self.addresses.end_text
        if text != current:
            if role is AddressRole.START:
                self.addresses.start_text = text
            else:
                self.addresses.end_text = text
            coordinate = await self.resolver.resolve(text)
            if role is AddressRole.START:
                self.addresses.start_coordinate = coordinate
            else:
                self.addresses.end_coordinate = coordinate
            logger.info(
                "Address committed",
                extra={"role": role.value, "resolved": coordinate is not None},
            )
        await self._recompute()

    async def on_start_address_committed(self, text: str) -> None:
        await self.on_address_committed(AddressRole.START, text)

    async def on_end_address_committed(self, text: str) -> None:
        await self.on_address_committed(AddressRole.END, text)

    async def on_waypoints_changed(self, waypoints: Sequence[Waypoint]) -> None:
        self._waypoints = tuple(waypoints)
        await self._recompute()

    def ordered_coordinates(self) -> list[Coordinate]:
        coordinates: list[Coordinate] = []
        if self.addresses.start_coordinate is not None:
            coordinates.append(self.addresses.start_coordinate)
        coordinates.extend(waypoint.coordinate for waypoint in self._waypoints)
        if self.addresses.end_coordinate is not None:
            coordinates.append(self.addresses.end_coordinate)
        return coordinates

    async def _recompute(self) -> None:
        coordinates = self.ordered_coordinates()
        if len(coordinates) < 2:
            logger.debug("Not enough points for a distance", extra={"points": len(coordinates)})
            return
        result = await self.engine.compute_distance_km(coordinates)
        self._distance = result
        logger.info(
            "Trip distance computed",
            extra={"points": len(coordinates), "kilometers": round(result.kilometers, 3), "method": result.method.value},
        )
        if self.on_distance is not None:
            self.on_distance(result)
