from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from trip_planner.core.exceptions import InvalidCoordinateError

EARTH_RADIUS_KM = 6371.0


def _is_valid_lat_lon(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        try:
            lat = float(self.lat)
            lon = float(self.lon)
        except (TypeError, ValueError) as exc:
            raise InvalidCoordinateError(f"Coordinate is not numeric: ({self.lat!r}, {self.lon!r})") from exc
        if not (math.isfinite(lat) and math.isfinite(lon)) or not _is_valid_lat_lon(lat, lon):
            raise InvalidCoordinateError(f"Coordinate out of range: ({lat}, {lon})")
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lon", lon)


def great_circle_km(a: Coordinate, b: Coordinate) -> float:
    """Haversine distance between two coordinates on a sphere of radius 6371 km."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.lon - a.lon)

    x = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    # rounding can push x a hair above 1 for antipodal points
    x = min(1.0, max(0.0, x))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(x))


def path_great_circle_km(coordinates: Sequence[Coordinate]) -> float:
    """Sum of great-circle legs between consecutive coordinates, in the given order."""
    return sum(great_circle_km(a, b) for a, b in zip(coordinates, coordinates[1:]))
