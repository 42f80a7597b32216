from trip_planner.api.v1.endpoints import trip

__all__ = [
    "trip",
]
