from trip_planner.services.geocoding import AddressResolver, NominatimSearchProvider
from trip_planner.services.routing import OsrmRouteProvider, RouteDistanceEngine
from trip_planner.services.session import PlanningSession
from trip_planner.services.suggestions import SuggestionCache, SuggestionFetcher
from trip_planner.services.trip import TripDistanceOrchestrator

__all__ = [
    "AddressResolver",
    "NominatimSearchProvider",
    "OsrmRouteProvider",
    "RouteDistanceEngine",
    "PlanningSession",
    "SuggestionCache",
    "SuggestionFetcher",
    "TripDistanceOrchestrator",
]
