from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from trip_planner.core.enums import DistanceMethod
from trip_planner.services.session import TripSnapshot
from trip_planner.services.suggestions import Suggestion, SuggestionState
from trip_planner.services.trip import Waypoint


class CoordinatePoint(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class SuggestionItem(BaseModel):
    id: str
    display_label: str
    primary_label: str
    lat: float
    lon: float
    category: str

    @classmethod
    def from_suggestion(cls, suggestion: Suggestion) -> "SuggestionItem":
        return cls(
            id=suggestion.id,
            display_label=suggestion.display_label,
            primary_label=suggestion.primary_label,
            lat=suggestion.coordinate.lat,
            lon=suggestion.coordinate.lon,
            category=suggestion.category,
        )


class SuggestionStateResponse(BaseModel):
    suggestions: list[SuggestionItem]
    is_loading: bool
    error: str | None = None

    @classmethod
    def from_state(cls, state: SuggestionState) -> "SuggestionStateResponse":
        return cls(
            suggestions=[SuggestionItem.from_suggestion(item) for item in state.suggestions],
            is_loading=state.is_loading,
            error=state.error,
        )


class QueryRequest(BaseModel):
    text: str = Field(max_length=512)


class AddressCommitRequest(BaseModel):
    text: str = Field(max_length=512)


class WaypointCreateRequest(BaseModel):
    suggestion_id: str | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)

    @model_validator(mode="after")
    def check_source(self) -> "WaypointCreateRequest":
        has_point = self.lat is not None and self.lon is not None
        if self.suggestion_id is None and not has_point:
            raise ValueError("Provide either suggestion_id or both lat and lon")
        if self.suggestion_id is not None and (self.lat is not None or self.lon is not None):
            raise ValueError("suggestion_id cannot be combined with lat/lon")
        return self


class WaypointItem(BaseModel):
    id: str
    lat: float
    lon: float
    label: str | None = None

    @classmethod
    def from_waypoint(cls, waypoint: Waypoint) -> "WaypointItem":
        return cls(id=waypoint.id, lat=waypoint.coordinate.lat, lon=waypoint.coordinate.lon, label=waypoint.label)


class TripQuoteResponse(BaseModel):
    kilometers: float
    method: DistanceMethod
    cost: float
    currency: str


class TripStateResponse(BaseModel):
    start_text: str
    end_text: str
    start_point: CoordinatePoint | None = None
    end_point: CoordinatePoint | None = None
    waypoints: list[WaypointItem]
    quote: TripQuoteResponse | None = None

    @classmethod
    def from_snapshot(cls, snapshot: TripSnapshot) -> "TripStateResponse":
        addresses = snapshot.addresses
        start = addresses.start_coordinate
        end = addresses.end_coordinate
        quote = snapshot.quote
        return cls(
            start_text=addresses.start_text,
            end_text=addresses.end_text,
            start_point=CoordinatePoint(lat=start.lat, lon=start.lon) if start else None,
            end_point=CoordinatePoint(lat=end.lat, lon=end.lon) if end else None,
            waypoints=[WaypointItem.from_waypoint(item) for item in snapshot.waypoints],
            quote=(
                TripQuoteResponse(
                    kilometers=quote.kilometers,
                    method=quote.method,
                    cost=quote.cost,
                    currency=quote.currency,
                )
                if quote
                else None
            ),
        )
