from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from trip_planner.api.deps import get_planning_session
from trip_planner.core.enums import AddressRole
from trip_planner.core.responses import success_response
from trip_planner.schemas.trip import (
    AddressCommitRequest,
    QueryRequest,
    SuggestionStateResponse,
    TripStateResponse,
    WaypointCreateRequest,
    WaypointItem,
)
from trip_planner.services.session import PlanningSession

router = APIRouter(prefix="/trip", tags=["Trip"])


def _trip_data(session: PlanningSession) -> dict:
    return TripStateResponse.from_snapshot(session.snapshot()).model_dump(mode="json")


@router.get("")
async def trip_state(request: Request, session: PlanningSession = Depends(get_planning_session)):
    return success_response(data=_trip_data(session), request=request)


@router.post("/query")
async def query_changed(
    request: Request,
    payload: QueryRequest,
    session: PlanningSession = Depends(get_planning_session),
):
    session.on_query_changed(payload.text)
    data = SuggestionStateResponse.from_state(session.fetcher.state)
    return success_response(data=data.model_dump(), request=request)


@router.get("/suggestions")
async def current_suggestions(request: Request, session: PlanningSession = Depends(get_planning_session)):
    data = SuggestionStateResponse.from_state(session.fetcher.state)
    return success_response(data=data.model_dump(), request=request)


@router.put("/start")
async def commit_start_address(
    request: Request,
    payload: AddressCommitRequest,
    session: PlanningSession = Depends(get_planning_session),
):
    await session.commit_address(AddressRole.START, payload.text)
    return success_response(data=_trip_data(session), request=request)


@router.put("/end")
async def commit_end_address(
    request: Request,
    payload: AddressCommitRequest,
    session: PlanningSession = Depends(get_planning_session),
):
    await session.commit_address(AddressRole.END, payload.text)
    return success_response(data=_trip_data(session), request=request)


@router.post("/waypoints", status_code=status.HTTP_201_CREATED)
async def add_waypoint(
    request: Request,
    payload: WaypointCreateRequest,
    session: PlanningSession = Depends(get_planning_session),
):
    if payload.suggestion_id is not None:
        waypoint = await session.add_waypoint_from_suggestion(payload.suggestion_id)
    else:
        waypoint = await session.add_waypoint_from_map(payload.lat, payload.lon)
    data = {
        "waypoint": WaypointItem.from_waypoint(waypoint).model_dump(),
        "trip": _trip_data(session),
    }
    return success_response(data=data, request=request)


@router.delete("/waypoints/{waypoint_id}")
async def remove_waypoint(
    request: Request,
    waypoint_id: str,
    session: PlanningSession = Depends(get_planning_session),
):
    await session.remove_waypoint(waypoint_id)
    return success_response(data=_trip_data(session), request=request)
