from __future__ import annotations

from fastapi import Request

from trip_planner.services.session import PlanningSession


async def get_planning_session(request: Request) -> PlanningSession:
    session = getattr(request.app.state, "planning_session", None)
    if session is None:
        session = PlanningSession.from_settings()
        request.app.state.planning_session = session
    return session
