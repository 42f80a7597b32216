from fastapi import APIRouter

from trip_planner.api.v1.endpoints import trip

api_router = APIRouter()
api_router.include_router(trip.router)
