# app/routes/__init__.py
from fastapi import APIRouter
from app.routes.trip import trip_routes, scheduling


api_router = APIRouter()

# Trip routes
api_router.include_router(trip_routes.router)
api_router.include_router(scheduling.router)
