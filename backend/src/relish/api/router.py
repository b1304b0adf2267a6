"""API router aggregating all routes."""

from fastapi import APIRouter

from relish.api.routes import health

api_router = APIRouter()

api_router.include_router(health.router)
