"""Football Auth API Router - aggregates all API routes."""

from fastapi import APIRouter

from football_auth.api import auth

# Main API router - all routes will be prefixed with /api
api_router = APIRouter(prefix="/api")

api_router.include_router(auth.router)

__all__ = ["api_router"]
