"""Health check endpoint with database and revocation store checks.

Accessible without authentication.
"""

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

from football_auth.core import check_db_connection

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    revocation_store: str


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        status.HTTP_200_OK: {"description": "Service is healthy"},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"description": "Service is unhealthy"},
    },
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Health check endpoint.

    Returns 503 if the database or the revocation store is unreachable,
    since no token can be safely accepted without the latter.
    """
    db_healthy = await check_db_connection()
    store_healthy = await request.app.state.revocation_store.ping()
    healthy = db_healthy and store_healthy

    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=request.app.state.settings.app_version,
        database="connected" if db_healthy else "disconnected",
        revocation_store="connected" if store_healthy else "disconnected",
    )
