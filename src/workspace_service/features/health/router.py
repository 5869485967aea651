"""API routes for the health module."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from workspace_service.app.dependencies import get_health_service

from .schemas import HealthCheckResponse
from .service import HealthService

router = APIRouter()


@router.get(
    "",
    response_model=HealthCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Service health status",
    responses={
        status.HTTP_503_SERVICE_UNAVAILABLE: {
            "model": HealthCheckResponse,
            "description": "The database or the cache is unreachable.",
        }
    },
)
async def read_health(
    response: Response,
    service: Annotated[HealthService, Depends(get_health_service)],
) -> HealthCheckResponse:
    """Report database and cache connectivity."""
    result = await service.status()
    if result.status != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return result
