"""Actuator endpoints for platform health monitoring. No auth, no rate limit."""

from fastapi import APIRouter, Depends

from app.dependencies import get_health_service
from app.services.health import HealthService

router = APIRouter(prefix="/actuator", tags=["Health"])


@router.get("/health")
async def health(service: HealthService = Depends(get_health_service)):
    """Basic UP/DOWN status."""
    return await service.get_basic_health()


@router.get("/health/liveness")
async def liveness(service: HealthService = Depends(get_health_service)):
    return await service.get_detailed_health()


@router.get("/health/readiness")
async def readiness(service: HealthService = Depends(get_health_service)):
    return await service.get_readiness_health()


@router.get("/info")
async def info(service: HealthService = Depends(get_health_service)):
    return await service.get_info()
