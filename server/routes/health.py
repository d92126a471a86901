"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from server.dependencies import get_pipeline
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check(pipeline=Depends(get_pipeline)):
    """Health check endpoint. Also reports which chain entries have credentials."""
    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version="1.0.0",
        providers=pipeline.provider_status(),
    )
