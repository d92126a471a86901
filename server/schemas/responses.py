"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class PipelineResponseDTO(BaseModel):
    request_id: str
    success: bool
    data: Any = None
    provider_used: str | None = None
    error: str | None = None
    detail: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: str

    @classmethod
    def from_pipeline_result(cls, result, request_id: str, timestamp: str):
        """Convert PipelineResult to DTO."""
        payload = result.to_dict()
        return cls(
            request_id=request_id,
            success=payload["success"],
            data=payload["data"],
            provider_used=payload["providerUsed"],
            error=payload["error"],
            detail=payload["detail"],
            metadata=payload["metadata"],
            timestamp=timestamp,
        )


class ProviderStatusDTO(BaseModel):
    provider: str
    configured: bool


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
    providers: dict[str, list[ProviderStatusDTO]] = Field(default_factory=dict)
