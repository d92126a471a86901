"""Enrichment endpoint: generate explanatory content for one entry."""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from pipeline.facade import CatalogPipeline
from server.dependencies import get_pipeline
from server.disconnect import cancel_on_disconnect
from server.schemas.requests import EnrichmentRequest
from server.schemas.responses import PipelineResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Enrichment"])


@router.post("/enrichment", response_model=PipelineResponseDTO)
async def enrichment(
    body: EnrichmentRequest, request: Request, pipeline: CatalogPipeline = Depends(get_pipeline)
):
    request_id = str(uuid.uuid4())
    logger.info(
        "Enrichment request received",
        extra={"extra_fields": {"request_id": request_id, "title": body.title[:80]}},
    )

    async with cancel_on_disconnect(request) as cancel_event:
        result = await pipeline.generate_enrichment(
            body.title, body.question, body.variant_a, body.variant_b, cancel_event=cancel_event
        )

    return PipelineResponseDTO.from_pipeline_result(
        result, request_id, datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )
