"""Discovery endpoint: find new catalog candidates."""

import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from pipeline.facade import CatalogPipeline
from server.dependencies import get_pipeline
from server.disconnect import cancel_on_disconnect
from server.schemas.requests import DiscoverRequest
from server.schemas.responses import PipelineResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Discovery"])


@router.post("/discover", response_model=PipelineResponseDTO)
async def discover(
    body: DiscoverRequest, request: Request, pipeline: CatalogPipeline = Depends(get_pipeline)
):
    """
    Run discovery and return validated candidate records.

    Pipeline failures are part of the payload (success=false), not HTTP errors.
    The run is canceled when the client disconnects.
    """
    request_id = str(uuid.uuid4())
    logger.info(
        "Discover request received",
        extra={"extra_fields": {"request_id": request_id, "exclusions": len(body.exclusion_titles)}},
    )

    async with cancel_on_disconnect(request) as cancel_event:
        result = await pipeline.discover(body.exclusion_titles, cancel_event=cancel_event)

    return PipelineResponseDTO.from_pipeline_result(
        result, request_id, datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )
