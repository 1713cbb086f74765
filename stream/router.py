"""Stream status API router."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from core.dependencies import get_stream_status_service
from stream.status import StreamStatusService

router = APIRouter(prefix="/stream", tags=["stream"])


class StreamStatusResponse(BaseModel):
    live: bool


@router.get(
    "/status",
    response_model=StreamStatusResponse,
    summary="Whether the stream is live",
)
async def get_stream_status(
    use_cache: bool = Query(True, description="Allow a recently cached answer"),
    service: StreamStatusService = Depends(get_stream_status_service),
) -> StreamStatusResponse:
    """Check the uptime service. Failures to verify report not live."""
    return StreamStatusResponse(live=await service.check(use_cache=use_cache))
