"""Advice endpoints: one-shot JSON and Server-Sent Events."""

from fastapi import APIRouter
from sse_starlette.sse import EventSourceResponse

from defi_advisor.advisor.schemas import AdviceRequest, AdviceResponse
from defi_advisor.dependencies import AdvisorServiceDep

router = APIRouter()


@router.post("/advice", response_model=AdviceResponse, response_model_exclude_none=True)
async def get_advice(request: AdviceRequest, service: AdvisorServiceDep) -> AdviceResponse:
    advice = await service.advise(request)
    return AdviceResponse(advice=advice)


@router.post("/advice/stream", response_class=EventSourceResponse)
async def stream_advice(request: AdviceRequest, service: AdvisorServiceDep) -> EventSourceResponse:
    """Stream pipeline progress and the final advice via Server-Sent Events."""
    return EventSourceResponse(service.advise_stream(request))
