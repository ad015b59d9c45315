from fastapi import APIRouter

from defi_advisor.cache import ResponseCache
from defi_advisor.dependencies import CacheDep, ProtocolServiceDep
from defi_advisor.protocols.schemas import ProtocolsResponse

router = APIRouter()


@router.get("/protocols", response_model=ProtocolsResponse)
async def get_protocols(service: ProtocolServiceDep, cache: CacheDep) -> ProtocolsResponse:
    async def load() -> ProtocolsResponse:
        return ProtocolsResponse(data=await service.get_snapshot())

    return await cache.get_or_set(ResponseCache.key("GET", "/protocols"), load)
