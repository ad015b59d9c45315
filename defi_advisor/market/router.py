import asyncio

from fastapi import APIRouter

from defi_advisor.cache import ResponseCache
from defi_advisor.dependencies import CacheDep, MarketServiceDep, ProtocolServiceDep
from defi_advisor.market.schemas import MarketData, MarketResponse

router = APIRouter()


@router.get("/market", response_model=MarketResponse)
async def get_market(
    market: MarketServiceDep,
    protocols: ProtocolServiceDep,
    cache: CacheDep,
) -> MarketResponse:
    async def load() -> MarketResponse:
        snapshot, protocol_snapshot = await asyncio.gather(
            market.get_snapshot(), protocols.get_snapshot()
        )
        return MarketResponse(
            data=MarketData(
                eth_price=snapshot.eth_price_usd,
                gas_price=snapshot.gas_price_gwei,
                market_trend=snapshot.trend,
                market_details=snapshot,
                protocol_data=protocol_snapshot,
            )
        )

    return await cache.get_or_set(ResponseCache.key("GET", "/market"), load)
