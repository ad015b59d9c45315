import asyncio
from datetime import UTC, datetime

import structlog

from defi_advisor import fallbacks
from defi_advisor.fetching import first_available
from defi_advisor.market.service import MarketService
from defi_advisor.protocols.providers.base import LendingRateProvider, PoolRateProvider
from defi_advisor.protocols.schemas import LendingRate, PoolRate, ProtocolSnapshot

logger = structlog.get_logger()


def fallback_lending(dataset: dict[str, dict]) -> dict[str, LendingRate]:
    return {asset: LendingRate(**values) for asset, values in dataset.items()}


def fallback_pools(dataset: list[dict]) -> list[PoolRate]:
    return [PoolRate(**values) for values in dataset]


def fallback_snapshot(eth_price: float = fallbacks.ETH_PRICE_USD) -> ProtocolSnapshot:
    """The complete fallback dataset, used when every protocol source is unavailable."""
    return ProtocolSnapshot(
        aave=fallback_lending(fallbacks.AAVE_RATES),
        compound=fallback_lending(fallbacks.COMPOUND_RATES),
        uniswap=fallback_pools(fallbacks.UNISWAP_POOLS),
        curve=fallback_pools(fallbacks.CURVE_POOLS),
        lido=fallback_pools(fallbacks.STAKING_POOLS),
        eth_price=eth_price,
        timestamp=datetime.now(UTC).isoformat(),
        sources={
            key: "fallback" for key in ("aave", "compound", "uniswap", "curve", "lido", "ethPrice")
        },
    )


class ProtocolService:
    """Aggregates lending and pool rates; each source falls back independently."""

    def __init__(
        self,
        market: MarketService,
        aave: LendingRateProvider | None,
        compound: LendingRateProvider | None,
        uniswap: PoolRateProvider | None,
        curve: PoolRateProvider | None,
        lido: PoolRateProvider | None = None,
        timeout: float = 20.0,
    ) -> None:
        self._market = market
        self._aave = aave
        self._compound = compound
        self._uniswap = uniswap
        self._curve = curve
        self._lido = lido
        self._timeout = timeout

    async def _lending(
        self, provider: LendingRateProvider | None, fallback: dict[str, dict]
    ) -> tuple[dict[str, LendingRate], str]:
        attempts = [(provider.name, provider.get_rates)] if provider else []
        return await first_available(
            "lending_rates", attempts, self._timeout, fallback_lending(fallback)
        )

    async def _pools(
        self, provider: PoolRateProvider | None, fallback: list[dict]
    ) -> tuple[list[PoolRate], str]:
        attempts = [(provider.name, provider.get_pools)] if provider else []
        return await first_available(
            "pool_rates", attempts, self._timeout, fallback_pools(fallback)
        )

    async def get_snapshot(self) -> ProtocolSnapshot:
        (
            (aave, aave_src),
            (compound, compound_src),
            (uniswap, uniswap_src),
            (curve, curve_src),
            (lido, lido_src),
            (eth_price, price_src),
        ) = await asyncio.gather(
            self._lending(self._aave, fallbacks.AAVE_RATES),
            self._lending(self._compound, fallbacks.COMPOUND_RATES),
            self._pools(self._uniswap, fallbacks.UNISWAP_POOLS),
            self._pools(self._curve, fallbacks.CURVE_POOLS),
            self._pools(self._lido, fallbacks.STAKING_POOLS),
            self._market.get_eth_price(),
        )

        sources = {
            "aave": aave_src,
            "compound": compound_src,
            "uniswap": uniswap_src,
            "curve": curve_src,
            "lido": lido_src,
            "ethPrice": price_src,
        }
        logger.info("protocol_snapshot_built", sources=sources)
        return ProtocolSnapshot(
            aave=aave,
            compound=compound,
            uniswap=uniswap,
            curve=curve,
            lido=lido,
            eth_price=eth_price,
            timestamp=datetime.now(UTC).isoformat(),
            sources=sources,
        )
