import asyncio

import structlog
from web3 import AsyncWeb3

from defi_advisor.contracts import AAVE_V3_POOL, AAVE_V3_POOL_ABI, TOKENS
from defi_advisor.protocols.providers.base import LendingRateProvider
from defi_advisor.protocols.schemas import LendingRate

logger = structlog.get_logger()

RAY = 10**27
SECONDS_PER_YEAR = 31_536_000
_LTV_MASK = 0xFFFF

# asset label -> reserve token
_RESERVES = {"DAI": TOKENS["DAI"], "USDC": TOKENS["USDC"], "ETH": TOKENS["WETH"]}


def ray_rate_to_apy(rate_ray: int) -> float:
    """Convert an Aave per-year ray rate (APR) to a per-second-compounded APY in percent."""
    apr = rate_ray / RAY
    return ((1 + apr / SECONDS_PER_YEAR) ** SECONDS_PER_YEAR - 1) * 100


def ltv_from_configuration(configuration: int) -> float:
    """Bits 0-15 of the reserve configuration hold the LTV in basis points."""
    return (configuration & _LTV_MASK) / 10_000


class AaveV3Provider(LendingRateProvider):
    name = "aave"

    def __init__(self, w3: AsyncWeb3) -> None:
        self._pool = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(AAVE_V3_POOL), abi=AAVE_V3_POOL_ABI
        )

    async def _reserve(self, token: str) -> LendingRate:
        data = await self._pool.functions.getReserveData(
            AsyncWeb3.to_checksum_address(token)
        ).call()
        configuration, _, liquidity_rate, _, variable_borrow_rate = data[:5]
        return LendingRate(
            supply_apy=round(ray_rate_to_apy(liquidity_rate), 4),
            borrow_apy=round(ray_rate_to_apy(variable_borrow_rate), 4),
            ltv=ltv_from_configuration(configuration),
        )

    async def get_rates(self) -> dict[str, LendingRate]:
        assets = list(_RESERVES)
        results = await asyncio.gather(*(self._reserve(_RESERVES[a]) for a in assets))
        rates = dict(zip(assets, results, strict=True))
        logger.info("aave_rates_fetched", assets=assets)
        return rates
