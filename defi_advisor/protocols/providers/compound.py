import asyncio

import structlog
from web3 import AsyncWeb3

from defi_advisor.contracts import COMPOUND_CTOKEN_ABI, COMPOUND_CTOKENS
from defi_advisor.protocols.providers.base import LendingRateProvider
from defi_advisor.protocols.schemas import LendingRate

logger = structlog.get_logger()

MANTISSA = 10**18
BLOCKS_PER_DAY = 7200  # 12s slots
DAYS_PER_YEAR = 365


def per_block_rate_to_apy(rate_per_block: int) -> float:
    """Compound's documented APY formula: daily compounding of the per-block rate."""
    daily = rate_per_block / MANTISSA * BLOCKS_PER_DAY
    return ((daily + 1) ** DAYS_PER_YEAR - 1) * 100


class CompoundV2Provider(LendingRateProvider):
    name = "compound"

    def __init__(self, w3: AsyncWeb3) -> None:
        self._ctokens = {
            asset: w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(address), abi=COMPOUND_CTOKEN_ABI
            )
            for asset, address in COMPOUND_CTOKENS.items()
        }

    async def _market(self, asset: str) -> LendingRate:
        ctoken = self._ctokens[asset]
        supply_rate, borrow_rate = await asyncio.gather(
            ctoken.functions.supplyRatePerBlock().call(),
            ctoken.functions.borrowRatePerBlock().call(),
        )
        return LendingRate(
            supply_apy=round(per_block_rate_to_apy(supply_rate), 4),
            borrow_apy=round(per_block_rate_to_apy(borrow_rate), 4),
            ltv=0.75,
        )

    async def get_rates(self) -> dict[str, LendingRate]:
        assets = list(self._ctokens)
        results = await asyncio.gather(*(self._market(a) for a in assets))
        logger.info("compound_rates_fetched", assets=assets)
        return dict(zip(assets, results, strict=True))
