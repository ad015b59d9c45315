"""Reads from an Ethereum JSON-RPC node through web3."""

import structlog
from web3 import AsyncWeb3

from defi_advisor.contracts import CHAINLINK_AGGREGATOR_ABI, CHAINLINK_ETH_USD_FEED, ERC20_ABI
from defi_advisor.exceptions import UpstreamError
from defi_advisor.market.providers.base import EthPriceProvider, GasPriceProvider

logger = structlog.get_logger()

_WEI_PER_GWEI = 10**9


class OnChainProvider(EthPriceProvider, GasPriceProvider):
    """Chainlink ETH/USD feed, node gas price and ERC-20 balances."""

    name = "chainlink"

    def __init__(self, w3: AsyncWeb3) -> None:
        self._w3 = w3

    async def get_eth_price(self) -> float:
        feed = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(CHAINLINK_ETH_USD_FEED),
            abi=CHAINLINK_AGGREGATOR_ABI,
        )
        round_data = await feed.functions.latestRoundData().call()
        decimals = await feed.functions.decimals().call()
        answer = round_data[1]
        if answer <= 0:
            raise UpstreamError(self.name, f"non-positive answer {answer}")
        price = answer / 10**decimals
        logger.info("eth_price_fetched", source=self.name, price=price)
        return price

    async def get_gas_price(self) -> float:
        wei = await self._w3.eth.gas_price
        gwei = wei / _WEI_PER_GWEI
        logger.info("gas_price_fetched", source="rpc", gwei=gwei)
        return gwei

    async def get_token_balance(self, wallet: str, token_address: str) -> tuple[int, int]:
        """Return (raw balance, decimals) of an ERC-20 token held by ``wallet``."""
        token = self._w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(token_address),
            abi=ERC20_ABI,
        )
        owner = AsyncWeb3.to_checksum_address(wallet)
        raw = await token.functions.balanceOf(owner).call()
        decimals = await token.functions.decimals().call()
        return raw, decimals

    async def get_eth_balance(self, wallet: str) -> int:
        return await self._w3.eth.get_balance(AsyncWeb3.to_checksum_address(wallet))
