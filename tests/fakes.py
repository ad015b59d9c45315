"""In-memory stand-ins for the upstream data sources."""

import asyncio

from defi_advisor.exceptions import UpstreamError
from defi_advisor.market.providers.base import (
    EthPriceProvider,
    GasPriceProvider,
    PriceHistoryProvider,
)
from defi_advisor.market.schemas import PriceHistory
from defi_advisor.protocols.providers.base import LendingRateProvider, PoolRateProvider
from defi_advisor.protocols.schemas import LendingRate, PoolRate

WALLET = "0x" + "ab" * 20
AAVE_POOL = "0x87870bca3f3fd6335c3f4ce8392d69350b4fa4e2"


class FakePriceSource(EthPriceProvider, GasPriceProvider):
    def __init__(self, price: float = 2000.0, gas: float = 20.0, fail: bool = False, delay: float = 0.0):
        self.name = "fake-chain"
        self.price = price
        self.gas = gas
        self.fail = fail
        self.delay = delay

    async def _maybe_fail(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise UpstreamError(self.name, "unreachable")

    async def get_eth_price(self) -> float:
        await self._maybe_fail()
        return self.price

    async def get_gas_price(self) -> float:
        await self._maybe_fail()
        return self.gas


class FakeHistory(PriceHistoryProvider):
    name = "fake-history"

    def __init__(self, closes: list[float] | None = None, fail: bool = False):
        self.closes = closes or []
        self.fail = fail

    async def get_history(self, symbol: str, days: int) -> PriceHistory:
        if self.fail:
            raise UpstreamError(self.name, "no data")
        return PriceHistory(symbol=symbol, closes=self.closes, source=self.name)


class FakeLending(LendingRateProvider):
    def __init__(self, rates: dict[str, LendingRate] | None = None, name: str = "fake-lending"):
        self.name = name
        self.rates = rates

    async def get_rates(self) -> dict[str, LendingRate]:
        if self.rates is None:
            raise RuntimeError("rpc error")
        return self.rates


class FakePools(PoolRateProvider):
    def __init__(self, pools: list[PoolRate] | None = None, name: str = "fake-pools"):
        self.name = name
        self.pools = pools

    async def get_pools(self) -> list[PoolRate]:
        if self.pools is None:
            raise RuntimeError("http error")
        return self.pools


class FakeEtherscan:
    name = "fake-etherscan"

    def __init__(self, rows: list[dict] | None = None, fail: bool = False):
        self.rows = rows or []
        self.fail = fail

    async def get_transactions(self, address: str, limit: int = 50) -> list[dict]:
        if self.fail:
            raise UpstreamError(self.name, "rate limited")
        return self.rows[:limit]


class FakeChain:
    def __init__(self, balances: dict[str, int] | None = None, eth_wei: int = 0):
        self.balances = balances or {}
        self.eth_wei = eth_wei

    async def get_token_balance(self, wallet: str, token: str) -> tuple[int, int]:
        if token not in self.balances:
            raise RuntimeError("execution reverted")
        return self.balances[token], 6

    async def get_eth_balance(self, wallet: str) -> int:
        return self.eth_wei


class ExplodingLLM:
    async def ainvoke(self, messages):
        raise RuntimeError("provider returned 503")


class SlowLLM:
    async def ainvoke(self, messages):
        await asyncio.sleep(5)


def tx_row(to: str, tx_input: str = "0xabcdef", gas_used: int = 100_000, gas_price: int = 20 * 10**9) -> dict:
    return {
        "hash": "0x" + "1" * 64,
        "from": WALLET,
        "to": to,
        "value": str(10**17),
        "gasUsed": str(gas_used),
        "gasPrice": str(gas_price),
        "timeStamp": "1700000000",
        "isError": "0",
        "input": tx_input,
    }
