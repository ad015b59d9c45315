from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from defi_advisor.advisor.orchestrator import AdvisorPipeline
from defi_advisor.advisor.service import AdvisorService
from defi_advisor.cache import ResponseCache
from defi_advisor.main import create_app
from defi_advisor.market.service import MarketService
from defi_advisor.protocols.schemas import LendingRate, PoolRate
from defi_advisor.protocols.service import ProtocolService
from defi_advisor.resources import AppResources
from defi_advisor.simulation.service import SimulationService
from defi_advisor.wallet.service import WalletService
from tests.fakes import (
    FakeChain,
    FakeEtherscan,
    FakeHistory,
    FakeLending,
    FakePools,
    FakePriceSource,
)


def build_test_resources(
    *,
    price_source: FakePriceSource | None = None,
    history: FakeHistory | None = None,
    aave: FakeLending | None = None,
    compound: FakeLending | None = None,
    uniswap: FakePools | None = None,
    curve: FakePools | None = None,
    lido: FakePools | None = None,
    etherscan: FakeEtherscan | None = None,
    chain: FakeChain | None = None,
    llm=None,
    llm_timeout: float = 30.0,
    request_timeout: float = 50.0,
    source_timeout: float = 8.0,
) -> AppResources:
    """Resources wired to fakes; any source left as None fails and falls back."""
    source = price_source or FakePriceSource(fail=True)
    market = MarketService(
        [source], [source], history or FakeHistory(fail=True),
        price_timeout=source_timeout, history_timeout=source_timeout,
    )
    protocols = ProtocolService(
        market,
        aave=aave or FakeLending(),
        compound=compound or FakeLending(),
        uniswap=uniswap or FakePools(),
        curve=curve or FakePools(),
        lido=lido or FakePools(),
        timeout=source_timeout,
    )
    wallet = WalletService(etherscan or FakeEtherscan(fail=True), chain or FakeChain())
    pipeline = AdvisorPipeline(market, protocols, wallet, llm, llm_timeout)
    return AppResources(
        cache=ResponseCache(),
        market=market,
        protocols=protocols,
        wallet=wallet,
        simulation=SimulationService(market, protocols),
        advisor=AdvisorService(pipeline, request_timeout),
        llm=llm,
    )


@pytest.fixture()
def live_sources() -> dict:
    """Healthy upstreams with round numbers."""
    return {
        "price_source": FakePriceSource(price=2000.0, gas=20.0),
        "aave": FakeLending(
            {
                "USDC": LendingRate(supply_apy=4.0, borrow_apy=5.5, ltv=0.8),
                "ETH": LendingRate(supply_apy=1.0, borrow_apy=2.5, ltv=0.8),
            }
        ),
        "compound": FakeLending({"DAI": LendingRate(supply_apy=3.0, borrow_apy=4.5, ltv=0.75)}),
        "uniswap": FakePools(
            [PoolRate(name="ETH-USDC", apy=12.0, fee_pct=0.3, volume_usd=1_000_000, liquidity_usd=10_000_000)]
        ),
        "curve": FakePools([PoolRate(name="3pool", apy=3.5)]),
        "lido": FakePools([PoolRate(name="stETH", apy=3.6)]),
    }


@pytest.fixture()
def fallback_resources() -> AppResources:
    return build_test_resources()


@pytest.fixture()
def app(fallback_resources: AppResources) -> FastAPI:
    return create_app(fallback_resources)


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def advice_body() -> dict:
    return {"riskTolerance": 2, "timeHorizon": 12, "capital": 10000, "experience": "beginner"}
