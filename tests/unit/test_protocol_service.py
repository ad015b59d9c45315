from defi_advisor import fallbacks
from defi_advisor.protocols.schemas import OpportunityType
from defi_advisor.protocols.service import fallback_snapshot
from tests.conftest import build_test_resources
from tests.fakes import FakeLending


async def test_live_sources(live_sources):
    protocols = build_test_resources(**live_sources).protocols

    snapshot = await protocols.get_snapshot()

    assert set(snapshot.aave) == {"USDC", "ETH"}
    assert snapshot.aave["USDC"].supply_apy == 4.0
    assert snapshot.uniswap[0].name == "ETH-USDC"
    assert snapshot.eth_price == 2000.0
    assert snapshot.sources == {
        "aave": "fake-lending",
        "compound": "fake-lending",
        "uniswap": "fake-pools",
        "curve": "fake-pools",
        "lido": "fake-pools",
        "ethPrice": "fake-chain",
    }


async def test_each_source_falls_back_independently(live_sources):
    live_sources["compound"] = FakeLending(None)
    protocols = build_test_resources(**live_sources).protocols

    snapshot = await protocols.get_snapshot()

    assert snapshot.sources["compound"] == "fallback"
    assert snapshot.sources["aave"] == "fake-lending"
    assert snapshot.compound["DAI"].supply_apy == fallbacks.COMPOUND_RATES["DAI"]["supply_apy"]


async def test_everything_down_matches_fallback_dataset():
    snapshot = await build_test_resources().protocols.get_snapshot()
    expected = fallback_snapshot()

    assert snapshot.aave == expected.aave
    assert snapshot.uniswap == expected.uniswap
    assert snapshot.lido == expected.lido
    assert set(snapshot.sources.values()) == {"fallback"}


def test_quotes_flatten_every_protocol():
    quotes = fallback_snapshot().quotes()

    assert len(quotes) == 13
    kinds = {(q.protocol, q.kind) for q in quotes}
    assert ("Aave", OpportunityType.lending) in kinds
    assert ("Uniswap", OpportunityType.liquidity) in kinds
    assert ("Lido", OpportunityType.staking) in kinds


def test_lookups():
    snapshot = fallback_snapshot()

    assert snapshot.lending_rate("AAVE", "usdc").supply_apy == 2.7
    assert snapshot.lending_rate("maker", "DAI") is None
    assert snapshot.find_pool("uniswap", "USDT", "ETH").name == "ETH-USDT"
    assert snapshot.find_pool("uniswap", "WBTC", "USDC") is None
