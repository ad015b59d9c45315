import pytest
from httpx import ASGITransport, AsyncClient

from defi_advisor import fallbacks
from defi_advisor.main import create_app
from tests.conftest import build_test_resources
from tests.fakes import AAVE_POOL, WALLET, FakeChain, FakeEtherscan, tx_row


def _error(response) -> dict:
    body = response.json()
    assert body["success"] is False
    return body


class TestMeta:
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_root_banner(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["name"] == "DeFi Advisor API"


class TestAdvice:
    async def test_conservative_advice(self, client, advice_body):
        response = await client.post("/api/advice", json=advice_body)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        advice = body["advice"]
        assert advice["riskProfile"] == "conservative"
        assert advice["source"] == "fallback"
        assert advice["summary"].startswith("Based on your conservative risk profile")
        assert [(o["protocol"], o["asset"]) for o in advice["topOpportunities"]] == [
            ("Aave", "USDC"),
            ("Aave", "DAI"),
            ("Compound", "USDC"),
            ("Compound", "DAI"),
            ("Curve", "3pool"),
        ]
        assert all(o["suitable"] for o in advice["topOpportunities"])
        assert "impermanentLossPct" not in advice["topOpportunities"][0]
        assert advice["expectedReturns"] == {"min": 5, "max": 8, "timeframeMonths": 12}
        assert advice["marketInsights"]["trend"] == "neutral"
        assert set(advice["gasCosts"]) == {"swap", "lending", "liquidityProviding"}
        assert advice["disclaimer"]

    async def test_conservative_allocation_favours_stablecoins(self, client, advice_body):
        response = await client.post("/api/advice", json=advice_body)

        allocation = response.json()["advice"]["allocation"]
        assert allocation["Stablecoins"] >= allocation["Ethereum"] >= allocation["Altcoins"]
        assert allocation["Stablecoins"] + allocation["Ethereum"] + allocation["Altcoins"] == 100
        assert allocation["Staking ETH"] == "4-6"

    async def test_aggressive_advice_includes_impermanent_loss(self, client, advice_body):
        response = await client.post("/api/advice", json={**advice_body, "riskTolerance": 9})

        advice = response.json()["advice"]
        assert advice["riskProfile"] == "aggressive"
        uniswap = [o for o in advice["topOpportunities"] if o["protocol"] == "Uniswap"]
        assert uniswap and all(o["impermanentLossPct"] == pytest.approx(0.11) for o in uniswap)
        assert all(o["riskScore"] >= 5 for o in advice["topOpportunities"])

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"riskTolerance": 15}, "Risk tolerance must be a number between 1 and 10"),
            ({"riskTolerance": "abc"}, "Risk tolerance must be a number between 1 and 10"),
            ({"capital": 0}, "Capital must be a positive number"),
            ({"timeHorizon": -3}, "Time horizon must be a positive number of months"),
            ({"experience": "guru"}, "Experience must be one of"),
            ({"walletAddress": "0x12"}, "Invalid Ethereum address format"),
        ],
    )
    async def test_invalid_profile(self, client, advice_body, overrides, message):
        response = await client.post("/api/advice", json={**advice_body, **overrides})

        assert response.status_code == 400
        body = _error(response)
        assert message in body["error"]
        assert body["code"] == "VALIDATION_ERROR"

    async def test_missing_field(self, client, advice_body):
        del advice_body["capital"]

        response = await client.post("/api/advice", json=advice_body)

        assert response.status_code == 400
        assert "capital" in _error(response)["error"]


class TestMarket:
    async def test_fallback_market_data(self, client):
        response = await client.get("/api/market")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["ethPrice"] == fallbacks.ETH_PRICE_USD
        assert data["gasPrice"] == fallbacks.GAS_PRICE_GWEI
        assert data["marketTrend"] == "neutral"
        assert data["marketDetails"]["volatilityPct"] == fallbacks.VOLATILITY_PCT
        assert data["marketDetails"]["rsi"] == fallbacks.RSI
        assert data["protocolData"]["aave"]["USDC"]["supplyApy"] == 2.7

    async def test_market_is_cached(self, live_sources):
        resources = build_test_resources(**live_sources)
        transport = ASGITransport(app=create_app(resources))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            first = (await client.get("/api/market")).json()
            live_sources["price_source"].price = 9999.0
            second = (await client.get("/api/market")).json()

        assert first == second
        assert second["data"]["ethPrice"] == 2000.0

    async def test_protocols(self, client):
        response = await client.get("/api/protocols")

        assert response.status_code == 200
        data = response.json()["data"]
        assert {"aave", "compound", "uniswap", "curve", "lido", "ethPrice", "timestamp", "sources"} <= set(data)
        assert data["uniswap"][0]["name"] == "ETH-USDC"


class TestWallet:
    async def test_invalid_address(self, client):
        response = await client.get("/api/wallet/not-an-address")

        assert response.status_code == 400
        assert _error(response)["error"] == "Invalid Ethereum address format"

    async def test_wallet_lookup(self):
        resources = build_test_resources(
            etherscan=FakeEtherscan([tx_row(AAVE_POOL)]),
            chain=FakeChain(eth_wei=10**18),
        )
        transport = ASGITransport(app=create_app(resources))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get(f"/api/wallet/{WALLET}")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["history"][0]["from"] == WALLET
        assert data["history"][0]["protocol"] == "Aave"
        assert data["balances"]["ETH"]["formatted"] == "1"
        assert "error" in data["balances"]["USDC"]
        assert data["analysis"]["protocols"] == ["Aave"]


class TestSimulation:
    async def test_unsupported_type(self, client):
        response = await client.post("/api/simulate", json={"type": "unknownOp", "params": {}})

        assert response.status_code == 400
        assert _error(response)["error"] == "Unsupported simulation type: unknownOp"

    async def test_missing_params(self, client):
        response = await client.post("/api/simulate", json={"type": "aaveDeposit"})

        assert response.status_code == 400
        assert _error(response)["error"] == "Missing simulation type or parameters"

    async def test_swap(self, client):
        response = await client.post(
            "/api/simulate",
            json={"type": "uniswapSwap", "params": {"tokenIn": "USDC", "tokenOut": "ETH", "amountIn": 3000}},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["type"] == "uniswapSwap"
        assert data["expectedAmountOut"] == pytest.approx(0.997)

    async def test_deposit(self, client):
        response = await client.post(
            "/api/simulate", json={"type": "aaveDeposit", "params": {"asset": "DAI", "amount": 500}}
        )

        assert response.status_code == 200
        assert response.json()["data"]["apy"] == 2.5
