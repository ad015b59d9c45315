import pytest

from defi_advisor.exceptions import ValidationError
from defi_advisor.simulation import calculator


@pytest.fixture()
def simulation(fallback_resources):
    return fallback_resources.simulation


async def test_aave_deposit(simulation):
    result = await simulation.simulate("aaveDeposit", {"asset": "USDC", "amount": 1000, "months": 12})

    expected_final = calculator.compound_interest(1000, 2.7, 12)
    assert result["type"] == "aaveDeposit"
    assert result["apy"] == 2.7
    assert result["finalBalance"] == pytest.approx(expected_final, abs=1e-6)
    assert result["expectedInterestUsd"] == pytest.approx(expected_final - 1000, abs=0.01)
    assert result["healthFactor"] == "N/A (deposit only)"
    assert result["gas"] == {"gasUnits": 250_000, "gasPriceGwei": 50.0, "costEth": 0.0125, "costUsd": 37.5}
    assert result["timestamp"]


async def test_weth_deposit_uses_eth_rate_and_price(simulation):
    result = await simulation.simulate("aaveDeposit", {"asset": "WETH", "amount": 2})

    assert result["apy"] == 0.5
    assert result["months"] == 12
    interest = calculator.compound_interest(2, 0.5, 12) - 2
    assert result["expectedInterestUsd"] == pytest.approx(interest * 3000, abs=0.01)


async def test_aave_borrow(simulation):
    result = await simulation.simulate(
        "aaveBorrow",
        {"asset": "USDC", "collateralAsset": "ETH", "collateralAmount": 1, "borrowAmount": 1000},
    )

    assert result["collateralValueUsd"] == 3000
    assert result["borrowValueUsd"] == 1000
    assert result["ltv"] == pytest.approx(33.33)
    assert result["maxLtv"] == 80
    assert result["liquidationThreshold"] == 85
    assert result["healthFactor"] == pytest.approx(2.55)
    assert result["maxBorrowUsd"] == pytest.approx(1400)
    assert result["annualInterestUsd"] == pytest.approx(41.0)
    assert result["liquidationRisk"] == 0
    assert result["canBorrow"] is True


async def test_aave_borrow_over_limit(simulation):
    result = await simulation.simulate(
        "aaveBorrow",
        {"asset": "DAI", "collateralAsset": "ETH", "collateralAmount": 1, "borrowAmount": 2700},
    )

    assert result["canBorrow"] is False
    assert result["maxBorrowUsd"] == 0
    assert result["liquidationRisk"] > 0


async def test_uniswap_swap(simulation):
    result = await simulation.simulate("uniswapSwap", {"tokenIn": "ETH", "tokenOut": "USDC", "amountIn": 1})

    assert result["feePct"] == pytest.approx(0.3)
    assert result["expectedAmountOut"] == pytest.approx(2991)
    assert result["minimumAmountOut"] == pytest.approx(2991 * 0.995)
    assert result["feeUsd"] == pytest.approx(9.0)
    assert result["gas"]["gasUnits"] == 150_000


async def test_uniswap_swap_on_low_fee_tier(simulation):
    result = await simulation.simulate(
        "uniswapSwap", {"tokenIn": "USDC", "tokenOut": "ETH", "amountIn": 3000, "fee": 500}
    )

    assert result["feePct"] == pytest.approx(0.05)
    assert result["expectedAmountOut"] == pytest.approx(0.9995)
    assert 0 < result["expectedAmountOut"] < 1


async def test_uniswap_liquidity(simulation):
    result = await simulation.simulate(
        "uniswapLiquidity", {"token0": "ETH", "token1": "USDC", "amount0": 1, "amount1": 3000}
    )

    assert result["pool"] == "ETH-USDC"
    assert result["positionValueUsd"] == 6000
    assert result["projectedFees30d"] == pytest.approx(45.0)
    assert result["projectedFees365d"] == pytest.approx(547.5)
    assert set(result["impermanentLoss"]) == {"-50%", "-10%", "+10%", "+50%"}
    assert all(v <= 0 for v in result["impermanentLoss"].values())
    # same per-operation gas table as the recommendation's gas costs
    assert result["gas"]["gasUnits"] == calculator.GAS_UNITS["liquidity"]
    assert result["gas"]["costUsd"] == pytest.approx(45.0)


@pytest.mark.parametrize(
    ("sim_type", "params", "message"),
    [
        (None, {"asset": "USDC"}, "Missing simulation type or parameters"),
        ("aaveDeposit", None, "Missing simulation type or parameters"),
        ("unknownOp", {}, "Unsupported simulation type: unknownOp"),
        ("aaveDeposit", {"asset": "USDC", "amount": -5}, "Invalid aaveDeposit parameter 'amount'"),
        ("aaveDeposit", {"amount": 5}, "Invalid aaveDeposit parameter 'asset'"),
        ("aaveDeposit", {"asset": "DOGE", "amount": 5}, "Unsupported asset: DOGE"),
        ("uniswapSwap", {"tokenIn": "ETH", "tokenOut": "PEPE", "amountIn": 1}, "Unsupported asset: PEPE"),
        (
            "uniswapSwap",
            {"tokenIn": "ETH", "tokenOut": "USDC", "amountIn": 1, "fee": 2_000_000},
            "Invalid uniswapSwap parameter 'fee'",
        ),
        (
            "uniswapSwap",
            {"tokenIn": "ETH", "tokenOut": "USDC", "amountIn": 1, "fee": -3000},
            "Invalid uniswapSwap parameter 'fee'",
        ),
        (
            "uniswapLiquidity",
            {"token0": "WBTC", "token1": "USDC", "amount0": 1, "amount1": 1},
            "No Uniswap pool found for WBTC-USDC",
        ),
    ],
)
async def test_rejections(simulation, sim_type, params, message):
    with pytest.raises(ValidationError) as exc_info:
        await simulation.simulate(sim_type, params)

    assert exc_info.value.message.startswith(message)
    assert exc_info.value.code == "VALIDATION_ERROR"
