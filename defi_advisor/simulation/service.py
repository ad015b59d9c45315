import asyncio
from datetime import UTC, datetime
from typing import Any

import pydantic
import structlog

from defi_advisor import fallbacks
from defi_advisor.exceptions import ValidationError
from defi_advisor.market.service import MarketService
from defi_advisor.protocols.schemas import ProtocolSnapshot
from defi_advisor.protocols.service import ProtocolService
from defi_advisor.simulation import calculator
from defi_advisor.simulation.schemas import (
    AaveBorrowParams,
    AaveDepositParams,
    GasEstimate,
    SimulationType,
    UniswapLiquidityParams,
    UniswapSwapParams,
)

logger = structlog.get_logger()

STABLECOINS = frozenset({"DAI", "USDC", "USDT", "BUSD", "FRAX", "LUSD"})
ETH_LIKE = frozenset({"ETH", "WETH", "STETH"})

DEFAULT_POOL_FEE_PCT = 0.3
# Aave liquidates a few points above the max LTV
LIQUIDATION_THRESHOLD_BUFFER_PCT = 5.0
IL_PRICE_MOVES = (-50, -10, 10, 50)


def _symbol(asset: str) -> str:
    symbol = asset.strip().upper()
    return "ETH" if symbol == "WETH" else symbol


class SimulationService:
    """Read-only what-if estimates for the four supported DeFi operations."""

    def __init__(self, market: MarketService, protocols: ProtocolService) -> None:
        self._market = market
        self._protocols = protocols

    async def simulate(self, sim_type: str | None, params: dict[str, Any] | None) -> dict[str, Any]:
        if not sim_type or params is None:
            raise ValidationError("Missing simulation type or parameters")

        try:
            kind = SimulationType(sim_type)
        except ValueError:
            raise ValidationError(f"Unsupported simulation type: {sim_type}") from None

        handlers = {
            SimulationType.aave_deposit: (AaveDepositParams, self._aave_deposit),
            SimulationType.aave_borrow: (AaveBorrowParams, self._aave_borrow),
            SimulationType.uniswap_swap: (UniswapSwapParams, self._uniswap_swap),
            SimulationType.uniswap_liquidity: (UniswapLiquidityParams, self._uniswap_liquidity),
        }
        model, handler = handlers[kind]
        try:
            parsed = model.model_validate(params)
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"Invalid {sim_type} parameter '{field}': {first['msg']}") from None

        snapshot, (gas_gwei, _) = await asyncio.gather(
            self._protocols.get_snapshot(), self._market.get_gas_price()
        )
        result = handler(parsed, snapshot, gas_gwei)
        result["type"] = kind.value
        result["timestamp"] = datetime.now(UTC).isoformat()
        logger.info("simulation_completed", type=kind.value, sources=snapshot.sources)
        return result

    # --- pricing ---

    @staticmethod
    def _price(asset: str, snapshot: ProtocolSnapshot) -> float:
        symbol = asset.strip().upper()
        if symbol in STABLECOINS:
            return 1.0
        if symbol in ETH_LIKE:
            return snapshot.eth_price
        raise ValidationError(f"Unsupported asset: {asset}")

    @staticmethod
    def _gas(units: int, gas_gwei: float, eth_price: float) -> dict:
        return GasEstimate(
            gas_units=units,
            gas_price_gwei=gas_gwei,
            cost_eth=round(units * gas_gwei / 1e9, 6),
            cost_usd=round(calculator.gas_cost_usd(units, gas_gwei, eth_price), 2),
        ).model_dump(by_alias=True)

    def _lending_rate(self, snapshot: ProtocolSnapshot, asset: str):
        rate = snapshot.lending_rate("aave", _symbol(asset))
        if rate is None:
            raise ValidationError(f"Unsupported asset: {asset}")
        return rate

    # --- operations ---

    def _aave_deposit(self, params: AaveDepositParams, snapshot: ProtocolSnapshot, gas_gwei: float) -> dict:
        rate = self._lending_rate(snapshot, params.asset)
        price = self._price(params.asset, snapshot)
        final_balance = calculator.compound_interest(params.amount, rate.supply_apy, params.months)
        interest = final_balance - params.amount
        return {
            "asset": params.asset.upper(),
            "depositAmount": params.amount,
            "apy": rate.supply_apy,
            "months": params.months,
            "expectedInterest": round(interest, 6),
            "expectedInterestUsd": round(interest * price, 2),
            "finalBalance": round(final_balance, 6),
            "healthFactor": "N/A (deposit only)",
            "gas": self._gas(calculator.GAS_UNITS["lending"], gas_gwei, snapshot.eth_price),
        }

    def _aave_borrow(self, params: AaveBorrowParams, snapshot: ProtocolSnapshot, gas_gwei: float) -> dict:
        borrow_rate = self._lending_rate(snapshot, params.asset)
        collateral_rate = self._lending_rate(snapshot, params.collateral_asset)
        borrow_price = self._price(params.asset, snapshot)
        collateral_price = self._price(params.collateral_asset, snapshot)

        collateral_value = params.collateral_amount * collateral_price
        borrow_value = params.borrow_amount * borrow_price
        max_ltv_pct = (collateral_rate.ltv or 0.75) * 100
        threshold_pct = min(max_ltv_pct + LIQUIDATION_THRESHOLD_BUFFER_PCT, 100.0)
        ltv = calculator.loan_to_value(
            params.collateral_amount, params.borrow_amount, collateral_price, borrow_price
        )
        health = calculator.health_factor(collateral_value, threshold_pct, borrow_value)
        volatility = 0.0 if params.collateral_asset.upper() in STABLECOINS else fallbacks.VOLATILITY_PCT

        return {
            "asset": params.asset.upper(),
            "collateralAsset": params.collateral_asset.upper(),
            "collateralValueUsd": round(collateral_value, 2),
            "borrowValueUsd": round(borrow_value, 2),
            "borrowApy": borrow_rate.borrow_apy,
            "annualInterestUsd": round(borrow_value * borrow_rate.borrow_apy / 100, 2),
            "ltv": round(ltv, 2),
            "maxLtv": round(max_ltv_pct, 2),
            "liquidationThreshold": round(threshold_pct, 2),
            "healthFactor": round(health, 4),
            "maxBorrowUsd": round(calculator.max_borrow(collateral_value, max_ltv_pct, borrow_value), 2),
            "liquidationRisk": round(calculator.liquidation_risk(ltv, threshold_pct, volatility), 2),
            "canBorrow": ltv <= max_ltv_pct,
            "gas": self._gas(calculator.GAS_UNITS["lending"], gas_gwei, snapshot.eth_price),
        }

    def _uniswap_swap(self, params: UniswapSwapParams, snapshot: ProtocolSnapshot, gas_gwei: float) -> dict:
        price_in = self._price(params.token_in, snapshot)
        price_out = self._price(params.token_out, snapshot)
        fee_pct = params.fee / 10_000
        amount_out = params.amount_in * price_in / price_out * (1 - fee_pct / 100)
        minimum_out = amount_out * (1 - params.slippage_pct / 100)
        return {
            "tokenIn": params.token_in.upper(),
            "tokenOut": params.token_out.upper(),
            "amountIn": params.amount_in,
            "expectedAmountOut": round(amount_out, 8),
            "minimumAmountOut": round(minimum_out, 8),
            "exchangeRate": round(params.amount_in / amount_out, 8) if amount_out else None,
            "feePct": fee_pct,
            "feeUsd": round(params.amount_in * price_in * fee_pct / 100, 2),
            "slippagePct": params.slippage_pct,
            "gas": self._gas(calculator.GAS_UNITS["swap"], gas_gwei, snapshot.eth_price),
        }

    def _uniswap_liquidity(
        self, params: UniswapLiquidityParams, snapshot: ProtocolSnapshot, gas_gwei: float
    ) -> dict:
        pool = snapshot.find_pool("uniswap", _symbol(params.token0), _symbol(params.token1))
        if pool is None:
            raise ValidationError(f"No Uniswap pool found for {params.token0}-{params.token1}")

        value_usd = params.amount0 * self._price(params.token0, snapshot) + params.amount1 * self._price(
            params.token1, snapshot
        )
        fee_pct = pool.fee_pct if pool.fee_pct is not None else DEFAULT_POOL_FEE_PCT

        def projected(days: int) -> float:
            if pool.volume_usd and pool.liquidity_usd:
                return calculator.lp_fee_returns(
                    value_usd, fee_pct, pool.volume_usd, pool.liquidity_usd, days
                )
            return value_usd * pool.apy / 100 * days / 365

        impermanent_loss = {
            f"{move:+d}%": round(calculator.impermanent_loss(1 + move / 100) * 100, 4)
            for move in IL_PRICE_MOVES
        }
        return {
            "pool": pool.name,
            "positionValueUsd": round(value_usd, 2),
            "apy": pool.apy,
            "feePct": fee_pct,
            "projectedFees30d": round(projected(30), 2),
            "projectedFees365d": round(projected(365), 2),
            "impermanentLoss": impermanent_loss,
            "gas": self._gas(calculator.GAS_UNITS["liquidity"], gas_gwei, snapshot.eth_price),
        }
