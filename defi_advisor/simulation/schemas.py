from enum import StrEnum
from typing import Any, Literal

from pydantic import Field

from defi_advisor.schemas import CamelModel


class SimulationType(StrEnum):
    aave_deposit = "aaveDeposit"
    aave_borrow = "aaveBorrow"
    uniswap_swap = "uniswapSwap"
    uniswap_liquidity = "uniswapLiquidity"


class SimulationRequest(CamelModel):
    # kept as a plain string so unsupported types surface as a domain error
    type: str | None = None
    params: dict[str, Any] | None = None


class AaveDepositParams(CamelModel):
    asset: str
    amount: float = Field(gt=0)
    months: int = Field(default=12, ge=1)


class AaveBorrowParams(CamelModel):
    asset: str
    collateral_asset: str
    collateral_amount: float = Field(gt=0)
    borrow_amount: float = Field(gt=0)


# Uniswap v3 pool fee tiers, in hundredths of a basis point
PoolFee = Literal[100, 500, 3000, 10000]


class UniswapSwapParams(CamelModel):
    token_in: str
    token_out: str
    amount_in: float = Field(gt=0)
    fee: PoolFee = 3000
    slippage_pct: float = Field(default=0.5, ge=0, le=50)


class UniswapLiquidityParams(CamelModel):
    token0: str
    token1: str
    amount0: float = Field(gt=0)
    amount1: float = Field(gt=0)


class GasEstimate(CamelModel):
    gas_units: int
    gas_price_gwei: float
    cost_eth: float
    cost_usd: float


class SimulationResponse(CamelModel):
    success: bool = True
    data: dict[str, Any]
