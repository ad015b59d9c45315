from pydantic import Field

from defi_advisor.schemas import CamelModel


class WalletTransaction(CamelModel):
    hash: str
    from_address: str = Field(alias="from")
    to_address: str | None = Field(default=None, alias="to")
    value_eth: float
    gas_used: int
    gas_price_wei: int
    timestamp: int
    is_error: bool
    is_contract_call: bool
    protocol: str


class TokenBalance(CamelModel):
    raw: str
    formatted: str
    address: str
    error: str | None = None


class WalletActivity(CamelModel):
    total_transactions: int = 0
    contract_interactions: int = 0
    defi_interactions: dict[str, int] = Field(default_factory=dict)
    gas_spent_eth: float = 0.0
    protocols: list[str] = Field(default_factory=list)
    summary: str = "No transaction history available"


class WalletData(CamelModel):
    history: list[WalletTransaction]
    balances: dict[str, TokenBalance]
    analysis: WalletActivity


class WalletResponse(CamelModel):
    success: bool = True
    data: WalletData
