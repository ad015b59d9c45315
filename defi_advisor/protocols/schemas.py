from enum import StrEnum

from pydantic import Field

from defi_advisor.schemas import CamelModel


class OpportunityType(StrEnum):
    lending = "lending"
    liquidity = "liquidity"
    staking = "staking"


class LendingRate(CamelModel):
    supply_apy: float
    borrow_apy: float
    total_liquidity: float | None = None
    utilization_rate: float | None = None
    ltv: float | None = None


class PoolRate(CamelModel):
    name: str
    apy: float
    fee_pct: float | None = None
    volume_usd: float | None = None
    liquidity_usd: float | None = None


class ProtocolQuote(CamelModel):
    protocol: str
    asset: str
    kind: OpportunityType
    supply_apy: float
    borrow_apy: float | None = None
    pool_liquidity: float | None = None
    volume: float | None = None
    fee_pct: float | None = None
    ltv: float | None = None


class ProtocolSnapshot(CamelModel):
    aave: dict[str, LendingRate] = Field(default_factory=dict)
    compound: dict[str, LendingRate] = Field(default_factory=dict)
    uniswap: list[PoolRate] = Field(default_factory=list)
    curve: list[PoolRate] = Field(default_factory=list)
    lido: list[PoolRate] = Field(default_factory=list)
    eth_price: float
    timestamp: str
    sources: dict[str, str] = Field(default_factory=dict)

    def quotes(self) -> list[ProtocolQuote]:
        """Flatten every protocol/asset pair into a ProtocolQuote."""
        quotes: list[ProtocolQuote] = []
        for protocol, rates in (("Aave", self.aave), ("Compound", self.compound)):
            for asset, rate in rates.items():
                quotes.append(
                    ProtocolQuote(
                        protocol=protocol,
                        asset=asset,
                        kind=OpportunityType.lending,
                        supply_apy=rate.supply_apy,
                        borrow_apy=rate.borrow_apy,
                        pool_liquidity=rate.total_liquidity,
                        ltv=rate.ltv,
                    )
                )
        for protocol, pools, kind in (
            ("Uniswap", self.uniswap, OpportunityType.liquidity),
            ("Curve", self.curve, OpportunityType.liquidity),
            ("Lido", self.lido, OpportunityType.staking),
        ):
            for pool in pools:
                quotes.append(
                    ProtocolQuote(
                        protocol=protocol,
                        asset=pool.name,
                        kind=kind,
                        supply_apy=pool.apy,
                        pool_liquidity=pool.liquidity_usd,
                        volume=pool.volume_usd,
                        fee_pct=pool.fee_pct,
                    )
                )
        return quotes

    def lending_rate(self, protocol: str, asset: str) -> LendingRate | None:
        rates = {"aave": self.aave, "compound": self.compound}.get(protocol.lower(), {})
        return rates.get(asset.upper())

    def find_pool(self, protocol: str, *tokens: str) -> PoolRate | None:
        """First pool of ``protocol`` whose name contains every token."""
        pools = {"uniswap": self.uniswap, "curve": self.curve, "lido": self.lido}.get(
            protocol.lower(), []
        )
        wanted = [t.upper() for t in tokens]
        for pool in pools:
            name = pool.name.upper()
            if all(token in name for token in wanted):
                return pool
        return None


class ProtocolsResponse(CamelModel):
    success: bool = True
    data: ProtocolSnapshot
