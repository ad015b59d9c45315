import asyncio
import re
from collections import Counter
from decimal import Decimal

import structlog

from defi_advisor.contracts import KNOWN_PROTOCOL_CONTRACTS, TOKENS
from defi_advisor.exceptions import UpstreamError, ValidationError
from defi_advisor.fetching import fetch_with_timeout
from defi_advisor.market.providers.etherscan import EtherscanClient
from defi_advisor.market.providers.onchain import OnChainProvider
from defi_advisor.wallet.schemas import TokenBalance, WalletActivity, WalletData, WalletTransaction

logger = structlog.get_logger()

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
WEI_PER_ETH = 10**18
HISTORY_LIMIT = 50
TRACKED_PROTOCOLS = ("aave", "compound", "uniswap", "curve")


def validate_address(address: str | None) -> str:
    if not address or not ADDRESS_RE.match(address):
        raise ValidationError("Invalid Ethereum address format")
    return address


def format_units(raw: int, decimals: int) -> str:
    return format(Decimal(raw).scaleb(-decimals).normalize(), "f")


def _to_int(value: object) -> int:
    try:
        return int(str(value))
    except (TypeError, ValueError):
        return 0


def parse_transaction(raw: dict) -> WalletTransaction:
    """Map an Etherscan txlist row onto a WalletTransaction tagged with its protocol."""
    to_address = raw.get("to") or None
    tx_input = raw.get("input") or "0x"
    protocol = KNOWN_PROTOCOL_CONTRACTS.get((to_address or "").lower(), "Unknown")
    return WalletTransaction(
        hash=raw.get("hash", ""),
        from_address=raw.get("from", ""),
        to_address=to_address,
        value_eth=_to_int(raw.get("value")) / WEI_PER_ETH,
        gas_used=_to_int(raw.get("gasUsed")),
        gas_price_wei=_to_int(raw.get("gasPrice")),
        timestamp=_to_int(raw.get("timeStamp")),
        is_error=str(raw.get("isError", "0")) == "1",
        is_contract_call=tx_input != "0x",
        protocol=protocol,
    )


def analyze_activity(history: list[WalletTransaction]) -> WalletActivity:
    """Summarise contract usage, per-protocol counts and gas spent."""
    if not history:
        return WalletActivity()

    contract_calls = [tx for tx in history if tx.is_contract_call]
    interactions: Counter[str] = Counter({name: 0 for name in (*TRACKED_PROTOCOLS, "other")})
    protocols: list[str] = []
    for tx in contract_calls:
        if tx.protocol == "Unknown":
            continue
        if tx.protocol not in protocols:
            protocols.append(tx.protocol)
        key = tx.protocol.lower()
        interactions[key if key in TRACKED_PROTOCOLS else "other"] += 1

    gas_spent = sum(tx.gas_used * tx.gas_price_wei for tx in history) / WEI_PER_ETH

    summary = f"{len(history)} transactions found. "
    if contract_calls:
        defi = ", ".join(f"{count} with {name}" for name, count in interactions.items() if count)
        summary += f"{len(contract_calls)} contract interactions including: "
        summary += defi or "none with known DeFi protocols"
        summary += ". "
    summary += f"Approximately {gas_spent:.4f} ETH spent on gas."
    if protocols:
        summary += f" User has interacted with the following protocols: {', '.join(protocols)}."

    return WalletActivity(
        total_transactions=len(history),
        contract_interactions=len(contract_calls),
        defi_interactions=dict(interactions),
        gas_spent_eth=round(gas_spent, 6),
        protocols=protocols,
        summary=summary,
    )


class WalletService:
    def __init__(
        self,
        etherscan: EtherscanClient | None,
        chain: OnChainProvider | None,
        timeout: float = 15.0,
    ) -> None:
        self._etherscan = etherscan
        self._chain = chain
        self._timeout = timeout

    async def get_history(self, address: str) -> list[WalletTransaction]:
        if self._etherscan is None:
            return []
        etherscan = self._etherscan
        try:
            rows = await fetch_with_timeout(
                "etherscan",
                lambda: etherscan.get_transactions(address, HISTORY_LIMIT),
                self._timeout,
            )
        except UpstreamError as exc:
            logger.warning("wallet_history_unavailable", address=address, error=exc.message)
            return []
        return [parse_transaction(row) for row in rows]

    async def _token_balance(self, address: str, symbol: str, token: str) -> TokenBalance:
        if self._chain is None:
            return TokenBalance(raw="0", formatted="0", address=token, error="RPC not configured")
        chain = self._chain
        try:
            raw, decimals = await fetch_with_timeout(
                "rpc", lambda: chain.get_token_balance(address, token), self._timeout
            )
        except UpstreamError as exc:
            logger.warning("token_balance_unavailable", token=symbol, error=exc.message)
            return TokenBalance(raw="0", formatted="0", address=token, error=exc.message)
        return TokenBalance(raw=str(raw), formatted=format_units(raw, decimals), address=token)

    async def _eth_balance(self, address: str) -> TokenBalance:
        if self._chain is None:
            return TokenBalance(raw="0", formatted="0", address="native", error="RPC not configured")
        chain = self._chain
        try:
            raw = await fetch_with_timeout(
                "rpc", lambda: chain.get_eth_balance(address), self._timeout
            )
        except UpstreamError as exc:
            logger.warning("eth_balance_unavailable", error=exc.message)
            return TokenBalance(raw="0", formatted="0", address="native", error=exc.message)
        return TokenBalance(raw=str(raw), formatted=format_units(raw, 18), address="native")

    async def get_balances(self, address: str) -> dict[str, TokenBalance]:
        symbols = list(TOKENS)
        results = await asyncio.gather(
            *(self._token_balance(address, s, TOKENS[s]) for s in symbols),
            self._eth_balance(address),
        )
        return dict(zip([*symbols, "ETH"], results, strict=True))

    async def get_wallet(self, address: str) -> WalletData:
        address = validate_address(address)
        logger.info("wallet_lookup", address=address)
        history, balances = await asyncio.gather(
            self.get_history(address), self.get_balances(address)
        )
        return WalletData(history=history, balances=balances, analysis=analyze_activity(history))
