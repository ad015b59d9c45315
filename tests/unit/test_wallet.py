import pytest

from defi_advisor.contracts import TOKENS
from defi_advisor.exceptions import ValidationError
from defi_advisor.wallet.service import (
    WalletService,
    analyze_activity,
    format_units,
    parse_transaction,
    validate_address,
)
from tests.fakes import AAVE_POOL, WALLET, FakeChain, FakeEtherscan, tx_row

UNISWAP_ROUTER = "0xE592427A0AEce92De3Edee1F18E0157C05861564"
LIDO = "0xae7ab96520de3a18e5e111b5eaab095312d7fe84"
RANDOM = "0x" + "12" * 20


def test_parse_transaction():
    tx = parse_transaction(tx_row(AAVE_POOL))

    assert tx.protocol == "Aave"
    assert tx.is_contract_call is True
    assert tx.value_eth == pytest.approx(0.1)
    assert tx.gas_used == 100_000
    assert tx.is_error is False


def test_parse_plain_transfer_and_checksummed_address():
    assert parse_transaction(tx_row(UNISWAP_ROUTER)).protocol == "Uniswap"

    transfer = parse_transaction(tx_row(RANDOM, tx_input="0x"))
    assert transfer.protocol == "Unknown"
    assert transfer.is_contract_call is False


def test_parse_contract_creation():
    row = tx_row("")
    row["isError"] = "1"

    tx = parse_transaction(row)

    assert tx.to_address is None
    assert tx.is_error is True


def test_analyze_activity():
    history = [
        parse_transaction(tx_row(AAVE_POOL)),
        parse_transaction(tx_row(AAVE_POOL)),
        parse_transaction(tx_row(UNISWAP_ROUTER)),
        parse_transaction(tx_row(RANDOM, tx_input="0x")),
    ]

    activity = analyze_activity(history)

    assert activity.total_transactions == 4
    assert activity.contract_interactions == 3
    assert activity.defi_interactions == {"aave": 2, "compound": 0, "uniswap": 1, "curve": 0, "other": 0}
    assert activity.protocols == ["Aave", "Uniswap"]
    assert activity.gas_spent_eth == pytest.approx(0.008)
    assert activity.summary == (
        "4 transactions found. 3 contract interactions including: 2 with aave, 1 with uniswap. "
        "Approximately 0.0080 ETH spent on gas. "
        "User has interacted with the following protocols: Aave, Uniswap."
    )


def test_untracked_protocol_counts_as_other():
    activity = analyze_activity([parse_transaction(tx_row(LIDO))])

    assert activity.defi_interactions["other"] == 1
    assert activity.protocols == ["Lido"]


def test_unknown_contracts_only():
    activity = analyze_activity([parse_transaction(tx_row(RANDOM))])

    assert "none with known DeFi protocols" in activity.summary
    assert activity.protocols == []


def test_empty_history():
    activity = analyze_activity([])

    assert activity.total_transactions == 0
    assert activity.summary == "No transaction history available"


@pytest.mark.parametrize("address", ["", None, "0x123", "not-an-address", "0x" + "g" * 40, WALLET + "00"])
def test_invalid_addresses(address):
    with pytest.raises(ValidationError, match="Invalid Ethereum address format"):
        validate_address(address)


@pytest.mark.parametrize(
    ("raw", "decimals", "expected"),
    [(1_500_000, 6, "1.5"), (10**18, 18, "1"), (0, 6, "0"), (10**19, 18, "10"), (1, 18, "0.000000000000000001")],
)
def test_format_units(raw, decimals, expected):
    assert format_units(raw, decimals) == expected


async def test_get_wallet():
    service = WalletService(
        FakeEtherscan([tx_row(AAVE_POOL), tx_row(UNISWAP_ROUTER)]),
        FakeChain({TOKENS["USDC"]: 1_500_000}, eth_wei=2 * 10**18),
    )

    data = await service.get_wallet(WALLET)

    assert len(data.history) == 2
    assert data.analysis.protocols == ["Aave", "Uniswap"]
    assert data.balances["USDC"].formatted == "1.5"
    assert data.balances["USDC"].error is None
    assert data.balances["ETH"].formatted == "2"
    assert data.balances["ETH"].address == "native"
    assert data.balances["DAI"].raw == "0"
    assert "execution reverted" in data.balances["DAI"].error


async def test_get_wallet_with_sources_down():
    service = WalletService(FakeEtherscan(fail=True), None)

    data = await service.get_wallet(WALLET)

    assert data.history == []
    assert data.analysis.total_transactions == 0
    assert set(data.balances) == {*TOKENS, "ETH"}
    assert all(b.error == "RPC not configured" for b in data.balances.values())


async def test_get_wallet_rejects_bad_address():
    service = WalletService(None, None)
    with pytest.raises(ValidationError):
        await service.get_wallet("0xnope")
