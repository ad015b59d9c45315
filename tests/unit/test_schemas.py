import pydantic
import pytest

from defi_advisor.advisor.schemas import AdviceRequest, RiskProfileClass, UserProfile
from tests.fakes import WALLET

VALID = {"riskTolerance": 5, "timeHorizon": 12, "capital": 1000, "experience": "beginner"}


def _with(**overrides) -> dict:
    return {**VALID, **overrides}


def test_accepts_camel_case_and_numeric_strings():
    profile = UserProfile.model_validate(_with(riskTolerance="7", capital="2500.5", investmentGoals=None))

    assert profile.risk_tolerance == 7
    assert profile.capital == 2500.5
    assert profile.investment_goals == []


def test_time_horizon_rounds_up():
    assert UserProfile.model_validate(_with(timeHorizon=1.5)).time_horizon == 2


@pytest.mark.parametrize(
    ("field", "value", "message"),
    [
        ("riskTolerance", 0, "Risk tolerance must be a number between 1 and 10"),
        ("riskTolerance", 11, "Risk tolerance must be a number between 1 and 10"),
        ("riskTolerance", 5.5, "Risk tolerance must be a number between 1 and 10"),
        ("riskTolerance", "high", "Risk tolerance must be a number between 1 and 10"),
        ("riskTolerance", True, "Risk tolerance must be a number between 1 and 10"),
        ("timeHorizon", 0, "Time horizon must be a positive number of months"),
        ("capital", 0, "Capital must be a positive number"),
        ("capital", -100, "Capital must be a positive number"),
        ("experience", "expert", "Experience must be one of: none, beginner, intermediate, advanced"),
    ],
)
def test_rejects_invalid_profiles(field, value, message):
    with pytest.raises(pydantic.ValidationError, match=message):
        UserProfile.model_validate(_with(**{field: value}))


def test_missing_fields_are_rejected():
    with pytest.raises(pydantic.ValidationError):
        UserProfile.model_validate({"riskTolerance": 5})


@pytest.mark.parametrize(
    ("risk_tolerance", "expected"),
    [
        (1, RiskProfileClass.conservative),
        (3, RiskProfileClass.conservative),
        (4, RiskProfileClass.moderate),
        (7, RiskProfileClass.moderate),
        (8, RiskProfileClass.aggressive),
        (10, RiskProfileClass.aggressive),
    ],
)
def test_risk_profile_class(risk_tolerance, expected):
    assert UserProfile.model_validate(_with(riskTolerance=risk_tolerance)).risk_profile_class == expected


def test_advice_request_wallet_address():
    request = AdviceRequest.model_validate(_with(walletAddress=WALLET))

    assert request.wallet_address == WALLET
    assert request.profile() == UserProfile.model_validate(VALID)
    assert AdviceRequest.model_validate(_with(walletAddress="")).wallet_address is None


def test_advice_request_rejects_bad_wallet_address():
    with pytest.raises(pydantic.ValidationError, match="Invalid Ethereum address format"):
        AdviceRequest.model_validate(_with(walletAddress="0x1234"))
