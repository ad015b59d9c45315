import structlog

from defi_advisor.advisor import risk
from defi_advisor.advisor.parameters import (
    IL_PRICE_RATIO,
    MAX_OPPORTUNITIES,
    SUITABILITY_BANDS,
)
from defi_advisor.advisor.schemas import Opportunity, RiskProfileClass, UserProfile
from defi_advisor.market.schemas import MarketSnapshot
from defi_advisor.protocols.schemas import ProtocolQuote
from defi_advisor.simulation.calculator import impermanent_loss

logger = structlog.get_logger()


def is_suitable(risk_score: int, profile_class: str) -> bool:
    band = SUITABILITY_BANDS.get(str(profile_class).lower())
    return band.admits(risk_score) if band else True


def _sort_key(profile_class: str):
    match profile_class:
        case RiskProfileClass.conservative:
            return lambda o: (o.risk_score, -o.apy)
        case RiskProfileClass.aggressive:
            return lambda o: -(o.apy / (o.risk_score * 0.5))
        case _:
            return lambda o: -(o.apy / o.risk_score)


def rank_opportunities(
    quotes: list[ProtocolQuote],
    profile: UserProfile,
    snapshot: MarketSnapshot,
) -> list[Opportunity]:
    """Score, filter and order quotes for the user's risk class; keep the top five."""
    profile_class = profile.risk_profile_class
    il_pct = round(abs(impermanent_loss(IL_PRICE_RATIO)) * 100, 2)

    candidates: list[Opportunity] = []
    for quote in quotes:
        risk_score = risk.score(quote.protocol, quote.asset, snapshot.trend, quote.kind)
        if not is_suitable(risk_score, profile_class):
            continue
        candidates.append(
            Opportunity(
                protocol=quote.protocol,
                asset=quote.asset,
                apy=quote.supply_apy,
                risk_score=risk_score,
                type=quote.kind,
                suitable=True,
                impermanent_loss_pct=il_pct if quote.protocol.lower() == "uniswap" else None,
            )
        )

    ranked = sorted(candidates, key=_sort_key(profile_class))[:MAX_OPPORTUNITIES]
    logger.info(
        "opportunities_ranked",
        profile=profile_class,
        considered=len(quotes),
        suitable=len(candidates),
        kept=len(ranked),
    )
    return ranked
