"""Turn free-form LLM output into a complete StrategyAdvice.

Parsers run as a fallback chain: a strict JSON decoder first, then a heading
extractor for markdown/prose replies. For every field the first parser that
produced it wins; whatever is still missing comes from the computed
recommendation, or from the documented defaults when there is none.
"""

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pydantic
import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from defi_advisor import fallbacks
from defi_advisor.advisor.allocation import estimate_gas_costs
from defi_advisor.advisor.schemas import (
    AdviceSource,
    ExpectedReturns,
    GasCosts,
    MarketInsights,
    Opportunity,
    Recommendation,
    RiskProfileClass,
    StrategyAdvice,
)
from defi_advisor.market.schemas import MarketSnapshot, MarketTrend

logger = structlog.get_logger()

DEFAULT_SUMMARY = (
    "Personalized DeFi strategy based on your risk profile and current market conditions."
)
DEFAULT_EXPECTED_RETURNS = ExpectedReturns(min=8, max=16, timeframe_months=12)
MIN_SUMMARY_LENGTH = 20

ParsedFields = dict[str, Any]


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------

_NUMBER = r"(\d+(?:\.\d+)?)"
_RANGE_RE = re.compile(_NUMBER + r"\s*%?\s*(?:-|–|to)\s*" + _NUMBER)
_NUMBER_RE = re.compile(_NUMBER)
_PCT_RANGE_RE = re.compile(_NUMBER + r"\s*%?\s*(?:-|–|to)\s*" + _NUMBER + r"\s*%")
_PCT_RE = re.compile(_NUMBER + r"\s*%")
_MONTHS_RE = re.compile(
    r"(\d+)(?:\s*(?:-|–|to)\s*(\d+))?\s*(months?|years?)", re.IGNORECASE
)
_MIN_RE = re.compile(r"\bmin(?:imum)?\b\D*" + _NUMBER, re.IGNORECASE)
_MAX_RE = re.compile(r"\bmax(?:imum)?\b\D*" + _NUMBER, re.IGNORECASE)


def _fmt_number(text: str) -> str:
    value = float(text)
    return str(int(value)) if value.is_integer() else str(value)


def coerce_allocation_value(value: Any) -> float | str | None:
    """5 -> 5.0, "5%" -> 5.0, "40-60%" -> "40-60"; anything unparseable -> None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if match := _RANGE_RE.match(text):
        return f"{_fmt_number(match.group(1))}-{_fmt_number(match.group(2))}"
    if match := _NUMBER_RE.match(text):
        return float(match.group(1))
    return None


def coerce_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str) and (match := _NUMBER_RE.search(value)):
        return float(match.group(1))
    return None


def parse_months(text: Any) -> int | None:
    """Upper bound of a "6-12 months" / "1 year" style timeframe."""
    if isinstance(text, bool):
        return None
    if isinstance(text, int | float):
        return int(text) if text > 0 else None
    if not isinstance(text, str):
        return None
    match = _MONTHS_RE.search(text)
    if not match:
        number = coerce_number(text)
        return int(number) if number else None
    months = int(match.group(2) or match.group(1))
    if match.group(3).lower().startswith("year"):
        months *= 12
    return months or None


def parse_returns_text(text: str) -> dict[str, float | int]:
    found: dict[str, float | int] = {}
    if match := _PCT_RANGE_RE.search(text):
        found["min"], found["max"] = float(match.group(1)), float(match.group(2))
    elif (low := _MIN_RE.search(text)) and (high := _MAX_RE.search(text)):
        found["min"], found["max"] = float(low.group(1)), float(high.group(1))
    elif match := _PCT_RE.search(text):
        found["min"] = found["max"] = float(match.group(1))
    if _MONTHS_RE.search(text) and (months := parse_months(text)):
        found["timeframe_months"] = months
    return found


def _string_list(value: Any) -> list[str] | None:
    if isinstance(value, str):
        value = value.splitlines()
    if not isinstance(value, list):
        return None
    items: list[str] = []
    for item in value:
        if isinstance(item, dict):
            item = item.get("name") or item.get("description") or item.get("step")
        if isinstance(item, int | float) and not isinstance(item, bool):
            item = str(item)
        if isinstance(item, str) and (cleaned := clean_item(item)):
            items.append(cleaned)
    return items or None


# ---------------------------------------------------------------------------
# Stage 1: strict JSON
# ---------------------------------------------------------------------------


class LooseAdvice(BaseModel):
    """Accepts the reply shapes models actually produce; bad fields become None."""

    model_config = ConfigDict(extra="ignore")

    summary: str | None = None
    allocation: dict[str, float | str] | None = Field(
        default=None,
        validation_alias=AliasChoices("allocation", "assetAllocation", "asset_allocation"),
    )
    protocols: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("protocols", "recommendedProtocols")
    )
    steps: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("steps", "implementationSteps")
    )
    expected_returns: dict[str, float | int] | None = Field(
        default=None, validation_alias=AliasChoices("expectedReturns", "expected_returns")
    )
    risks: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("risks", "riskFactors", "risk_factors")
    )

    @field_validator("summary", mode="before")
    @classmethod
    def _summary(cls, value: Any) -> str | None:
        return value.strip() or None if isinstance(value, str) else None

    @field_validator("allocation", mode="before")
    @classmethod
    def _allocation(cls, value: Any) -> dict[str, float | str] | None:
        if not isinstance(value, dict):
            return None
        coerced = {
            str(bucket).strip(): parsed
            for bucket, raw in value.items()
            if (parsed := coerce_allocation_value(raw)) is not None
        }
        return coerced or None

    @field_validator("protocols", "steps", "risks", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str] | None:
        return _string_list(value)

    @field_validator("expected_returns", mode="before")
    @classmethod
    def _returns(cls, value: Any) -> dict[str, float | int] | None:
        if isinstance(value, str):
            return parse_returns_text(value) or None
        if not isinstance(value, dict):
            return None
        found: dict[str, float | int] = {}
        for key in ("min", "max"):
            if (number := coerce_number(value.get(key))) is not None:
                found[key] = number
        if len(found) == 1:
            found["min"] = found["max"] = next(iter(found.values()))
        for key in ("timeframeMonths", "timeframe_months", "timeframe"):
            if (months := parse_months(value.get(key))) is not None:
                found["timeframe_months"] = months
                break
        return found or None


_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)


def _json_candidate(text: str) -> str | None:
    if match := _FENCED_JSON_RE.search(text):
        return match.group(1)
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start : end + 1]


def parse_json_advice(text: str) -> ParsedFields:
    candidate = _json_candidate(text)
    if candidate is None:
        return {}
    try:
        payload = json.loads(candidate)
    except json.JSONDecodeError:
        return {}
    if not isinstance(payload, dict):
        return {}
    try:
        loose = LooseAdvice.model_validate(payload)
    except pydantic.ValidationError:
        return {}
    return loose.model_dump(exclude_none=True)


# ---------------------------------------------------------------------------
# Stage 2: headings
# ---------------------------------------------------------------------------

# checked in order; the first synonym contained in the heading wins
SECTION_SYNONYMS: list[tuple[str, tuple[str, ...]]] = [
    ("allocation", ("asset allocation", "allocation")),
    ("expected_returns", ("expected returns", "expected return", "returns")),
    ("steps", ("implementation steps", "action plan", "steps")),
    ("risks", ("risk factors", "risk mitigation", "key risks", "risks")),
    ("protocols", ("recommended protocols", "defi protocols", "protocols")),
    ("summary", ("summary", "overview")),
]

_MD_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s*(.*?)\s*#*\s*$")
_BOLD_HEADING_RE = re.compile(r"^\s*(?:\*\*|__)(.+?)(?:\*\*|__)\s*:?\s*(.*)$")
_NAME_LINE_RE = re.compile(r"^\s*([A-Za-z][A-Za-z &/-]{2,40}):\s*(.*)$")
_BULLET_RE = re.compile(r"^\s*(?:[-*•+](?=\s)|\d+[.)](?!\d)|step\s+\d+\s*[:.)-])\s*", re.IGNORECASE)
_NUMBERING_RE = re.compile(r"^\s*\d+[.)](?!\d)\s*")


def clean_item(line: str) -> str:
    text = _BULLET_RE.sub("", line, count=1)
    return text.replace("**", "").replace("__", "").strip()


def section_for(title: str, exact: bool = False) -> str | None:
    normalized = _NUMBERING_RE.sub("", title).lower().replace("*", "").strip(" :")
    normalized = re.sub(r"\s+", " ", normalized)
    for section, synonyms in SECTION_SYNONYMS:
        if any(synonym == normalized if exact else synonym in normalized for synonym in synonyms):
            return section
    return None


@dataclass
class _Heading:
    section: str | None
    inline: str = ""


def _heading(line: str) -> _Heading | None:
    """Classify a line as a heading; unrecognised markdown/bold headings still end sections."""
    if match := _MD_HEADING_RE.match(line):
        return _Heading(section_for(match.group(1)))
    if match := _BOLD_HEADING_RE.match(line):
        title, rest = match.group(1), match.group(2)
        # "**Aave**: lending" inside a list is content, not a heading
        section = section_for(title, exact=bool(rest))
        if section is None and rest:
            return None
        return _Heading(section, rest.strip())
    if match := _NAME_LINE_RE.match(line):
        section = section_for(match.group(1), exact=True)
        if section is not None:
            return _Heading(section, match.group(2).strip())
    return None


@dataclass
class _Sections:
    bodies: dict[str, list[str]] = field(default_factory=dict)
    preamble: list[str] = field(default_factory=list)


def split_sections(text: str) -> _Sections:
    sections = _Sections()
    current: list[str] | None = None
    seen_section = False
    for line in text.splitlines():
        heading = _heading(line)
        if heading is not None:
            if heading.section is None:
                current = None
                if not seen_section:
                    sections.preamble.append("")
                continue
            seen_section = True
            current = sections.bodies.setdefault(heading.section, [])
            if heading.inline:
                current.append(heading.inline)
            continue
        if current is not None:
            current.append(line)
        elif not seen_section:
            sections.preamble.append(line)
    return sections


def _paragraphs(lines: list[str]) -> list[str]:
    paragraphs: list[str] = []
    buffer: list[str] = []
    for line in [*lines, ""]:
        if line.strip():
            buffer.append(line.strip())
        elif buffer:
            paragraphs.append(" ".join(buffer))
            buffer = []
    return paragraphs


def _items(lines: list[str]) -> list[str]:
    return [item for line in lines if (item := clean_item(line))]


_PCT_FIRST_RE = re.compile(r"^" + _NUMBER + r"\s*%\s*(?:in|to|into|for)?\s*(.+)$", re.IGNORECASE)


def parse_allocation_lines(lines: list[str]) -> dict[str, float | str]:
    allocation: dict[str, float | str] = {}
    for line in lines:
        item = clean_item(line)
        if not item:
            continue
        name, sep, value = item.partition(":")
        if sep:
            parsed = coerce_allocation_value(value)
            if parsed is not None and name.strip():
                allocation[name.strip()] = parsed
            continue
        if match := _PCT_FIRST_RE.match(item):
            allocation[match.group(2).strip()] = float(match.group(1))
    return allocation


_FENCED_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)


def _strip_json(text: str) -> str:
    """Drop code blocks and any JSON object so prose parsing sees only prose."""
    text = _FENCED_BLOCK_RE.sub("", text)
    candidate = _json_candidate(text)
    if candidate is None:
        return text
    try:
        json.loads(candidate)
    except json.JSONDecodeError:
        return text
    return text.replace(candidate, "")


def parse_heading_advice(text: str) -> ParsedFields:
    sections = split_sections(_strip_json(text))
    bodies = sections.bodies
    found: ParsedFields = {}

    summary_paragraphs = _paragraphs(bodies.get("summary", []))
    if not summary_paragraphs:
        summary_paragraphs = [p for p in _paragraphs(sections.preamble) if len(p) > MIN_SUMMARY_LENGTH]
    if summary_paragraphs:
        found["summary"] = summary_paragraphs[0]

    if allocation := parse_allocation_lines(bodies.get("allocation", [])):
        found["allocation"] = allocation
    for key in ("protocols", "steps", "risks"):
        if items := _items(bodies.get(key, [])):
            found[key] = items
    if returns := parse_returns_text("\n".join(bodies.get("expected_returns", []))):
        found["expected_returns"] = returns
    return found


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

PARSER_CHAIN: list[tuple[str, Callable[[str], ParsedFields]]] = [
    ("json", parse_json_advice),
    ("headings", parse_heading_advice),
]


def parse_advice(raw_text: Any) -> ParsedFields:
    """Run the parser chain; earlier parsers win per field."""
    text = raw_text if isinstance(raw_text, str) else ""
    merged: ParsedFields = {}
    for name, parser in PARSER_CHAIN:
        try:
            fields = parser(text)
        except Exception as exc:
            logger.warning("advice_parser_failed", parser=name, error=str(exc))
            continue
        for key, value in fields.items():
            if key == "expected_returns" and key in merged:
                merged[key] = {**value, **merged[key]}
            else:
                merged.setdefault(key, value)
    return merged


@dataclass
class AdviceContext:
    """Data computed by the pipeline that is attached to every advice response."""

    market_insights: MarketInsights
    top_opportunities: list[Opportunity] = field(default_factory=list)
    gas_costs: GasCosts | None = None
    risk_profile: RiskProfileClass = RiskProfileClass.moderate
    source: AdviceSource = AdviceSource.fallback


def market_insights(snapshot: MarketSnapshot | None) -> MarketInsights:
    def pick(value: float | None, default: float) -> float:
        return default if value is None else value

    if snapshot is None:
        return MarketInsights(
            eth_price=fallbacks.ETH_PRICE_USD,
            gas_price=fallbacks.GAS_PRICE_GWEI,
            trend=MarketTrend.neutral,
            volatility_pct=fallbacks.VOLATILITY_PCT,
            rsi=fallbacks.RSI,
            price_change_1d=fallbacks.PRICE_CHANGE_1D,
            price_change_7d=fallbacks.PRICE_CHANGE_7D,
            price_change_30d=fallbacks.PRICE_CHANGE_30D,
        )
    return MarketInsights(
        eth_price=snapshot.eth_price_usd,
        gas_price=snapshot.gas_price_gwei,
        trend=snapshot.trend,
        volatility_pct=pick(snapshot.volatility_pct, fallbacks.VOLATILITY_PCT),
        rsi=pick(snapshot.rsi, fallbacks.RSI),
        price_change_1d=pick(snapshot.price_change_1d, fallbacks.PRICE_CHANGE_1D),
        price_change_7d=pick(snapshot.price_change_7d, fallbacks.PRICE_CHANGE_7D),
        price_change_30d=pick(snapshot.price_change_30d, fallbacks.PRICE_CHANGE_30D),
    )


def _expected_returns(found: dict | None, fallback: ExpectedReturns) -> ExpectedReturns:
    values = fallback.model_dump()
    values.update(found or {})
    if values["min"] > values["max"]:
        values["min"], values["max"] = values["max"], values["min"]
    return ExpectedReturns(**values)


def normalize_advice(
    raw_text: Any,
    defaults: Recommendation | None = None,
    context: AdviceContext | None = None,
) -> StrategyAdvice:
    """Build a complete StrategyAdvice from whatever the model returned. Never raises."""
    found = parse_advice(raw_text)
    context = context or AdviceContext(market_insights=market_insights(None))
    insights = context.market_insights

    if defaults is not None:
        allocation, protocols, steps, risks = (
            defaults.asset_allocation,
            defaults.protocols,
            defaults.steps,
            defaults.risks,
        )
        returns_fallback = defaults.expected_returns
        gas_costs = defaults.gas_costs
    else:
        allocation, protocols, steps, risks = {}, [], [], []
        returns_fallback = DEFAULT_EXPECTED_RETURNS
        gas_costs = estimate_gas_costs(insights.gas_price, insights.eth_price)

    parsed_allocation = found.get("allocation")
    if context.source == AdviceSource.fallback and allocation:
        # template ranges never replace the computed buckets
        parsed_allocation = None

    logger.debug("advice_normalized", fields=sorted(found), source=context.source)
    return StrategyAdvice(
        summary=found.get("summary") or DEFAULT_SUMMARY,
        allocation=parsed_allocation or dict(allocation),
        protocols=found.get("protocols") or list(protocols),
        steps=found.get("steps") or list(steps),
        expected_returns=_expected_returns(found.get("expected_returns"), returns_fallback),
        risks=found.get("risks") or list(risks),
        market_insights=insights,
        top_opportunities=list(context.top_opportunities),
        gas_costs=context.gas_costs or gas_costs,
        risk_profile=context.risk_profile,
        source=context.source,
        timestamp=datetime.now(UTC).isoformat(),
    )
