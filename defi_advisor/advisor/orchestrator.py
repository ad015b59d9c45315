"""Advice pipeline graph.

Topology:
  START -> gather_data -> compute_recommendation -> assemble_prompt
        -> generate_advice -> normalize_response -> END

gather_data fetches market, protocol and wallet data in parallel; every source
degrades to its fallback on its own. generate_advice falls back to the local
template whenever the LLM is missing, slow or failing.
"""

import asyncio

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langgraph.graph import END, START, StateGraph

from defi_advisor import fallbacks
from defi_advisor.advisor.allocation import build_recommendation
from defi_advisor.advisor.fallback_advice import render_fallback_advice
from defi_advisor.advisor.normalizer import AdviceContext, market_insights, normalize_advice
from defi_advisor.advisor.prompts import SYSTEM_PROMPT, build_strategy_prompt
from defi_advisor.advisor.ranking import rank_opportunities
from defi_advisor.advisor.schemas import AdviceSource, AdvisorState, StrategyAdvice, UserProfile
from defi_advisor.market.service import MarketService, build_snapshot
from defi_advisor.protocols.service import ProtocolService, fallback_snapshot
from defi_advisor.wallet.schemas import WalletActivity
from defi_advisor.wallet.service import WalletService, analyze_activity

logger = structlog.get_logger()

RECURSION_LIMIT = 25


def _message_text(message) -> str:
    content = getattr(message, "content", "")
    if isinstance(content, list):
        # structured content blocks
        content = "\n".join(
            block.get("text", "") if isinstance(block, dict) else str(block) for block in content
        )
    return content if isinstance(content, str) else str(content)


class AdvisorPipeline:
    def __init__(
        self,
        market: MarketService,
        protocols: ProtocolService,
        wallet: WalletService,
        llm: BaseChatModel | None,
        llm_timeout: float = 30.0,
    ) -> None:
        self._market = market
        self._protocols = protocols
        self._wallet = wallet
        self._llm = llm
        self._llm_timeout = llm_timeout
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(AdvisorState)

        workflow.add_node("gather_data", self.gather_data)
        workflow.add_node("compute_recommendation", self.compute_recommendation)
        workflow.add_node("assemble_prompt", self.assemble_prompt)
        workflow.add_node("generate_advice", self.generate_advice)
        workflow.add_node("normalize_response", self.normalize_response)

        workflow.add_edge(START, "gather_data")
        workflow.add_edge("gather_data", "compute_recommendation")
        workflow.add_edge("compute_recommendation", "assemble_prompt")
        workflow.add_edge("assemble_prompt", "generate_advice")
        workflow.add_edge("generate_advice", "normalize_response")
        workflow.add_edge("normalize_response", END)

        return workflow.compile()

    # -----------------------------------------------------------------------
    # Nodes
    # -----------------------------------------------------------------------

    async def _wallet_activity(self, address: str | None) -> WalletActivity | None:
        if not address:
            return None
        history = await self._wallet.get_history(address)
        return analyze_activity(history)

    async def gather_data(self, state: AdvisorState) -> dict:
        snapshot, protocols, activity = await asyncio.gather(
            self._market.get_snapshot(),
            self._protocols.get_snapshot(),
            self._wallet_activity(state.get("wallet_address")),
        )
        return {"snapshot": snapshot, "protocols": protocols, "wallet_activity": activity}

    async def compute_recommendation(self, state: AdvisorState) -> dict:
        profile, snapshot = state["profile"], state["snapshot"]
        opportunities = rank_opportunities(state["protocols"].quotes(), profile, snapshot)
        recommendation = build_recommendation(profile, snapshot, opportunities)
        return {"opportunities": opportunities, "recommendation": recommendation}

    async def assemble_prompt(self, state: AdvisorState) -> dict:
        prompt = build_strategy_prompt(
            state["profile"],
            state["snapshot"],
            state["protocols"],
            state.get("opportunities", []),
            state["recommendation"],
            state.get("wallet_activity"),
        )
        return {"prompt": prompt}

    def _fallback(self, state: AdvisorState) -> dict:
        text = render_fallback_advice(state["profile"].risk_profile_class, state["snapshot"].trend)
        return {"raw_advice": text, "source": AdviceSource.fallback}

    async def generate_advice(self, state: AdvisorState) -> dict:
        if self._llm is None:
            logger.info("llm_not_configured")
            return self._fallback(state)

        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=state["prompt"])]
        try:
            response = await asyncio.wait_for(self._llm.ainvoke(messages), self._llm_timeout)
        except TimeoutError:
            logger.warning("llm_timeout", timeout=self._llm_timeout)
            return self._fallback(state)
        except Exception as exc:
            logger.warning("llm_call_failed", error=str(exc))
            return self._fallback(state)

        text = _message_text(response)
        if not text.strip():
            logger.warning("llm_empty_response")
            return self._fallback(state)

        logger.info("advice_llm_called", chars=len(text))
        return {"raw_advice": text, "source": AdviceSource.llm}

    async def normalize_response(self, state: AdvisorState) -> dict:
        profile, recommendation = state["profile"], state["recommendation"]
        context = AdviceContext(
            market_insights=market_insights(state.get("snapshot")),
            top_opportunities=state.get("opportunities", []),
            gas_costs=recommendation.gas_costs,
            risk_profile=profile.risk_profile_class,
            source=state.get("source", AdviceSource.fallback),
        )
        advice = normalize_advice(state.get("raw_advice", ""), recommendation, context)
        return {"advice": advice}

    # -----------------------------------------------------------------------
    # Offline path
    # -----------------------------------------------------------------------

    async def offline_advice(self, profile: UserProfile) -> StrategyAdvice:
        """Run the pure steps on fallback data with the template reply; no I/O."""
        state: AdvisorState = {
            "profile": profile,
            "snapshot": build_snapshot(fallbacks.ETH_PRICE_USD, fallbacks.GAS_PRICE_GWEI, None),
            "protocols": fallback_snapshot(),
            "wallet_activity": None,
        }
        state.update(await self.compute_recommendation(state))
        state.update(self._fallback(state))
        state.update(await self.normalize_response(state))
        return state["advice"]
