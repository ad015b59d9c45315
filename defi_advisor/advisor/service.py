"""Advisor service: runs the advice graph with a request deadline, sync or streamed."""

import asyncio
import json
from collections.abc import AsyncGenerator

import structlog

from defi_advisor.advisor.orchestrator import RECURSION_LIMIT, AdvisorPipeline
from defi_advisor.advisor.schemas import AdviceRequest, StrategyAdvice

logger = structlog.get_logger()


def _advice_json(advice: StrategyAdvice) -> str:
    return advice.model_dump_json(by_alias=True, exclude_none=True)


class AdvisorService:
    def __init__(self, pipeline: AdvisorPipeline, request_timeout: float = 50.0) -> None:
        self._pipeline = pipeline
        self._request_timeout = request_timeout

    @staticmethod
    def _initial_state(request: AdviceRequest) -> dict:
        return {"profile": request.profile(), "wallet_address": request.wallet_address}

    async def advise(self, request: AdviceRequest) -> StrategyAdvice:
        state = self._initial_state(request)
        logger.info(
            "advice_requested",
            risk_profile=state["profile"].risk_profile_class,
            has_wallet=bool(request.wallet_address),
        )
        try:
            result = await asyncio.wait_for(
                self._pipeline.graph.ainvoke(state, {"recursion_limit": RECURSION_LIMIT}),
                self._request_timeout,
            )
        except TimeoutError:
            logger.warning("advice_request_timeout", timeout=self._request_timeout)
            return await self._pipeline.offline_advice(state["profile"])

        advice: StrategyAdvice = result["advice"]
        logger.info("advice_generated", source=advice.source)
        return advice

    async def advise_stream(self, request: AdviceRequest) -> AsyncGenerator[dict, None]:
        """SSE events: status per pipeline step, then advice (or error), then done."""
        yield {"event": "status", "data": json.dumps({"step": "starting"})}

        state = self._initial_state(request)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._request_timeout
        updates = self._pipeline.graph.astream(
            state, {"recursion_limit": RECURSION_LIMIT}, stream_mode="updates"
        )
        advice: StrategyAdvice | None = None
        try:
            while True:
                try:
                    update = await asyncio.wait_for(anext(updates), deadline - loop.time())
                except StopAsyncIteration:
                    break
                for step, output in update.items():
                    yield {"event": "status", "data": json.dumps({"step": step})}
                    if isinstance(output, dict) and "advice" in output:
                        advice = output["advice"]
        except TimeoutError:
            logger.warning("advice_stream_timeout", timeout=self._request_timeout)
            advice = await self._pipeline.offline_advice(state["profile"])
        except Exception as exc:
            logger.error("advice_stream_error", error=str(exc))
            yield {"event": "error", "data": json.dumps({"error": "Server error"})}
        finally:
            await updates.aclose()

        if advice is not None:
            yield {"event": "advice", "data": _advice_json(advice)}
        yield {"event": "done", "data": ""}
