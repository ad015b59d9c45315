"""Long-lived clients and services, built once per application lifespan."""

from dataclasses import dataclass

import httpx
import structlog
from langchain_core.language_models import BaseChatModel
from web3 import AsyncHTTPProvider, AsyncWeb3

from defi_advisor.advisor.orchestrator import AdvisorPipeline
from defi_advisor.advisor.service import AdvisorService
from defi_advisor.cache import ResponseCache
from defi_advisor.config import Settings
from defi_advisor.exceptions import AppError
from defi_advisor.llm.factory import LLMFactory
from defi_advisor.market.providers.etherscan import EtherscanClient
from defi_advisor.market.providers.onchain import OnChainProvider
from defi_advisor.market.providers.yahoo_finance import YahooFinanceProvider
from defi_advisor.market.service import MarketService
from defi_advisor.protocols.providers.aave import AaveV3Provider
from defi_advisor.protocols.providers.compound import CompoundV2Provider
from defi_advisor.protocols.providers.defillama import DefiLlamaClient, DefiLlamaPoolProvider
from defi_advisor.protocols.service import ProtocolService
from defi_advisor.simulation.service import SimulationService
from defi_advisor.wallet.service import WalletService

logger = structlog.get_logger()

HTTP_TIMEOUT_SECONDS = 20.0


@dataclass
class AppResources:
    cache: ResponseCache
    market: MarketService
    protocols: ProtocolService
    wallet: WalletService
    simulation: SimulationService
    advisor: AdvisorService
    http: httpx.AsyncClient | None = None
    w3: AsyncWeb3 | None = None
    llm: BaseChatModel | None = None

    async def aclose(self) -> None:
        if self.http is not None:
            await self.http.aclose()
        if self.w3 is not None:
            await self.w3.provider.disconnect()


def build_llm() -> BaseChatModel | None:
    try:
        return LLMFactory.create()
    except AppError as exc:
        logger.warning("llm_unavailable", error=exc.message)
        return None


def build_services(
    settings: Settings,
    market: MarketService,
    protocols: ProtocolService,
    wallet: WalletService,
    llm: BaseChatModel | None,
) -> tuple[SimulationService, AdvisorService]:
    pipeline = AdvisorPipeline(market, protocols, wallet, llm, settings.llm_timeout_seconds)
    return (
        SimulationService(market, protocols),
        AdvisorService(pipeline, settings.request_timeout_seconds),
    )


def build_resources(settings: Settings) -> AppResources:
    http = httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS)
    w3 = AsyncWeb3(AsyncHTTPProvider(settings.resolved_rpc_url))
    chain = OnChainProvider(w3)
    etherscan = (
        EtherscanClient(http, settings.etherscan_api_key, settings.etherscan_base_url)
        if settings.etherscan_api_key
        else None
    )
    llama = DefiLlamaClient(http, settings.defillama_yields_url)

    market = MarketService(
        price_providers=[chain, *([etherscan] if etherscan else [])],
        gas_providers=[chain, *([etherscan] if etherscan else [])],
        history_provider=YahooFinanceProvider(),
        price_timeout=settings.price_timeout_seconds,
        history_timeout=settings.history_timeout_seconds,
    )
    protocols = ProtocolService(
        market,
        aave=AaveV3Provider(w3),
        compound=CompoundV2Provider(w3),
        uniswap=DefiLlamaPoolProvider(llama, "uniswap-v3", "defillama"),
        curve=DefiLlamaPoolProvider(llama, "curve-dex", "defillama"),
        lido=DefiLlamaPoolProvider(llama, "lido", "defillama"),
        timeout=settings.protocol_timeout_seconds,
    )
    wallet = WalletService(etherscan, chain, timeout=settings.wallet_timeout_seconds)
    llm = build_llm()
    simulation, advisor = build_services(settings, market, protocols, wallet, llm)

    logger.info(
        "resources_built",
        etherscan=etherscan is not None,
        llm=settings.llm_provider if llm else None,
    )
    return AppResources(
        cache=ResponseCache(settings.cache_ttl_seconds, settings.cache_max_entries),
        market=market,
        protocols=protocols,
        wallet=wallet,
        simulation=simulation,
        advisor=advisor,
        http=http,
        w3=w3,
        llm=llm,
    )
