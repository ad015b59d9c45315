from typing import Annotated

from fastapi import Depends, Request

from defi_advisor.advisor.service import AdvisorService
from defi_advisor.cache import ResponseCache
from defi_advisor.market.service import MarketService
from defi_advisor.protocols.service import ProtocolService
from defi_advisor.resources import AppResources
from defi_advisor.simulation.service import SimulationService
from defi_advisor.wallet.service import WalletService


def get_resources(request: Request) -> AppResources:
    return request.app.state.resources


ResourcesDep = Annotated[AppResources, Depends(get_resources)]


def get_cache(resources: ResourcesDep) -> ResponseCache:
    return resources.cache


def get_market_service(resources: ResourcesDep) -> MarketService:
    return resources.market


def get_protocol_service(resources: ResourcesDep) -> ProtocolService:
    return resources.protocols


def get_wallet_service(resources: ResourcesDep) -> WalletService:
    return resources.wallet


def get_simulation_service(resources: ResourcesDep) -> SimulationService:
    return resources.simulation


def get_advisor_service(resources: ResourcesDep) -> AdvisorService:
    return resources.advisor


CacheDep = Annotated[ResponseCache, Depends(get_cache)]
MarketServiceDep = Annotated[MarketService, Depends(get_market_service)]
ProtocolServiceDep = Annotated[ProtocolService, Depends(get_protocol_service)]
WalletServiceDep = Annotated[WalletService, Depends(get_wallet_service)]
SimulationServiceDep = Annotated[SimulationService, Depends(get_simulation_service)]
AdvisorServiceDep = Annotated[AdvisorService, Depends(get_advisor_service)]
