from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from defi_advisor.advisor.router import router as advisor_router
from defi_advisor.config import settings
from defi_advisor.exception_handlers import register_exception_handlers
from defi_advisor.logging_config import setup_logging
from defi_advisor.market.router import router as market_router
from defi_advisor.protocols.router import router as protocols_router
from defi_advisor.resources import AppResources, build_resources
from defi_advisor.simulation.router import router as simulation_router
from defi_advisor.wallet.router import router as wallet_router

logger = structlog.get_logger()

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    owned = getattr(app.state, "resources", None) is None
    if owned:
        app.state.resources = build_resources(settings)
    logger.info("app_started", llm_provider=settings.llm_provider)
    yield
    if owned:
        await app.state.resources.aclose()
        app.state.resources = None


def create_app(resources: AppResources | None = None) -> FastAPI:
    app = FastAPI(
        title="DeFi Advisor",
        description="Personalized DeFi strategy advice from live market and protocol data",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.resources = resources

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(advisor_router, prefix=API_PREFIX, tags=["advisor"])
    app.include_router(market_router, prefix=API_PREFIX, tags=["market"])
    app.include_router(protocols_router, prefix=API_PREFIX, tags=["protocols"])
    app.include_router(wallet_router, prefix=API_PREFIX, tags=["wallet"])
    app.include_router(simulation_router, prefix=API_PREFIX, tags=["simulation"])

    @app.get(f"{API_PREFIX}/health")
    async def health():
        return {"status": "healthy"}

    @app.get("/")
    async def root():
        return {"name": "DeFi Advisor API", "version": app.version, "docs": "/docs"}

    return app


app = create_app()
