"""DeFiLlama yields API: Uniswap, Curve and Lido pool APYs on Ethereum.

GET https://yields.llama.fi/pools returns every tracked pool (10k+ rows) as
``{"status": "success", "data": [...]}``. Rows used here:
  chain, project, symbol, tvlUsd, apy, volumeUsd1d, poolMeta
The payload is fetched once and reused for a few minutes by every pool provider.
"""

import asyncio
import re

import httpx
import structlog
from cachetools import TTLCache

from defi_advisor.exceptions import UpstreamError
from defi_advisor.protocols.providers.base import PoolRateProvider
from defi_advisor.protocols.schemas import PoolRate

logger = structlog.get_logger()

CHAIN = "Ethereum"
POOLS_TTL_SECONDS = 300
MAX_POOLS_PER_PROTOCOL = 3
MIN_TVL_USD = 1_000_000

_FEE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")


def _fee_pct(pool_meta: str | None) -> float | None:
    if not pool_meta:
        return None
    match = _FEE_RE.search(pool_meta)
    return float(match.group(1)) if match else None


def _display_name(symbol: str) -> str:
    return "-".join("ETH" if part == "WETH" else part for part in symbol.split("-"))


class DefiLlamaClient:
    def __init__(self, http: httpx.AsyncClient, url: str) -> None:
        self._http = http
        self._url = url
        self._cache: TTLCache = TTLCache(maxsize=1, ttl=POOLS_TTL_SECONDS)
        self._lock = asyncio.Lock()

    async def get_all_pools(self) -> list[dict]:
        async with self._lock:
            cached = self._cache.get("pools")
            if cached is not None:
                return cached
            try:
                response = await self._http.get(self._url)
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise UpstreamError("defillama", f"pools request failed: {exc}") from exc

            pools = payload.get("data") if isinstance(payload, dict) else None
            if not isinstance(pools, list):
                raise UpstreamError("defillama", "unexpected pools payload")
            logger.info("defillama_pools_fetched", count=len(pools))
            self._cache["pools"] = pools
            return pools

    async def get_project_pools(self, project: str) -> list[dict]:
        pools = await self.get_all_pools()
        return [
            p
            for p in pools
            if p.get("chain") == CHAIN
            and p.get("project") == project
            and (p.get("tvlUsd") or 0) >= MIN_TVL_USD
            and p.get("apy") is not None
            and not p.get("outlier", False)
        ]


class DefiLlamaPoolProvider(PoolRateProvider):
    def __init__(self, client: DefiLlamaClient, project: str, name: str) -> None:
        self._client = client
        self._project = project
        self.name = name

    async def get_pools(self) -> list[PoolRate]:
        rows = await self._client.get_project_pools(self._project)
        rows.sort(key=lambda p: p.get("tvlUsd") or 0, reverse=True)
        pools = [
            PoolRate(
                name=_display_name(row.get("symbol", "UNKNOWN")),
                apy=round(float(row["apy"]), 4),
                fee_pct=_fee_pct(row.get("poolMeta")),
                volume_usd=row.get("volumeUsd1d"),
                liquidity_usd=row.get("tvlUsd"),
            )
            for row in rows[:MAX_POOLS_PER_PROTOCOL]
        ]
        if not pools:
            raise UpstreamError("defillama", f"no pools for {self._project}")
        return pools
