"""Etherscan REST API: price, gas oracle and account transaction history."""

import httpx
import structlog

from defi_advisor.exceptions import UpstreamError
from defi_advisor.market.providers.base import EthPriceProvider, GasPriceProvider

logger = structlog.get_logger()

_MAINNET_CHAIN_ID = 1


class EtherscanClient(EthPriceProvider, GasPriceProvider):
    name = "etherscan"

    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str) -> None:
        self._http = http
        self._api_key = api_key
        self._base_url = base_url

    async def _call(self, module: str, action: str, **params: object) -> object:
        query = {
            "chainid": _MAINNET_CHAIN_ID,
            "module": module,
            "action": action,
            "apikey": self._api_key,
            **params,
        }
        try:
            response = await self._http.get(self._base_url, params=query)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamError(self.name, f"{module}.{action} failed: {exc}") from exc

        if str(payload.get("status")) != "1":
            # txlist reports "No transactions found" with status 0
            if payload.get("message") == "No transactions found":
                return []
            raise UpstreamError(
                self.name, f"{module}.{action} error: {payload.get('message', 'unknown')}"
            )
        return payload.get("result")

    async def get_eth_price(self) -> float:
        result = await self._call("stats", "ethprice")
        try:
            price = float(result["ethusd"])  # type: ignore[index]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError(self.name, "invalid ethprice payload") from exc
        logger.info("eth_price_fetched", source=self.name, price=price)
        return price

    async def get_gas_price(self) -> float:
        result = await self._call("gastracker", "gasoracle")
        try:
            gwei = float(result["ProposeGasPrice"])  # type: ignore[index]
        except (KeyError, TypeError, ValueError) as exc:
            raise UpstreamError(self.name, "invalid gasoracle payload") from exc
        logger.info("gas_price_fetched", source=self.name, gwei=gwei)
        return gwei

    async def get_transactions(self, address: str, limit: int = 50) -> list[dict]:
        result = await self._call(
            "account",
            "txlist",
            address=address,
            startblock=0,
            endblock=99999999,
            page=1,
            offset=limit,
            sort="desc",
        )
        if not isinstance(result, list):
            raise UpstreamError(self.name, "invalid txlist payload")
        return result
