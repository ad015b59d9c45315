from abc import ABC, abstractmethod

from defi_advisor.market.schemas import PriceHistory


class EthPriceProvider(ABC):
    name: str

    @abstractmethod
    async def get_eth_price(self) -> float: ...


class GasPriceProvider(ABC):
    name: str

    @abstractmethod
    async def get_gas_price(self) -> float:
        """Current gas price in gwei."""


class PriceHistoryProvider(ABC):
    name: str

    @abstractmethod
    async def get_history(self, symbol: str, days: int) -> PriceHistory: ...
