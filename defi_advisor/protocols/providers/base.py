from abc import ABC, abstractmethod

from defi_advisor.protocols.schemas import LendingRate, PoolRate


class LendingRateProvider(ABC):
    name: str

    @abstractmethod
    async def get_rates(self) -> dict[str, LendingRate]:
        """Supply/borrow APYs keyed by asset symbol."""


class PoolRateProvider(ABC):
    name: str

    @abstractmethod
    async def get_pools(self) -> list[PoolRate]: ...
