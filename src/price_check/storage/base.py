from abc import ABC, abstractmethod


class KeyValueStorage(ABC):
    """Asynchronous string key-value store used by the cache and analytics.

    Any method may raise; callers are expected to degrade gracefully.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def get_all_keys(self) -> list[str]:
        ...

    @abstractmethod
    async def remove_many(self, keys: list[str]) -> None:
        ...
