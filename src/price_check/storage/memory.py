from .base import KeyValueStorage


class MemoryStorage(KeyValueStorage):
    """Dict-backed storage, one per instance."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def get_all_keys(self) -> list[str]:
        return list(self._data)

    async def remove_many(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)
