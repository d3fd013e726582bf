import asyncio
import json
import logging
import os
import threading
from pathlib import Path

from .base import KeyValueStorage

logger = logging.getLogger(__name__)


class JsonFileStorage(KeyValueStorage):
    """Persist every key in a single JSON object on disk.

    File I/O runs in the default executor so the event loop is never
    blocked. Writes go to a temporary file that replaces the previous file.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    async def get(self, key: str) -> str | None:
        data = await self._run(self._load)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._run(self._update, {key: value}, [])

    async def remove(self, key: str) -> None:
        await self._run(self._update, {}, [key])

    async def get_all_keys(self) -> list[str]:
        data = await self._run(self._load)
        return list(data)

    async def remove_many(self, keys: list[str]) -> None:
        if keys:
            await self._run(self._update, {}, list(keys))

    @staticmethod
    async def _run(func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Storage file {self.path} does not hold a JSON object")
        return data

    def _update(self, updates: dict[str, str], removals: list[str]) -> None:
        # Single-key writes are atomic; multi-step sequences in callers are not
        with self._lock:
            data = self._load()
            data.update(updates)
            for key in removals:
                data.pop(key, None)

            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        logger.debug(f"Wrote {len(data)} keys to {self.path}")
