"""Tests for the storage backends."""
import json

import pytest

from price_check.storage.json_file import JsonFileStorage
from price_check.storage.memory import MemoryStorage


class TestMemoryStorage:
    async def test_roundtrip(self):
        storage = MemoryStorage({"a": "1"})
        await storage.set("b", "2")
        assert await storage.get("a") == "1"
        assert await storage.get_all_keys() == ["a", "b"]

        await storage.remove_many(["a", "missing"])
        await storage.remove("b")
        assert await storage.get_all_keys() == []


class TestJsonFileStorage:
    async def test_missing_file_is_empty(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "store.json")
        assert await storage.get("anything") is None
        assert await storage.get_all_keys() == []

    async def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        await JsonFileStorage(path).set("price_search_history", '["camera"]')

        reopened = JsonFileStorage(path)
        assert await reopened.get("price_search_history") == '["camera"]'
        assert json.loads(path.read_text(encoding="utf-8")) == {
            "price_search_history": '["camera"]'
        }
        assert not path.with_suffix(".json.tmp").exists()

    async def test_remove(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "store.json")
        for key in ("a", "b", "c"):
            await storage.set(key, key)

        await storage.remove("a")
        await storage.remove_many(["b", "zzz"])
        assert await storage.get_all_keys() == ["c"]

    async def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(ValueError):
            await JsonFileStorage(path).get("a")
