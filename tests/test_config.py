"""Tests for settings loading."""
import json

from price_check.config import Settings, load_settings


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.delenv("EBAY_APP_ID", raising=False)
        assert load_settings(str(tmp_path / "missing.json")) == Settings()

    def test_reads_known_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("EBAY_APP_ID", raising=False)
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({
            "ebay_app_id": "from-file",
            "cache_ttl_hours": 6,
            "unknown_option": True,
        }))

        settings = load_settings(str(path))
        assert settings.ebay_app_id == "from-file"
        assert settings.cache_ttl_hours == 6
        assert settings.max_cache_size == 100

    def test_environment_overrides_app_id(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EBAY_APP_ID", "from-env")
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"ebay_app_id": "from-file"}))

        assert load_settings(str(path)).ebay_app_id == "from-env"
