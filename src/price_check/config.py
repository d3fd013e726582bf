import json
import os
from dataclasses import dataclass, fields
from pathlib import Path


@dataclass
class Settings:
    ebay_app_id: str = ""
    sandbox: bool = False
    cache_ttl_hours: float = 1
    max_cache_size: int = 100
    history_limit: int = 20
    analytics_max_entries: int = 1000
    max_results: int = 50
    request_timeout_seconds: float = 15
    storage_path: str = "data/price_check.json"
    user_id: str = "local"
    user_agent: str = "OmniLister-PriceChecker/1.0"


def load_settings(path: str = "config/settings.json") -> Settings:
    """Load application settings from JSON file.

    A missing file yields the defaults. ``EBAY_APP_ID`` in the environment
    overrides the configured application id.
    """
    filepath = Path(path)
    settings = Settings()
    if filepath.exists():
        with open(filepath) as f:
            data = json.load(f)
        known = {f.name for f in fields(Settings)}
        settings = Settings(**{k: v for k, v in data.items() if k in known})

    app_id = os.environ.get("EBAY_APP_ID")
    if app_id:
        settings.ebay_app_id = app_id
    return settings
