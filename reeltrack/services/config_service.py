"""Configuration service — ``config.json`` in the data directory, validated by AppConfig."""
from __future__ import annotations

import json
import logging
import os

from pydantic import ValidationError

from reeltrack.database import DB_NAME
from reeltrack.models.config import REGIONS, AppConfig

logger = logging.getLogger(__name__)

# Environment variables that override the stored credentials
ENV_CREDENTIALS = {
    "tmdb_api_key": "TMDB_API_KEY",
    "watchmode_api_key": "WATCHMODE_API_KEY",
    "cron_secret": "CRON_SECRET",
}


class ConfigService:
    """Region, provider credentials and refresh pacing options.

    ``load()`` reads the file once; later reads come from memory.  A
    credential set in the environment takes precedence over the file.
    """

    def __init__(self, data_dir: str):
        self.data_dir = data_dir
        self.config_file = os.path.join(data_dir, "config.json")
        self.db_path = os.path.join(data_dir, DB_NAME)
        self._config: dict = AppConfig().model_dump()

    def load(self) -> dict:
        """Read ``config.json``; a missing or invalid file falls back to defaults."""
        self._config = AppConfig().model_dump()
        if not os.path.exists(self.config_file):
            return self._config
        try:
            with open(self.config_file) as f:
                self._config = AppConfig.model_validate(json.load(f)).model_dump()
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Ignoring unreadable config {self.config_file}: {e}")
        return self._config

    def save(self) -> None:
        os.makedirs(self.data_dir, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self._config, f, indent=2)

    @property
    def config(self) -> dict:
        return self._config

    # ------------------------------------------------------------------
    # Convenience accessors
    # ------------------------------------------------------------------

    def _credential(self, key: str) -> str:
        env_value = os.environ.get(ENV_CREDENTIALS[key], "")
        if env_value:
            return env_value
        return self._config.get("credentials", {}).get(key, "")

    @property
    def tmdb_api_key(self) -> str:
        return self._credential("tmdb_api_key")

    @property
    def watchmode_api_key(self) -> str:
        return self._credential("watchmode_api_key")

    @property
    def cron_secret(self) -> str:
        return self._credential("cron_secret")

    def get_region(self) -> str:
        return self._config.get("region", "IN")

    def set_region(self, region: str) -> str:
        region = (region or "").strip().upper()
        if region not in REGIONS:
            raise ValueError(f"Unsupported region: {region}")
        self._config["region"] = region
        self.save()
        return region

    region = property(get_region)

    def _option(self, key: str, default):
        return self._config.get("options", {}).get(key, default)

    @property
    def cron_batch_size(self) -> int:
        return max(int(self._option("cron_batch_size", 5)), 1)

    @property
    def sweep_chunk_size(self) -> int:
        return max(int(self._option("sweep_chunk_size", 10)), 1)

    @property
    def sweep_delay_seconds(self) -> float:
        return max(float(self._option("sweep_delay_seconds", 60)), 0.0)

    @property
    def request_timeout(self) -> float:
        return float(self._option("request_timeout", 60))

    def masked_config(self) -> dict:
        """Config with credentials replaced by a presence flag, safe to return from the API."""
        masked = json.loads(json.dumps(self._config))
        masked["credentials"] = {key: bool(self._credential(key)) for key in ENV_CREDENTIALS}
        return masked
