"""Pydantic models for application configuration."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Regions offered by the catalog's watch-provider data
REGIONS = {
    "IN": "India",
    "US": "United States",
    "GB": "United Kingdom",
    "AE": "UAE",
    "AU": "Australia",
    "CA": "Canada",
    "JP": "Japan",
    "KR": "South Korea",
    "IE": "Ireland",
    "IT": "Italy",
    "DE": "Germany",
    "FR": "France",
    "BR": "Brazil",
    "SG": "Singapore",
    "MY": "Malaysia",
    "ID": "Indonesia",
    "PH": "Philippines",
    "TH": "Thailand",
    "NZ": "New Zealand",
    "ZA": "South Africa",
    "SA": "Saudi Arabia",
    "BG": "Bulgaria",
    "DK": "Denmark",
    "EG": "Egypt",
    "FI": "Finland",
    "GR": "Greece",
    "HU": "Hungary",
    "NL": "Netherlands",
    "NO": "Norway",
    "PL": "Poland",
    "PT": "Portugal",
    "RU": "Russia",
    "SE": "Sweden",
    "TW": "Taiwan",
}


class Credentials(BaseModel):
    """Provider keys and the cron secret (environment variables take precedence)."""
    model_config = ConfigDict(extra="allow")

    tmdb_api_key: str = ""
    watchmode_api_key: str = ""
    cron_secret: str = ""


class Options(BaseModel):
    """Refresh pacing and HTTP options."""
    model_config = ConfigDict(extra="allow")

    cron_batch_size: int = 5
    sweep_chunk_size: int = 10
    sweep_delay_seconds: float = 60
    request_timeout: float = 60


class AppConfig(BaseModel):
    """Root application configuration."""
    model_config = ConfigDict(extra="allow")

    region: str = "IN"
    credentials: Credentials = Field(default_factory=Credentials)
    options: Options = Field(default_factory=Options)
