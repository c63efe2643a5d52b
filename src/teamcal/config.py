"""Configuration management for teamcal."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from teamcal.core.events import CALENDAR_VIEWS

logger = logging.getLogger(__name__)

TEAMCAL_HOME = Path(os.environ.get("TEAMCAL_HOME", Path.home() / ".teamcal"))
CONFIG_FILE = TEAMCAL_HOME / "config" / "teamcal.conf"

DEFAULT_API_URL = "http://localhost:3000/api"


@dataclass
class Config:
    """teamcal configuration."""

    api_base_url: str = DEFAULT_API_URL
    request_timeout: float = 10.0
    cache_ttl_seconds: float = 300.0
    team_id: str = ""
    project_id: str = ""
    default_view: str = ""
    time_zone: str = ""
    locale: str = ""
    first_day: int | None = None
    log_level: str = "WARNING"

    def initial_view_config(self) -> dict[str, Any]:
        """Partial CalendarConfig for the facade; unset keys keep their defaults."""
        changes: dict[str, Any] = {}
        if self.default_view:
            changes["view"] = self.default_view
        if self.time_zone:
            changes["time_zone"] = self.time_zone
        if self.locale:
            changes["locale"] = self.locale
        if self.first_day is not None:
            changes["first_day"] = self.first_day
        return changes


def _unquote(value: str) -> str:
    """Strip quotes, or an inline comment from an unquoted value."""
    if value[:1] in ('"', "'"):
        quote = value[0]
        end_quote = value.find(quote, 1)
        return value[1:end_quote] if end_quote != -1 else value[1:]
    if "#" in value:
        return value.split("#")[0].strip()
    return value


def _parse_float(key: str, value: str, fallback: float) -> float:
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {key.upper()} value: {value!r}")
        return fallback


def _valid_time_zone(name: str) -> bool:
    if name == "local":
        return True
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return False
    return True


def load_config(path: Path | None = None) -> Config:
    """Load configuration from teamcal.conf, then apply environment overrides."""
    config = Config()
    path = path or CONFIG_FILE

    if path.exists():
        for line in path.read_text().splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip().lower()
            value = _unquote(value.strip())

            match key:
                case "api_base_url":
                    config.api_base_url = value.rstrip("/")
                case "request_timeout":
                    config.request_timeout = _parse_float(key, value, config.request_timeout)
                case "cache_ttl_seconds":
                    config.cache_ttl_seconds = _parse_float(key, value, config.cache_ttl_seconds)
                case "team_id":
                    config.team_id = value
                case "project_id":
                    config.project_id = value
                case "default_view":
                    if value in CALENDAR_VIEWS:
                        config.default_view = value
                    else:
                        logger.warning(f"Ignoring invalid DEFAULT_VIEW value: {value!r}")
                case "time_zone":
                    if _valid_time_zone(value):
                        config.time_zone = value
                    else:
                        logger.warning(f"Ignoring invalid TIME_ZONE value: {value!r}")
                case "locale":
                    config.locale = value
                case "first_day":
                    try:
                        config.first_day = int(value)
                    except ValueError:
                        logger.warning(f"Ignoring invalid FIRST_DAY value: {value!r}")
                case "log_level":
                    config.log_level = value.upper()
                case _:
                    logger.debug(f"Unknown config key: {key}")

    env_url = os.environ.get("TEAMCAL_API_URL")
    if env_url:
        config.api_base_url = env_url.rstrip("/")

    return config
