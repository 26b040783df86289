"""Presence relay configuration.

Loads settings from ``relay.settings.yaml`` (path overridable through the
``RELAY_SETTINGS_FILE`` environment variable). The listening port can also be
overridden with ``PORT``, which is what most hosting platforms inject.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("relay.settings.yaml")

_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring config file %s: expected a mapping, got %s",
            path,
            type(data).__name__,
        )
        return {}
    return data


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 3001
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "info"

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.lower().strip()
        if value not in _LOG_LEVELS:
            raise ValueError(f"unknown log level: {value}")
        return value


class RelaySettings(BaseModel):
    """WebSocket endpoint layout."""
    websocket_path: str = "/ws"
    user_id_param:  str = "userId"


class AppSettings(BaseModel):
    server:  ServerSettings  = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    relay:   RelaySettings   = Field(default_factory=RelaySettings)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load settings from YAML and apply environment overrides."""
    if path is None:
        path = Path(os.environ.get("RELAY_SETTINGS_FILE", SETTINGS_FILE))
    # A bare section header such as "server:" parses as None.
    settings_data = {
        key: value for key, value in _load_yaml(path).items() if value is not None
    }

    port = os.environ.get("PORT")
    if port:
        # Left as a string; ServerSettings validates it.
        server = settings_data.get("server", {})
        if isinstance(server, dict):
            settings_data["server"] = {**server, "port": port}

    app_settings = AppSettings(**settings_data)
    logger.info(
        "Settings loaded (server=%s:%s, log_level=%s)",
        app_settings.server.host,
        app_settings.server.port,
        app_settings.logging.level,
    )
    return app_settings


_config: Optional[AppSettings] = None


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def reset_config() -> None:
    """Forget cached settings so the next get_config() reloads them."""
    global _config
    _config = None
