"""Config loading for the event feed runner and dashboard."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from backpacktf.data.listing import TRACKED_APPID
from backpacktf.data.websocket import DEFAULT_CHANNEL_CAPACITY, EVENTS_URL

DEFAULT_CONFIG_PATH = "config/settings.yaml"


@dataclass
class FeedConfig:
    websocket_url: str = EVENTS_URL
    tracked_appid: int = TRACKED_APPID
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY
    user_agent: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass
class MetricsConfig:
    emit_textfile: bool = False
    metrics_file: str = "var/metrics.prom"


@dataclass
class DashboardConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    enable: bool = False
    recent_events: int = 200


@dataclass
class AppConfig:
    feed: FeedConfig = field(default_factory=FeedConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)


def config_path(path: Optional[str | Path] = None) -> Path:
    """Resolve the config path, honouring ``CONFIG_PATH``."""

    return Path(path or os.getenv("CONFIG_PATH", DEFAULT_CONFIG_PATH)).expanduser().resolve()


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """Load YAML config, falling back to defaults when the file is missing."""

    resolved = config_path(path)
    if not resolved.exists():
        logging.getLogger(__name__).warning("Config file %s not found, using defaults", resolved)
        return AppConfig()
    with resolved.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return parse_config(raw)


def parse_config(raw: Dict[str, Any]) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValueError("config root must be a mapping")

    feed = raw.get("feed") or {}
    log = raw.get("logging") or {}
    metrics = raw.get("metrics") or {}
    dashboard = raw.get("dashboard") or {}

    capacity = int(feed.get("channel_capacity", DEFAULT_CHANNEL_CAPACITY))
    if capacity < 1:
        raise ValueError("feed.channel_capacity must be at least 1")

    return AppConfig(
        feed=FeedConfig(
            websocket_url=feed.get("websocket_url", EVENTS_URL),
            tracked_appid=int(feed.get("tracked_appid", TRACKED_APPID)),
            channel_capacity=capacity,
            user_agent=feed.get("user_agent"),
            headers={str(k): str(v) for k, v in (feed.get("headers") or {}).items()},
        ),
        logging=LoggingConfig(
            level=str(log.get("level", "INFO")),
            format=str(log.get("format", "json")),
        ),
        metrics=MetricsConfig(
            emit_textfile=bool(metrics.get("emit_textfile", False)),
            metrics_file=str(metrics.get("metrics_file", "var/metrics.prom")),
        ),
        dashboard=DashboardConfig(
            host=dashboard.get("host", "127.0.0.1"),
            port=int(dashboard.get("port", 8000)),
            enable=bool(dashboard.get("enable", False)),
            recent_events=int(dashboard.get("recent_events", 200)),
        ),
    )


__all__ = [
    "AppConfig",
    "DashboardConfig",
    "FeedConfig",
    "LoggingConfig",
    "MetricsConfig",
    "config_path",
    "load_config",
    "parse_config",
]
