"""Configuration helpers for the SafetyMap services and dashboard."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_PATH = "config/local.yaml"


@dataclass(frozen=True)
class StoreConfig:
    """Where the dashboard reaches the review store."""

    base_url: str = "http://localhost:5000"
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class ServerConfig:
    """Review store service binding + alert sidecar."""

    host: str = "0.0.0.0"
    port: int = 5000
    alerts_url: Optional[str] = "http://localhost:5001/review"
    alerts_timeout_seconds: float = 5.0


@dataclass(frozen=True)
class RoutingConfig:
    """Directions provider settings and the route buffer."""

    api_key_env: str = "GOOGLE_MAPS_API_KEY"
    travel_mode: str = "driving"
    buffer_meters: float = 1000.0

    @property
    def api_key(self) -> Optional[str]:
        return os.environ.get(self.api_key_env) or None


@dataclass(frozen=True)
class DashboardConfig:
    """Dashboard defaults."""

    default_lat: float = 17.3850
    default_lng: float = 78.4867
    zoom: int = 12
    recent_days: int = 7
    recent_limit: int = 5
    heatmap_radius: int = 50


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration model."""

    store: StoreConfig
    server: ServerConfig
    routing: RoutingConfig
    dashboard: DashboardConfig
    logging: LoggingConfig


def default_config() -> AppConfig:
    return AppConfig(
        store=StoreConfig(),
        server=ServerConfig(),
        routing=RoutingConfig(),
        dashboard=DashboardConfig(),
        logging=LoggingConfig(),
    )


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Explicit path first, then $SAFETYMAP_CONFIG, then the repo default."""

    if path:
        return Path(path)
    return Path(os.environ.get("SAFETYMAP_CONFIG", DEFAULT_CONFIG_PATH))


def load_config(path: str | Path) -> AppConfig:
    """Parse a YAML config file into an AppConfig dataclass."""

    raw = _load_yaml(path)
    store_cfg = raw.get("store") or {}
    server_cfg = raw.get("server") or {}
    routing_cfg = raw.get("routing") or {}
    dashboard_cfg = raw.get("dashboard") or {}
    logging_cfg = raw.get("logging") or {}

    store = StoreConfig(
        base_url=str(store_cfg.get("base_url", "http://localhost:5000")).rstrip("/"),
        timeout_seconds=float(store_cfg.get("timeout_seconds", 10.0)),
    )
    alerts_url = server_cfg.get("alerts_url", "http://localhost:5001/review")
    server = ServerConfig(
        host=str(server_cfg.get("host", "0.0.0.0")),
        port=int(server_cfg.get("port", 5000)),
        alerts_url=str(alerts_url) if alerts_url else None,
        alerts_timeout_seconds=float(server_cfg.get("alerts_timeout_seconds", 5.0)),
    )
    routing = RoutingConfig(
        api_key_env=str(routing_cfg.get("api_key_env", "GOOGLE_MAPS_API_KEY")),
        travel_mode=str(routing_cfg.get("travel_mode", "driving")),
        buffer_meters=float(routing_cfg.get("buffer_meters", 1000.0)),
    )
    dashboard = DashboardConfig(
        default_lat=float(dashboard_cfg.get("default_lat", 17.3850)),
        default_lng=float(dashboard_cfg.get("default_lng", 78.4867)),
        zoom=int(dashboard_cfg.get("zoom", 12)),
        recent_days=int(dashboard_cfg.get("recent_days", 7)),
        recent_limit=int(dashboard_cfg.get("recent_limit", 5)),
        heatmap_radius=int(dashboard_cfg.get("heatmap_radius", 50)),
    )
    log = LoggingConfig(level=str(logging_cfg.get("level", "INFO")).upper())
    return AppConfig(
        store=store,
        server=server,
        routing=routing,
        dashboard=dashboard,
        logging=log,
    )


def _load_yaml(path: str | Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a top-level mapping.")
    return data
