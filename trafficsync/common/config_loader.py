"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trafficsync.common.constants import (
    ARCGIS_ENDPOINT,
    ARCGIS_QUERY_PARAMS,
    INCIDENTS_ENDPOINT,
    LEGACY_XML_ENDPOINT,
    REQUEST_TIMEOUT_SECONDS,
)
from trafficsync.common.errors import ConfigError
from trafficsync.common.fs import read_yaml
from trafficsync.common.http import RetryConfig, TimeoutConfig
from trafficsync.common.models import RelayDescriptor
from trafficsync.common.schema import validate_sources_config

SOURCES_FILENAME = "sources.yml"


@dataclass(frozen=True)
class ArcGisSource:
    enabled: bool
    endpoint: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class IncidentSource:
    endpoint: str
    max_attempts: int


@dataclass(frozen=True)
class SourcesConfig:
    timeout: TimeoutConfig
    retry: RetryConfig
    arcgis: ArcGisSource
    legacy_endpoint: str
    relays: tuple[RelayDescriptor, ...]
    incidents: IncidentSource


DEFAULT_SOURCES: dict[str, Any] = {
    "request": {"timeout_seconds": REQUEST_TIMEOUT_SECONDS, "max_attempts": 1},
    "arcgis": {"enabled": True, "endpoint": ARCGIS_ENDPOINT, "params": dict(ARCGIS_QUERY_PARAMS)},
    "legacy": {"endpoint": LEGACY_XML_ENDPOINT},
    "relays": [
        {"name": "allorigins", "url": "https://api.allorigins.win/get?url=", "encoding": "envelope", "target": "quoted"},
        {"name": "corsproxy", "url": "https://corsproxy.io/?", "encoding": "raw", "target": "raw"},
        {"name": "codetabs", "url": "https://api.codetabs.com/v1/proxy?url=", "encoding": "raw", "target": "quoted"},
        {"name": "thingproxy", "url": "https://thingproxy.freeboard.io/fetch/", "encoding": "raw", "target": "quoted"},
    ],
    "incidents": {"endpoint": INCIDENTS_ENDPOINT, "max_attempts": 3},
}


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path) or {}
    return _deep_merge(base, overlay)


def build_sources_config(cfg: dict) -> SourcesConfig:
    timeout_seconds = float(cfg["request"]["timeout_seconds"])
    relays = tuple(RelayDescriptor.from_config(relay) for relay in cfg["relays"])
    return SourcesConfig(
        timeout=TimeoutConfig(connect=timeout_seconds, read=timeout_seconds, deadline=timeout_seconds),
        retry=RetryConfig(max_attempts=int(cfg["request"]["max_attempts"])),
        arcgis=ArcGisSource(
            enabled=cfg["arcgis"]["enabled"],
            endpoint=str(cfg["arcgis"]["endpoint"]),
            params={str(k): str(v) for k, v in (cfg["arcgis"].get("params") or {}).items()},
        ),
        legacy_endpoint=str(cfg["legacy"]["endpoint"]),
        relays=relays,
        incidents=IncidentSource(
            endpoint=str(cfg["incidents"]["endpoint"]),
            max_attempts=int(cfg["incidents"]["max_attempts"]),
        ),
    )


def default_sources_config() -> SourcesConfig:
    return build_sources_config(validate_sources_config(DEFAULT_SOURCES))


def load_sources_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> SourcesConfig:
    overlay_path = None
    if overlay_config_dir is not None:
        overlay_path = overlay_config_dir / SOURCES_FILENAME
    cfg = _load_yaml_with_overlay(config_dir / SOURCES_FILENAME, overlay_path)
    return build_sources_config(validate_sources_config(cfg, allow_unknown=allow_unknown))
