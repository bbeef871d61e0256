"""Road incident feed normalisation."""

from __future__ import annotations

from typing import Any

from trafficsync.common.config_loader import IncidentSource
from trafficsync.common.http import HttpClient, RetryConfig, TimeoutConfig
from trafficsync.common.models import IncidentRecord
from trafficsync.pipeline.coordinates import valid_lat_lon

DEFAULT_TITLE = "Incident"
DEFAULT_DESCRIPTION = "No details"


def _first_present(item: dict, *keys: str) -> object | None:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def _safe_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def normalize_incidents(payload: Any) -> list[IncidentRecord]:
    if isinstance(payload, dict) and isinstance(payload.get("incidents"), list):
        items = payload["incidents"]
    elif isinstance(payload, list):
        items = payload
    else:
        return []

    incidents: list[IncidentRecord] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        lat = _safe_float(_first_present(item, "latitude", "lat"))
        lon = _safe_float(_first_present(item, "longitude", "lng"))
        if not valid_lat_lon(lat, lon):
            continue
        incidents.append(
            IncidentRecord(
                title=str(item.get("eventType") or DEFAULT_TITLE),
                description=str(item.get("description") or DEFAULT_DESCRIPTION),
                latitude=lat,
                longitude=lon,
            )
        )
    return incidents


def fetch_incidents(
    client: HttpClient,
    source: IncidentSource,
    timeout: TimeoutConfig | None = None,
) -> list[IncidentRecord]:
    payload = client.get_json(
        source.endpoint,
        timeout=timeout,
        retry_config=RetryConfig(max_attempts=source.max_attempts),
    )
    return normalize_incidents(payload)
