"""Geometry helpers for the two feature encodings ArcGIS can return."""

from __future__ import annotations

from typing import Any


def _safe_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def extract_xy(geometry: dict[str, Any] | None) -> tuple[float | None, float | None]:
    """Return ``(x, y)`` from a GeoJSON point or an Esri point geometry."""
    if not isinstance(geometry, dict):
        return None, None
    coordinates = geometry.get("coordinates")
    if isinstance(coordinates, (list, tuple)):
        if len(coordinates) < 2:
            return None, None
        return _safe_float(coordinates[0]), _safe_float(coordinates[1])
    return _safe_float(geometry.get("x")), _safe_float(geometry.get("y"))


def parse_wkid(*spatial_refs: dict | None) -> int | None:
    for spatial_ref in spatial_refs:
        if not isinstance(spatial_ref, dict):
            continue
        wkid = spatial_ref.get("latestWkid") or spatial_ref.get("wkid")
        if wkid is None:
            continue
        try:
            return int(wkid)
        except (TypeError, ValueError):
            continue
    return None
