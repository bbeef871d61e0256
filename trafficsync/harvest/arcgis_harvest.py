"""Authoritative ArcGIS camera feed: fetch and feature-collection parsing."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from trafficsync.common.config_loader import ArcGisSource
from trafficsync.common.constants import SOURCE_AUTHORITATIVE, STATUS_OFFLINE, STATUS_OPERATIONAL
from trafficsync.common.geometry import extract_xy, parse_wkid
from trafficsync.common.heuristics import Draw, draw_confidence, draw_severity, draw_trend
from trafficsync.common.http import HttpClient, TimeoutConfig
from trafficsync.common.models import CameraRecord
from trafficsync.common.time_utils import format_clock, local_now, parse_update_time
from trafficsync.pipeline.coordinates import to_wgs84, valid_lat_lon
from trafficsync.pipeline.image_urls import normalize_image_url

ID_PREFIX = "arcgis-"
CONFIDENCE_RANGE = (95, 99)

# Candidate attribute names, highest priority first.
ID_FIELDS = ("id", "ObjectId", "OBJECTID", "objectid")
NAME_FIELDS = ("name", "CameraName", "title")
DESCRIPTION_FIELDS = ("description", "LocationDescription")
IMAGE_FIELDS = ("imageurl", "imageUrl", "ImageUrl", "thumburl")
REGION_FIELDS = ("region", "Region")
DIRECTION_FIELDS = ("direction", "Direction")
UPDATED_FIELDS = ("updatedate", "UpdateDate", "lastupdate")

DEFAULT_NAME = "Surveillance Node"
DEFAULT_DESCRIPTION = "Official NZTA Live Feed"
DEFAULT_REGION = "NZ Sector"
DEFAULT_DIRECTION = "N/A"


def _lookup_first(attributes: dict, candidates: tuple[str, ...]) -> object | None:
    for key in candidates:
        if key in attributes and attributes[key] not in (None, ""):
            return attributes[key]
    return None


def _text(attributes: dict, candidates: tuple[str, ...], default: str) -> str:
    value = _lookup_first(attributes, candidates)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _feature_attributes(feature: dict) -> dict:
    # GeoJSON carries `properties`; Esri JSON carries `attributes`.
    attributes = feature.get("properties")
    if not isinstance(attributes, dict):
        attributes = feature.get("attributes")
    return attributes if isinstance(attributes, dict) else {}


def _feature_lat_lon(feature: dict, collection_wkid: int | None) -> tuple[float, float] | None:
    geometry = feature.get("geometry")
    x, y = extract_xy(geometry)
    if x is None or y is None:
        return None
    if isinstance(geometry, dict) and "coordinates" in geometry:
        # GeoJSON is WGS84 by definition; magnitude check catches mislabelled metres.
        point = to_wgs84(x, y, None)
    else:
        wkid = parse_wkid(geometry.get("spatialReference") if isinstance(geometry, dict) else None) or collection_wkid
        point = to_wgs84(x, y, wkid)
    if point is None or not valid_lat_lon(*point):
        return None
    return point


def _upstream_id(attributes: dict) -> str | None:
    value = _lookup_first(attributes, ID_FIELDS)
    if value is None or not str(value).strip():
        return None
    return f"{ID_PREFIX}{str(value).strip()}"


def _upstream_ids(features: list) -> set[str]:
    # Every upstream id in the payload, so synthesized ids never shadow a later feature.
    ids = (_upstream_id(_feature_attributes(feature)) for feature in features if isinstance(feature, dict))
    return {record_id for record_id in ids if record_id is not None}


def _synthesized_id(index: int, taken: set[str]) -> str:
    candidate = f"{ID_PREFIX}feature-{index}"
    suffix = 1
    while candidate in taken:
        candidate = f"{ID_PREFIX}feature-{index}-{suffix}"
        suffix += 1
    return candidate


def parse_feature_collection(
    payload: Any,
    draw: Draw,
    now: datetime | None = None,
) -> list[CameraRecord]:
    """Map a GeoJSON or Esri JSON feature collection onto camera records.

    Features without a usable point are dropped. Duplicate ids keep the first feature.
    """
    if not isinstance(payload, dict):
        return []
    features = payload.get("features")
    if not isinstance(features, list):
        return []

    now = now or local_now()
    collection_wkid = parse_wkid(payload.get("spatialReference"))
    records: list[CameraRecord] = []
    seen_ids: set[str] = set()
    upstream_ids = _upstream_ids(features)

    for index, feature in enumerate(features):
        if not isinstance(feature, dict):
            continue
        point = _feature_lat_lon(feature, collection_wkid)
        if point is None:
            continue
        attributes = _feature_attributes(feature)

        record_id = _upstream_id(attributes)
        if record_id is None:
            record_id = _synthesized_id(index, seen_ids | upstream_ids)
        elif record_id in seen_ids:
            continue
        seen_ids.add(record_id)

        lat, lon = point
        status = STATUS_OFFLINE if attributes.get("offline") == "true" else STATUS_OPERATIONAL
        updated = parse_update_time(_lookup_first(attributes, UPDATED_FIELDS), now)
        image_ref = _lookup_first(attributes, IMAGE_FIELDS)

        records.append(
            CameraRecord(
                id=record_id,
                name=_text(attributes, NAME_FIELDS, DEFAULT_NAME),
                description=_text(attributes, DESCRIPTION_FIELDS, DEFAULT_DESCRIPTION),
                image_url=normalize_image_url(str(image_ref) if image_ref is not None else None),
                region=_text(attributes, REGION_FIELDS, DEFAULT_REGION),
                latitude=lat,
                longitude=lon,
                direction=_text(attributes, DIRECTION_FIELDS, DEFAULT_DIRECTION),
                status=status,
                source=SOURCE_AUTHORITATIVE,
                severity=draw_severity(draw),
                trend=draw_trend(draw),
                confidence=draw_confidence(draw, *CONFIDENCE_RANGE),
                last_update=format_clock(updated),
            )
        )

    return records


def fetch_feature_collection(
    client: HttpClient,
    source: ArcGisSource,
    timeout: TimeoutConfig | None = None,
) -> Any:
    return client.get_json(source.endpoint, params=source.params or None, timeout=timeout)
