"""Legacy TrafficNZ REST camera XML parsing."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime

from trafficsync.common.constants import (
    SOURCE_LEGACY,
    STATUS_CONSTRUCTION,
    STATUS_MAINTENANCE,
    STATUS_OFFLINE,
    STATUS_OPERATIONAL,
)
from trafficsync.common.heuristics import Draw, draw_confidence, draw_severity, draw_trend
from trafficsync.common.ids import synthesize_node_id
from trafficsync.common.models import CameraRecord
from trafficsync.common.time_utils import format_clock, local_now
from trafficsync.pipeline.coordinates import valid_lat_lon
from trafficsync.pipeline.image_urls import normalize_image_url

# REST v4 uses <trafficCamera>; v3 and earlier use <camera>.
CAMERA_TAGS = ("trafficCamera", "camera")
CONFIDENCE_RANGE = (80, 98)

DEFAULT_NAME = "Surveillance Node"
DEFAULT_DESCRIPTION = "Live matrix uplink"
DEFAULT_REGION = "NZ Sector"
DEFAULT_DIRECTION = "N/A"

_STATUS_KEYWORDS = (
    ("construction", STATUS_CONSTRUCTION),
    ("maintenance", STATUS_MAINTENANCE),
    ("offline", STATUS_OFFLINE),
    ("out of service", STATUS_OFFLINE),
    ("fault", STATUS_OFFLINE),
    ("inactive", STATUS_OFFLINE),
)


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _clean(element: ET.Element | None) -> str:
    if element is None or element.text is None:
        return ""
    return element.text.strip()


def _find(node: ET.Element, name: str) -> ET.Element | None:
    """First element called ``name`` under ``node``: direct children before descendants."""
    for child in node:
        if _local_name(child.tag) == name:
            return child
    for element in node.iter():
        if element is not node and _local_name(element.tag) == name:
            return element
    return None


def _text(node: ET.Element, *names: str) -> str:
    for name in names:
        value = _clean(_find(node, name))
        if value:
            return value
    return ""


def _nested_text(node: ET.Element, parent: str, name: str) -> str:
    for element in node.iter():
        if element is node or _local_name(element.tag) != parent:
            continue
        for child in element:
            if _local_name(child.tag) == name:
                value = _clean(child)
                if value:
                    return value
    return ""


def _coordinate(node: ET.Element, name: str) -> float | None:
    raw = _nested_text(node, "location", name) or _text(node, name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def normalize_status(raw_status: str) -> str:
    lowered = raw_status.lower()
    for keyword, status in _STATUS_KEYWORDS:
        if keyword in lowered:
            return status
    return STATUS_OPERATIONAL


def camera_nodes(root: ET.Element) -> list[ET.Element]:
    return [element for element in root.iter() if _local_name(element.tag) in CAMERA_TAGS]


def parse_camera_xml(
    xml_text: str,
    draw: Draw,
    now: datetime | None = None,
) -> list[CameraRecord]:
    """Parse a camera listing in either tag scheme.

    Malformed markup yields an empty list. Nodes without two non-zero coordinates
    are skipped; latitude/longitude under ``<location>`` win over top-level tags.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        return []

    stamp = format_clock(now or local_now())
    nodes = camera_nodes(root)
    records: list[CameraRecord] = []
    seen_ids: set[str] = set()
    # Upstream ids are reserved up front so a synthesized id never shadows a later node.
    upstream_ids = {record_id for record_id in (_text(node, "id") for node in nodes) if record_id}

    for node in nodes:
        lat = _coordinate(node, "latitude")
        lon = _coordinate(node, "longitude")
        if not valid_lat_lon(lat, lon):
            continue

        raw_status = _text(node, "status") or STATUS_OPERATIONAL
        record_id = _text(node, "id")
        if record_id in seen_ids:
            continue
        if not record_id:
            record_id = synthesize_node_id(draw, seen_ids | upstream_ids)
        seen_ids.add(record_id)

        records.append(
            CameraRecord(
                id=record_id,
                name=_text(node, "name") or DEFAULT_NAME,
                description=_text(node, "description") or DEFAULT_DESCRIPTION,
                image_url=normalize_image_url(_text(node, "imageUrl", "url")),
                region=_text(node, "region") or DEFAULT_REGION,
                latitude=lat,
                longitude=lon,
                direction=_text(node, "direction") or DEFAULT_DIRECTION,
                status=normalize_status(raw_status),
                source=SOURCE_LEGACY,
                severity=draw_severity(draw, raw_status),
                trend=draw_trend(draw),
                confidence=draw_confidence(draw, *CONFIDENCE_RANGE),
                last_update=stamp,
            )
        )

    return records
