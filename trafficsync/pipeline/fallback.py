"""Static camera set served when every live source fails."""

from __future__ import annotations

from datetime import datetime

from trafficsync.common.constants import SOURCE_FALLBACK, STATUS_OPERATIONAL
from trafficsync.common.models import CameraRecord
from trafficsync.common.time_utils import format_clock, local_now

FALLBACK_CAMERAS = (
    {
        "id": "FB-AKL-01",
        "name": "SH1: Oteha Valley Rd",
        "description": "Northbound coverage - Backup Uplink",
        "image_url": "https://www.trafficnz.info/camera/images/20.jpg",
        "region": "Auckland",
        "latitude": -36.723,
        "longitude": 174.706,
        "direction": "North",
        "journey_legs": ("Auckland - North",),
    },
    {
        "id": "FB-AKL-02",
        "name": "SH1: Harbour Bridge",
        "description": "Clip-on lanes - Backup Uplink",
        "image_url": "https://www.trafficnz.info/camera/images/24.jpg",
        "region": "Auckland",
        "latitude": -36.83,
        "longitude": 174.75,
        "direction": "South",
        "journey_legs": ("Auckland - Central",),
    },
    {
        "id": "FB-WLG-01",
        "name": "SH1: Terrace Tunnel",
        "description": "Tunnel approach - Backup Uplink",
        "image_url": "https://www.trafficnz.info/camera/images/423.jpg",
        "region": "Wellington",
        "latitude": -41.285,
        "longitude": 174.773,
        "direction": "North",
        "journey_legs": ("Wellington - City",),
    },
)


def fallback_records(now: datetime | None = None) -> list[CameraRecord]:
    stamp = format_clock(now or local_now())
    return [
        CameraRecord(
            **camera,
            status=STATUS_OPERATIONAL,
            source=SOURCE_FALLBACK,
            severity="low",
            trend="stable",
            confidence=99,
            last_update=stamp,
        )
        for camera in FALLBACK_CAMERAS
    ]
