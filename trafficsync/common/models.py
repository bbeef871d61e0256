"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from trafficsync.common.constants import RECORD_TYPE_FEED, STATUSES
from trafficsync.common.heuristics import SEVERITY_LEVELS, TREND_LEVELS


@dataclass(frozen=True)
class CameraRecord:
    id: str
    name: str
    description: str
    image_url: str
    region: str
    latitude: float
    longitude: float
    direction: str
    status: str
    source: str
    severity: str
    trend: str
    confidence: int
    last_update: str
    journey_legs: tuple[str, ...] = field(default_factory=tuple)
    type: str = RECORD_TYPE_FEED

    def __post_init__(self) -> None:
        if self.status not in STATUSES:
            raise ValueError(f"Unknown camera status: {self.status!r}")
        if self.severity not in SEVERITY_LEVELS:
            raise ValueError(f"Unknown severity level: {self.severity!r}")
        if self.trend not in TREND_LEVELS:
            raise ValueError(f"Unknown trend level: {self.trend!r}")

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["journey_legs"] = list(self.journey_legs)
        return payload


@dataclass(frozen=True)
class IncidentRecord:
    title: str
    description: str
    latitude: float
    longitude: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


CAMERA_FIELDS = [
    "id",
    "name",
    "description",
    "image_url",
    "region",
    "latitude",
    "longitude",
    "direction",
    "status",
    "source",
    "severity",
    "trend",
    "confidence",
    "last_update",
    "journey_legs",
    "type",
]

INCIDENT_FIELDS = ["title", "description", "latitude", "longitude"]


@dataclass(frozen=True)
class RelayDescriptor:
    """A third-party relay that proxies the legacy XML endpoint.

    ``encoding`` is ``raw`` when the response body is the payload and ``envelope``
    when the payload sits in the JSON field named by ``envelope_field``. ``target``
    says how the upstream endpoint is appended to ``url``: verbatim (``raw``) or
    percent-encoded (``quoted``).
    """

    name: str
    url: str
    encoding: str = "raw"
    target: str = "quoted"
    envelope_field: str = "contents"

    @classmethod
    def from_config(cls, relay: dict[str, Any]) -> "RelayDescriptor":
        return cls(
            name=str(relay["name"]),
            url=str(relay["url"]),
            encoding=str(relay.get("encoding", "raw")),
            target=str(relay.get("target", "quoted")),
            envelope_field=str(relay.get("envelope_field", "contents")),
        )
