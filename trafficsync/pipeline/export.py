"""Record export for downstream consumers."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from trafficsync.common.fs import write_csv, write_json
from trafficsync.common.models import CAMERA_FIELDS, INCIDENT_FIELDS, CameraRecord, IncidentRecord


def write_records_json(path: Path, records: Sequence[CameraRecord | IncidentRecord], **meta: object) -> Path:
    payload = dict(meta)
    payload["row_count"] = len(records)
    payload["rows"] = [record.to_dict() for record in records]
    write_json(path, payload)
    return path


def _csv_row(record: CameraRecord | IncidentRecord) -> dict:
    row = record.to_dict()
    if "journey_legs" in row:
        row["journey_legs"] = "|".join(row["journey_legs"])
    return row


def write_records_csv(
    path: Path,
    records: Sequence[CameraRecord | IncidentRecord],
    headers: list[str] | None = None,
) -> Path:
    if headers is None:
        headers = INCIDENT_FIELDS if records and isinstance(records[0], IncidentRecord) else CAMERA_FIELDS
    write_csv(path, headers, (_csv_row(record) for record in records))
    return path
