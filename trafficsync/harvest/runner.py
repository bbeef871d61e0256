"""Camera acquisition with ordered fail-soft fallback.

Sources are tried one at a time: the authoritative ArcGIS feed, then each relay in
the pool against the legacy XML endpoint, then the static fallback set. The first
source that yields records wins. Nothing raises to the caller.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from trafficsync.common.config_loader import SourcesConfig, default_sources_config
from trafficsync.common.constants import SOURCE_AUTHORITATIVE, SOURCE_FALLBACK, SOURCE_LEGACY
from trafficsync.common.errors import PipelineError, ZeroRecords
from trafficsync.common.heuristics import Draw
from trafficsync.common.http import HttpClient
from trafficsync.common.logging import LOGGER_NAMESPACE, log_event
from trafficsync.common.models import CameraRecord, RelayDescriptor
from trafficsync.common.time_utils import local_now
from trafficsync.harvest.arcgis_harvest import fetch_feature_collection, parse_feature_collection
from trafficsync.harvest.legacy_xml import parse_camera_xml
from trafficsync.harvest.relays import RelayPool, fetch_via_relay
from trafficsync.pipeline.fallback import fallback_records

STAGE = "acquire"


@dataclass(frozen=True)
class SourceAttempt:
    source: str
    status: str
    rows_out: int
    duration_ms: int
    error_code: str | None = None


@dataclass(frozen=True)
class SyncResult:
    records: list[CameraRecord]
    source: str
    attempts: list[SourceAttempt] = field(default_factory=list)

    @property
    def used_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _error_code(exc: Exception) -> str:
    if isinstance(exc, PipelineError):
        return exc.error_code
    return "UNEXPECTED_ERROR"


class CameraAcquisition:
    def __init__(
        self,
        sources: SourcesConfig | None = None,
        *,
        relay_pool: RelayPool | None = None,
        http_client: HttpClient | None = None,
        draw: Draw | None = None,
        clock: Callable[[], datetime] = local_now,
        logger: logging.Logger | None = None,
        run_id: str | None = None,
    ) -> None:
        self.sources = sources or default_sources_config()
        self.relay_pool = relay_pool if relay_pool is not None else RelayPool.from_descriptors(self.sources.relays)
        self.http_client = http_client
        self.draw = draw or random.Random()
        self.clock = clock
        self.logger = logger or logging.getLogger(f"{LOGGER_NAMESPACE}.{STAGE}")
        self.run_id = run_id

    def _log(self, message: str, *, level: int = logging.INFO, **fields) -> None:
        log_event(self.logger, message, level=level, run_id=self.run_id, stage=STAGE, **fields)

    def _authoritative(self, client: HttpClient) -> list[CameraRecord]:
        payload = fetch_feature_collection(client, self.sources.arcgis, timeout=self.sources.timeout)
        records = parse_feature_collection(payload, self.draw, now=self.clock())
        if not records:
            raise ZeroRecords("ArcGIS returned no usable camera features")
        return records

    def _relay(self, client: HttpClient, relay: RelayDescriptor) -> list[CameraRecord]:
        xml_text = fetch_via_relay(client, relay, self.sources.legacy_endpoint, timeout=self.sources.timeout)
        records = parse_camera_xml(xml_text, self.draw, now=self.clock())
        if not records:
            raise ZeroRecords(f"{relay.name} payload held no usable camera nodes")
        return records

    def _attempt(
        self,
        attempts: list[SourceAttempt],
        fetch: Callable[[], list[CameraRecord]],
        *,
        source: str,
        relay: str | None,
        ok_event: str,
        fail_event: str,
    ) -> list[CameraRecord] | None:
        started = time.monotonic()
        try:
            records = fetch()
        except Exception as exc:
            attempt = SourceAttempt(
                source=source,
                status="error",
                rows_out=0,
                duration_ms=_elapsed_ms(started),
                error_code=_error_code(exc),
            )
            attempts.append(attempt)
            self._log(
                f"{relay or source} failed: {exc}",
                level=logging.WARNING,
                source=source,
                relay=relay,
                event=fail_event,
                status="error",
                attempt=len(attempts),
                duration_ms=attempt.duration_ms,
                error_code=attempt.error_code,
            )
            return None

        attempt = SourceAttempt(
            source=source,
            status="ok",
            rows_out=len(records),
            duration_ms=_elapsed_ms(started),
        )
        attempts.append(attempt)
        self._log(
            f"synchronised {len(records)} cameras via {relay or source}",
            source=source,
            relay=relay,
            event=ok_event,
            status="ok",
            attempt=len(attempts),
            duration_ms=attempt.duration_ms,
            rows_out=len(records),
        )
        return records

    def _run(self, client: HttpClient, attempts: list[SourceAttempt]) -> SyncResult:
        if self.sources.arcgis.enabled:
            records = self._attempt(
                attempts,
                lambda: self._authoritative(client),
                source=SOURCE_AUTHORITATIVE,
                relay=None,
                ok_event="SOURCE_OK",
                fail_event="SOURCE_FAIL",
            )
            if records:
                return SyncResult(records=records, source=SOURCE_AUTHORITATIVE, attempts=attempts)

        for relay in self.relay_pool:
            records = self._attempt(
                attempts,
                lambda relay=relay: self._relay(client, relay),
                source=SOURCE_LEGACY,
                relay=relay.name,
                ok_event="RELAY_OK",
                fail_event="RELAY_FAIL",
            )
            if records:
                return SyncResult(records=records, source=SOURCE_LEGACY, attempts=attempts)

        records = fallback_records(self.clock())
        self._log(
            "all live sources failed; serving static fallback set",
            level=logging.ERROR,
            source=SOURCE_FALLBACK,
            event="FALLBACK_ENGAGED",
            status="degraded",
            rows_out=len(records),
        )
        return SyncResult(records=records, source=SOURCE_FALLBACK, attempts=attempts)

    def acquire(self) -> SyncResult:
        self._log(
            f"camera sync start; relays: {', '.join(self.relay_pool.names()) or 'none'}",
            event="SYNC_START",
            status="ok",
        )
        attempts: list[SourceAttempt] = []

        owns_client = self.http_client is None
        client = self.http_client or HttpClient(timeout=self.sources.timeout, retry=self.sources.retry)
        try:
            result = self._run(client, attempts)
        finally:
            if owns_client:
                client.close()

        self._log(
            "camera sync end",
            source=result.source,
            event="SYNC_END",
            status="degraded" if result.used_fallback else "ok",
            rows_out=len(result.records),
        )
        return result

    def acquire_records(self) -> list[CameraRecord]:
        return self.acquire().records


def acquire_records(
    sources: SourcesConfig | None = None,
    *,
    http_client: HttpClient | None = None,
    draw: Draw | None = None,
    logger: logging.Logger | None = None,
    run_id: str | None = None,
) -> list[CameraRecord]:
    return CameraAcquisition(
        sources,
        http_client=http_client,
        draw=draw,
        logger=logger,
        run_id=run_id,
    ).acquire_records()
