"""Relay pool used to reach the legacy XML endpoint when direct access is blocked."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator
from urllib.parse import quote

from trafficsync.common.http import HttpClient, TimeoutConfig
from trafficsync.common.models import RelayDescriptor
from trafficsync.pipeline.validate import check_relay_payload, unwrap_envelope

# Matches JavaScript's encodeURIComponent, which the relays expect.
_URI_COMPONENT_SAFE = "-_.!~*'()"


def build_relay_target(relay: RelayDescriptor, endpoint: str) -> str:
    if relay.target == "raw":
        return f"{relay.url}{endpoint}"
    return f"{relay.url}{quote(endpoint, safe=_URI_COMPONENT_SAFE)}"


@dataclass(frozen=True)
class RelayPool:
    """Relays in preference order; the first is believed most reliable."""

    relays: tuple[RelayDescriptor, ...]

    def __iter__(self) -> Iterator[RelayDescriptor]:
        return iter(self.relays)

    def __len__(self) -> int:
        return len(self.relays)

    def names(self) -> list[str]:
        return [relay.name for relay in self.relays]

    @classmethod
    def from_descriptors(cls, relays: Iterable[RelayDescriptor]) -> "RelayPool":
        return cls(relays=tuple(relays))


def fetch_via_relay(
    client: HttpClient,
    relay: RelayDescriptor,
    endpoint: str,
    timeout: TimeoutConfig | None = None,
) -> str:
    """Fetch ``endpoint`` through ``relay`` and return the XML body.

    Raises on non-OK status, timeout, a broken envelope, or an empty/HTML body.
    """
    target = build_relay_target(relay, endpoint)
    if relay.encoding == "envelope":
        payload = client.get_json(target, timeout=timeout)
        text = unwrap_envelope(payload, relay.envelope_field, relay_name=relay.name)
    else:
        text = client.get_text(target, timeout=timeout)
    return check_relay_payload(text, relay_name=relay.name)
