"""Relay response validation ahead of parsing."""

from __future__ import annotations

from typing import Any

from trafficsync.common.errors import MalformedPayload

_HTML_PREFIXES = ("<!doctype html", "<html")


def is_html_error_page(text: str) -> bool:
    return text.strip().lower().startswith(_HTML_PREFIXES)


def check_relay_payload(text: str | None, *, relay_name: str = "relay") -> str:
    if text is None or not text.strip():
        raise MalformedPayload(f"{relay_name} returned an empty body")
    if is_html_error_page(text):
        raise MalformedPayload(f"{relay_name} returned an HTML page instead of XML")
    return text


def unwrap_envelope(payload: Any, field: str, *, relay_name: str = "relay") -> str:
    if not isinstance(payload, dict):
        raise MalformedPayload(f"{relay_name} envelope is not a JSON object")
    inner = payload.get(field)
    if inner is None:
        raise MalformedPayload(f"{relay_name} envelope has no '{field}' field")
    if not isinstance(inner, str):
        raise MalformedPayload(f"{relay_name} envelope field '{field}' is not text")
    return inner
