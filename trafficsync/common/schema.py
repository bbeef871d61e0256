"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from trafficsync.common.errors import ConfigError

RELAY_ENCODINGS = {"raw", "envelope"}
RELAY_TARGETS = {"raw", "quoted"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"Expected a mapping for {ctx}")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number")


def validate_relay_config(relay: dict, idx: int, *, allow_unknown: bool = False) -> dict:
    ctx = f"relays[{idx}]"
    _assert_required_keys(relay, {"name", "url", "encoding", "target"}, ctx)
    _assert_no_unknown_keys(relay, {"name", "url", "encoding", "target", "envelope_field"}, ctx, allow_unknown)
    if relay["encoding"] not in RELAY_ENCODINGS:
        raise ConfigError(f"{ctx}.encoding must be one of: {', '.join(sorted(RELAY_ENCODINGS))}")
    if relay["target"] not in RELAY_TARGETS:
        raise ConfigError(f"{ctx}.target must be one of: {', '.join(sorted(RELAY_TARGETS))}")
    if not str(relay["url"]).startswith(("http://", "https://")):
        raise ConfigError(f"{ctx}.url must be an absolute http(s) URL")
    return relay


def validate_sources_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"request", "arcgis", "legacy", "relays", "incidents"}
    _assert_required_keys(cfg, top_required, "sources config")
    _assert_no_unknown_keys(cfg, top_required, "sources config", allow_unknown)

    _assert_required_keys(cfg["request"], {"timeout_seconds", "max_attempts"}, "request")
    _assert_positive(cfg["request"]["timeout_seconds"], "request.timeout_seconds")
    _assert_positive(cfg["request"]["max_attempts"], "request.max_attempts")

    _assert_required_keys(cfg["arcgis"], {"enabled", "endpoint"}, "arcgis")
    _assert_no_unknown_keys(cfg["arcgis"], {"enabled", "endpoint", "params"}, "arcgis", allow_unknown)
    if not isinstance(cfg["arcgis"]["enabled"], bool):
        raise ConfigError("arcgis.enabled must be true or false")
    params = cfg["arcgis"].get("params")
    if params is not None and not isinstance(params, dict):
        raise ConfigError("arcgis.params must be a mapping")
    _assert_required_keys(cfg["legacy"], {"endpoint"}, "legacy")
    _assert_required_keys(cfg["incidents"], {"endpoint", "max_attempts"}, "incidents")
    _assert_positive(cfg["incidents"]["max_attempts"], "incidents.max_attempts")

    if not isinstance(cfg["relays"], list):
        raise ConfigError("relays must be a list")
    names: list[str] = []
    for idx, relay in enumerate(cfg["relays"]):
        validate_relay_config(relay, idx, allow_unknown=allow_unknown)
        names.append(relay["name"])

    dupes = {name for name in names if names.count(name) > 1}
    if dupes:
        raise ConfigError(f"Duplicate relay names: {', '.join(sorted(dupes))}")

    return cfg
