from pathlib import Path

import pytest

from trafficsync.common.config_loader import default_sources_config, load_sources_config
from trafficsync.common.errors import ConfigError

BASE_CONFIG = """request:
  timeout_seconds: 12
  max_attempts: 1
arcgis:
  enabled: true
  endpoint: "https://arcgis.example.test/query"
  params:
    f: geojson
legacy:
  endpoint: "https://legacy.example.test/cameras/all"
relays:
  - name: first
    url: "https://first.example.test/get?url="
    encoding: envelope
    target: quoted
  - name: second
    url: "https://second.example.test/?"
    encoding: raw
    target: raw
incidents:
  endpoint: "https://legacy.example.test/incidents"
  max_attempts: 3
"""


def _write_config(directory: Path, text: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "sources.yml").write_text(text, encoding="utf-8")
    return directory


def test_load_sources_config_from_repo_config_dir():
    sources = load_sources_config(Path("config"))

    assert sources.timeout.deadline == 12.0
    assert sources.retry.max_attempts == 1
    assert sources.arcgis.enabled is True
    assert sources.arcgis.params["f"] == "geojson"
    assert [relay.name for relay in sources.relays] == ["allorigins", "corsproxy", "codetabs", "thingproxy"]


def test_repo_config_matches_builtin_defaults():
    assert load_sources_config(Path("config")) == default_sources_config()


def test_load_sources_config_builds_relay_descriptors(tmp_path: Path):
    sources = load_sources_config(_write_config(tmp_path / "base", BASE_CONFIG))

    first, second = sources.relays
    assert (first.name, first.encoding, first.target, first.envelope_field) == ("first", "envelope", "quoted", "contents")
    assert (second.encoding, second.target) == ("raw", "raw")
    assert sources.incidents.max_attempts == 3


def test_load_sources_config_applies_overlay_values(tmp_path: Path):
    base = _write_config(tmp_path / "base", BASE_CONFIG)
    overlay = _write_config(
        tmp_path / "overlay",
        """request:
  timeout_seconds: 5
arcgis:
  enabled: false
relays:
  - name: only
    url: "https://only.example.test/?"
    encoding: raw
    target: raw
""",
    )

    sources = load_sources_config(base, overlay_config_dir=overlay)

    assert sources.timeout.deadline == 5.0
    assert sources.retry.max_attempts == 1
    assert sources.arcgis.enabled is False
    assert sources.arcgis.endpoint == "https://arcgis.example.test/query"
    assert [relay.name for relay in sources.relays] == ["only"]


def test_missing_config_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_sources_config(tmp_path)


def test_unknown_keys_rejected_unless_allowed(tmp_path: Path):
    config_dir = _write_config(tmp_path, BASE_CONFIG + "extra: 1\n")

    with pytest.raises(ConfigError):
        load_sources_config(config_dir)
    assert load_sources_config(config_dir, allow_unknown=True).legacy_endpoint.endswith("/cameras/all")


@pytest.mark.parametrize(
    "old, new",
    [
        ("encoding: envelope", "encoding: base64"),
        ("target: quoted", "target: double"),
        ('"https://first.example.test/get?url="', '"ftp://first.example.test/"'),
        ("timeout_seconds: 12", "timeout_seconds: 0"),
        ("name: second", "name: first"),
        ("enabled: true", 'enabled: "false"'),
        ("enabled: true", "enabled: 0"),
        ("  params:\n    f: geojson", "  params: geojson"),
        ("  params:\n    f: geojson", "  params:\n    - geojson"),
    ],
)
def test_invalid_values_raise_config_error(tmp_path: Path, old: str, new: str):
    config_dir = _write_config(tmp_path, BASE_CONFIG.replace(old, new, 1))
    with pytest.raises(ConfigError):
        load_sources_config(config_dir)
