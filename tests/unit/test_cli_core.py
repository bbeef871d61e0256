from trafficsync.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["cameras"])
    assert args.command == "cameras"
    assert args.config_dir == "./config"
    assert args.overlay_config_dir is None
    assert args.format == "json"
    assert args.seed is None


def test_parse_args_accepts_overrides():
    args = parse_args(["incidents", "--overlay-config-dir", "config/live", "--format", "csv", "--seed", "7"])
    assert args.command == "incidents"
    assert args.overlay_config_dir == "config/live"
    assert args.format == "csv"
    assert args.seed == 7
