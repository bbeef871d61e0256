"""CLI entrypoint for the traffic camera sync pipeline."""

from __future__ import annotations

import argparse
import logging
import random
import sys
from pathlib import Path

from trafficsync.common.config_loader import load_sources_config
from trafficsync.common.constants import COMMANDS, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS
from trafficsync.common.errors import ConfigError, PipelineError
from trafficsync.common.http import HttpClient
from trafficsync.common.ids import generate_run_id
from trafficsync.common.logging import build_logger, log_event
from trafficsync.common.models import CAMERA_FIELDS, INCIDENT_FIELDS
from trafficsync.harvest.incidents import fetch_incidents
from trafficsync.harvest.runner import CameraAcquisition
from trafficsync.pipeline.export import write_records_csv, write_records_json


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--out", default=None)
    parser.add_argument("--format", default="json", choices=["json", "csv"])
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-dir", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def _default_out(command: str, fmt: str) -> Path:
    return Path("data") / f"{command}.{fmt}"


def _write(path: Path, fmt: str, records, headers: list[str], **meta) -> None:
    if fmt == "csv":
        write_records_csv(path, records, headers)
    else:
        write_records_json(path, records, **meta)


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    log_dir = Path(args.log_dir) if args.log_dir else None
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    out_path = Path(args.out) if args.out else _default_out(args.command, args.format)

    logger = build_logger(run_id, log_dir=log_dir, level=args.log_level)
    sources = load_sources_config(Path(args.config_dir), overlay_config_dir=overlay_config_dir)

    if args.command == "cameras":
        acquisition = CameraAcquisition(
            sources,
            draw=random.Random(args.seed),
            logger=logger,
            run_id=run_id,
        )
        result = acquisition.acquire()
        _write(out_path, args.format, result.records, CAMERA_FIELDS, run_id=run_id, source=result.source)
        return EXIT_PARTIAL if result.used_fallback else EXIT_SUCCESS

    with HttpClient(timeout=sources.timeout) as client:
        try:
            incidents = fetch_incidents(client, sources.incidents, timeout=sources.timeout)
        except PipelineError as exc:
            log_event(
                logger,
                f"incident feed unavailable: {exc}",
                level=logging.WARNING,
                run_id=run_id,
                stage="incidents",
                event="SOURCE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            _write(out_path, args.format, [], INCIDENT_FIELDS, run_id=run_id, source=None)
            return EXIT_PARTIAL

    log_event(
        logger,
        f"fetched {len(incidents)} incidents",
        run_id=run_id,
        stage="incidents",
        event="SOURCE_OK",
        status="ok",
        rows_out=len(incidents),
    )
    _write(out_path, args.format, incidents, INCIDENT_FIELDS, run_id=run_id, source=sources.incidents.endpoint)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except ConfigError:
        return EXIT_HARD_FAIL
    except Exception:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
