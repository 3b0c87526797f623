"""Run the scan ingestion server: ``python -m fleetscan``."""

from __future__ import annotations

import argparse
import logging
from typing import Any

from aiohttp import web

from fleetscan.config import ScanConfig
from fleetscan.server import create_app
from fleetscan.service import ScanService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fleetscan", description="RFID/GPS scan ingestion server")
    parser.add_argument("--host", help="Bind address (FLEETSCAN_HOST)")
    parser.add_argument("--port", type=int, help="Bind port (FLEETSCAN_PORT)")
    parser.add_argument("--snapshot-path", help="Pending log snapshot file (FLEETSCAN_SNAPSHOT_PATH)")
    parser.add_argument("--predictor-url", help="Remote ETA predictor endpoint (FLEETSCAN_PREDICTOR_URL)")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    overrides: dict[str, Any] = {}
    if args.host:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    if args.snapshot_path:
        overrides["snapshot_path"] = args.snapshot_path
    if args.predictor_url:
        overrides["predictor_url"] = args.predictor_url
    config = ScanConfig.from_env(**overrides)

    service = ScanService.from_config(config)
    web.run_app(create_app(service), host=config.host, port=config.port)


if __name__ == "__main__":
    main()
