from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from animarr.infrastructure.config import load_config
from animarr.infrastructure.logging.setup import configure_logging
from animarr.interfaces.app import create_app

log = structlog.get_logger(__name__)

_DEFAULT_PORT = "7979"

# argparse dest -> flat config override key
_OVERRIDE_FLAGS: dict[str, str] = {
    "plugin_dir": "plugin_dir",
    "cache_dir": "cache_dir",
    "public_base_url": "public_base_url",
    "log_level": "log_level",
    "log_format": "log_format",
}


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="animarr",
        description="Anime streaming aggregator and delivery proxy.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help="Bind host (default: HOST env or 0.0.0.0).")
    server.add_argument(
        "--port", type=int, help=f"Bind port (default: PORT env or {_DEFAULT_PORT})."
    )

    sources = parser.add_argument_group("configuration sources")
    sources.add_argument("--config", help="YAML config file.")
    sources.add_argument("--dotenv", help=".env file loaded before env overrides.")

    overrides = parser.add_argument_group("overrides")
    overrides.add_argument("--plugin-dir", help="Directory of provider plugins.")
    overrides.add_argument("--cache-dir", help="diskcache directory.")
    overrides.add_argument(
        "--public-base-url",
        help="External base URL used to build public proxy links.",
    )
    overrides.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    overrides.add_argument("--log-format", choices=["json", "console"])

    return parser.parse_args(list(argv) if argv is not None else None)


def build_cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flag values the user actually passed, keyed for ``load_config``."""
    return {
        key: getattr(args, dest)
        for dest, key in _OVERRIDE_FLAGS.items()
        if getattr(args, dest, None)
    }


def start(argv: Iterable[str] | None = None) -> None:
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=build_cli_overrides(args),
    )
    log_config = configure_logging(config)

    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = args.port or int(os.getenv("PORT", _DEFAULT_PORT))
    log.info(
        "server_starting",
        host=host,
        port=port,
        environment=config.environment,
        plugin_dir=str(config.plugin_dir),
    )
    uvicorn.run(create_app(config), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    raise SystemExit(start())
