"""
Entrypoint for the Z.AI reasoning transformer HTTP sidecar.
This file wires the FastAPI application together by importing the core package,
which initializes shared state and registers all routes.
"""

from __future__ import annotations

import argparse
import os

import core  # noqa: F401  # Ensure route modules are imported for side effects
from core.app_state import app, config, logger  # noqa: F401


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Z.AI Reasoning Transformer")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Serve the diagnostic build (zai-debug) with session log and response preview",
    )
    parser.add_argument("--host", default=None, help=f"Bind address (default: {config.APP_HOST})")
    parser.add_argument("--port", type=int, default=None, help=f"Bind port (default: {config.APP_PORT})")
    parser.add_argument("--reload", action="store_true", help="Enable uvicorn reload mode")
    return parser.parse_args(argv)


def apply_args(args: argparse.Namespace) -> None:
    """Fold command line flags into the service settings."""
    if args.debug:
        os.environ["ZAI_TRANSFORMER_DEBUG"] = "true"
        config.DEBUG_TRANSFORMER = True
    if args.host:
        config.APP_HOST = args.host
    if args.port:
        config.APP_PORT = args.port
    if args.reload:
        config.APP_RELOAD = True


if __name__ == "__main__":
    import uvicorn

    apply_args(parse_args())

    logger.info(
        "Starting %s transformer on %s:%d",
        "zai-debug" if config.DEBUG_TRANSFORMER else "zai",
        config.APP_HOST,
        config.APP_PORT,
    )
    uvicorn.run(
        "main:app",
        host=config.APP_HOST,
        port=config.APP_PORT,
        reload=config.APP_RELOAD,
    )
