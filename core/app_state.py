"""
Z.AI Reasoning Transformer - HTTP sidecar
=========================================

Exposes the request transformer over HTTP for hosts that prefer to run it
out of process. The application object, the service settings and the shared
transformer instance live here; route modules attach to ``app`` on import.
"""

import logging
from typing import Optional, Union

from fastapi import FastAPI
from starlette.middleware.gzip import GZipMiddleware

from config import Config, config
from debug_logger import get_debug_logger, shutdown_debug_logger
from logging_utils import configure_logging
from transformer import DebugReasoningTransformer, ReasoningTransformer

# Setup logging
configure_logging(config.LOG_LEVEL)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Z.AI Reasoning Transformer",
    description="Request transformer for OpenAI-compatible GLM endpoints",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add GZip compression middleware (compresses responses > 1000 bytes)
app.add_middleware(GZipMiddleware, minimum_size=1000)

# Shared transformer, created on first use or during startup
transformer: Optional[Union[ReasoningTransformer, DebugReasoningTransformer]] = None


def build_transformer(settings: Config = config) -> ReasoningTransformer:
    """Create the transformer selected by the service settings."""
    options = settings.TRANSFORMER_OPTIONS
    if settings.DEBUG_TRANSFORMER:
        shared_logger = get_debug_logger(
            log_directory=options.log_directory,
            max_log_size=options.max_log_size,
        )
        return DebugReasoningTransformer(options, debug_logger=shared_logger)
    return ReasoningTransformer(options)


def get_transformer() -> ReasoningTransformer:
    """Return the shared transformer instance (creating if needed)."""
    global transformer
    if transformer is None:
        transformer = build_transformer()
        logger.info("Transformer '%s' ready", transformer.name)
    return transformer


@app.on_event("startup")
async def startup_event():
    """Build the transformer before the first request arrives"""
    get_transformer()


@app.on_event("shutdown")
async def shutdown_event():
    """Wait for pending response previews and close the session log"""
    global transformer
    if isinstance(transformer, DebugReasoningTransformer):
        try:
            await transformer.drain()
        except Exception as exc:
            logger.error("Failed to drain debug transformer: %s", exc)
    transformer = None
    shutdown_debug_logger()
