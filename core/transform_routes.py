"""
Transformation API routes.
"""

from typing import Any, Dict, Optional

from fastapi import Depends
from pydantic import BaseModel, Field

from model_catalog import DEFAULT_MAX_TOKENS
from transformer import ReasoningTransformer

from .app_state import app, get_transformer


class TransformRequestBody(BaseModel):
    """Envelope for a chat request plus the host metadata passed alongside it."""

    request: Dict[str, Any] = Field(..., description="Chat-completion request from the client")
    provider: Optional[Dict[str, Any]] = Field(default=None, description="Provider metadata (name, baseUrl, models)")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Opaque per-call context")


def _active_transformer() -> ReasoningTransformer:
    return get_transformer()


@app.post("/transform/request")
async def transform_request(
    body: TransformRequestBody,
    transformer: ReasoningTransformer = Depends(_active_transformer),
):
    return await transformer.transform_request_in(body.request, body.provider, body.context)


@app.get("/models")
async def list_models(transformer: ReasoningTransformer = Depends(_active_transformer)):
    return {
        "models": transformer.catalog.as_dict(),
        "default": transformer.catalog.default.model_dump(),
        "default_max_tokens": DEFAULT_MAX_TOKENS,
        "keywords": transformer.keywords,
    }


@app.get("/health")
async def health(transformer: ReasoningTransformer = Depends(_active_transformer)):
    return {"status": "ok", "transformer": transformer.name}
