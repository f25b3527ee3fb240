from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException
from starlette.requests import Request

from blockify.api.auth import Client, authenticate, load_auth_config, requires_auth
from blockify.api.middleware import (
    AccessLogMiddleware,
    BodySizeLimitMiddleware,
    RequestIdMiddleware,
)
from blockify.api.models import NormalizeIn, NormalizeOut, RenderIn, RenderOut, SchemaOut
from blockify.core.config import BlockifyConfig, env_int
from blockify.core.exceptions import InvalidInputFormat
from blockify.core.normalization import BlockPipeline, NormalizationResult
from blockify.core.render import HtmlRenderer
from blockify.core.schema import SchemaRegistry, default_registry
from blockify.utils.json_safe import to_jsonable

log = logging.getLogger("blockify.api")

DEFAULT_MAX_BODY_BYTES = 1024 * 1024


@dataclass(frozen=True, slots=True)
class ServiceConfig:
    """Configuration for the HTTP service (pipeline settings live in BlockifyConfig)."""

    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES


def create_app(
    config: Optional[BlockifyConfig] = None,
    registry: Optional[SchemaRegistry] = None,
) -> FastAPI:
    """Create the FastAPI app.

    The registry and config are built once and shared read-only by every
    request; each request gets its own ErrorReport.
    """

    cfg = config or BlockifyConfig.from_env()
    reg = registry if registry is not None else default_registry()
    service = ServiceConfig(
        max_body_bytes=env_int("BLOCKIFY_MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES),
    )
    mapping = load_auth_config()
    must_auth = requires_auth(mapping)

    # Logging: safe defaults (no request bodies), can be configured by host app.
    log.setLevel(os.environ.get("BLOCKIFY_LOG_LEVEL", "INFO").upper())

    app = FastAPI(title="Blockify API", version="0.1")

    app.state.cfg = cfg
    app.state.service = service
    app.state.must_auth = must_auth
    app.state.pipeline = BlockPipeline(reg, cfg)

    app.add_middleware(BodySizeLimitMiddleware, max_bytes=service.max_body_bytes)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(AccessLogMiddleware)

    def get_client(
        request: Request,
        x_blockify_api_key: Optional[str] = Header(default=None),
    ) -> Client:
        """Authenticate request.

        Security notes:
        - If auth is required and missing/invalid, fail closed (401).

        """

        if not must_auth:
            client = Client(client_id="anonymous")
        else:
            client = authenticate(x_blockify_api_key, mapping)
            if client is None:
                raise HTTPException(status_code=401, detail="unauthorized")

        request.state.client_id = client.client_id
        return client

    def _normalize(document: Any) -> NormalizationResult:
        pipeline: BlockPipeline = app.state.pipeline
        try:
            return pipeline.normalize(document)
        except InvalidInputFormat:
            raise HTTPException(status_code=400, detail="invalid_input_format")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "auth_required": must_auth, "dev": cfg.dev}

    @app.get("/schemas", response_model=List[SchemaOut])
    def list_schemas(client: Client = Depends(get_client)) -> List[SchemaOut]:
        return [SchemaOut(**schema.summary()) for schema in reg.schemas()]

    @app.post("/normalize", response_model=NormalizeOut, response_model_exclude_none=True)
    def normalize_endpoint(body: NormalizeIn, client: Client = Depends(get_client)) -> NormalizeOut:
        result = _normalize(body.document)
        out = NormalizeOut(
            blocks=result.blocks,
            errors=to_jsonable(result.errors),
            valid=result.is_valid,
        )
        if body.render:
            out.html = HtmlRenderer(reg, cfg).render(result.blocks)
        return out

    @app.post("/render", response_model=RenderOut)
    def render_endpoint(body: RenderIn, client: Client = Depends(get_client)) -> RenderOut:
        # Always normalize first; the renderer only sees canonical trees.
        result = _normalize(body.document)
        renderer = HtmlRenderer(reg, cfg)
        if body.only is not None:
            html = renderer.render_only(result.blocks, body.only, as_text=body.as_text)
        elif body.as_text:
            html = renderer.render_as_text(result.blocks)
        else:
            html = renderer.render(result.blocks)
        return RenderOut(html=html, valid=result.is_valid)

    return app


def app_from_env() -> FastAPI:
    """Factory used by Uvicorn entrypoints; all settings come from BLOCKIFY_* env vars."""

    return create_app()


# Default ASGI app (importable as blockify.api.server:app)
app = app_from_env()
