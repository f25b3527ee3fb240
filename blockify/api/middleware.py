from __future__ import annotations

import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

log = logging.getLogger("blockify.api")

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a request id to every response (X-Request-ID).

    A client-supplied id is echoed only when it is short and printable;
    otherwise a fresh one is generated so it cannot inject into logs.
    """

    def __init__(self, app, *, header_name: str = "X-Request-ID", max_len: int = 128):
        super().__init__(app)
        self._header_name = header_name
        self._max_len = max_len

    async def dispatch(self, request: Request, call_next: Callable):
        rid = request.headers.get(self._header_name)
        if not rid or len(rid) > self._max_len or not rid.isprintable():
            rid = uuid4().hex
        request.state.request_id = rid
        response: Response = await call_next(request)
        response.headers[self._header_name] = rid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Structured access logging.

    Security notes:
    - Documents are never logged; only method, path, status and timing.

    """

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.monotonic()
        response: Optional[Response] = None
        try:
            response = await call_next(request)
            return response
        finally:
            log.info(
                "api_request",
                extra={
                    "request_id": getattr(request.state, "request_id", None),
                    "client_id": getattr(request.state, "client_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": int((time.monotonic() - start) * 1000),
                },
            )


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies larger than max_bytes before they are read.

    Body-carrying requests must declare Content-Length; without it the
    request is refused (411) rather than streamed unbounded.
    """

    def __init__(self, app, *, max_bytes: int):
        super().__init__(app)
        self._max_bytes = int(max_bytes)

    async def dispatch(self, request: Request, call_next: Callable):
        if request.method in _BODY_METHODS:
            raw = request.headers.get("content-length")
            if raw is None:
                return JSONResponse({"detail": "length_required"}, status_code=411)
            try:
                length = int(raw)
            except ValueError:
                return JSONResponse({"detail": "invalid_content_length"}, status_code=400)
            if length > self._max_bytes:
                return JSONResponse({"detail": "body_too_large"}, status_code=413)
        return await call_next(request)
