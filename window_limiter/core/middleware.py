"""HTTP middleware for request ID propagation.

Every request/response pair carries a correlation id so that rate-limit
decisions logged during the request can be tied back to it.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from window_limiter.core.config import settings
from window_limiter.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate or generate the request id and time the request.

    The incoming header (``LOG_REQUEST_ID_HEADER``, default ``X-Request-ID``)
    is reused when present; otherwise a UUID4 is generated. The id is stored in
    contextvars for the lifetime of the request and echoed on the response,
    together with ``X-Request-Duration-ms``.

    This runs outside the limiter dependency, so throttled requests (delay
    mode) report the time spent waiting in their duration.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(
        "X-Request-Duration-ms", f"{(time.perf_counter() - start) * 1000:.2f}"
    )
    return response
