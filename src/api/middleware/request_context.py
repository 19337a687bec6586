# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request context middleware.

Every request gets an id, taken from the X-Request-ID header when the
caller sends one and generated otherwise. The id is stored in
request.state, bound to the structured logging context for the length
of the request, and echoed back on the response.

Example:
    # Request
    GET /api/v1/enrollment/student/abc
    X-Request-ID: 4f0c...

    # Response
    X-Request-ID: 4f0c...
"""

import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Longest caller-supplied id kept as is
_MAX_REQUEST_ID_LENGTH = 128


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware binding a request id to the logging context.

    The id is available to handlers as request.state.request_id.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        """Process the request inside its logging context.

        Args:
            request: Incoming HTTP request.
            call_next: Next middleware/handler.

        Returns:
            HTTP response carrying the request id header.
        """
        request_id = self._request_id(request)
        request.state.request_id = request_id

        clear_context()
        bind_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()

    def _request_id(self, request: Request) -> str:
        """Return the caller's request id, or a fresh one."""
        supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
        if supplied and len(supplied) <= _MAX_REQUEST_ID_LENGTH:
            return supplied
        return str(uuid4())
