"""FastAPI middleware for cross-cutting concerns."""

import uuid
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.logging_config import actor_id_var, correlation_id_var


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds per-request logging context.

    - Reads ``X-Correlation-ID`` from the request, generating a UUID v4 when
      absent, and echoes it back on the response.
    - Records the caller-supplied ``X-Actor-ID`` so ledger log lines name
      the actor. The header is not validated here; role checks happen in the
      route dependencies.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        correlation_token = correlation_id_var.set(correlation_id)
        actor_token = actor_id_var.set(request.headers.get("X-Actor-ID", ""))

        try:
            response = await call_next(request)
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            actor_id_var.reset(actor_token)
            correlation_id_var.reset(correlation_token)
