from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from vista_api.core.metrics import request_metrics
from vista_api.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        status_code = 500
        method = request.method
        response = None

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            endpoint = _route_template(request)
            user_id, account_type = _extract_identity(request)
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            request_metrics.observe(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                account_type=account_type,
            )

            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "account_type": account_type,
                    "endpoint": endpoint,
                    "method": method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if response is not None:
                response.headers["X-Request-ID"] = request_id

            clear_request_context()


def _route_template(request: Request) -> str:
    # /activities/{entity_id} instead of one series per id
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


def _extract_identity(request: Request) -> tuple[str | None, str | None]:
    # plain values; the ORM user may be detached after a rollback
    return getattr(request.state, "user_id", None), getattr(request.state, "account_type", None)
