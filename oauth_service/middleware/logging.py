"""Per-request access logging for the token service"""

import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from oauth_service.core.config import logger

CORRELATION_HEADER = "X-Correlation-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a correlation id and writes one access log line
    when it finishes.

    The token endpoint records ``grant_type`` and ``client_id`` on
    ``request.state`` once the body is parsed; they are attached to the
    access line so each exchange can be traced from a single record.
    Secrets and token values never reach this log.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"{request.method} {request.url.path} failed",
                extra=self._context(request, correlation_id, started),
            )
            raise

        context = self._context(request, correlation_id, started)
        context["status_code"] = response.status_code
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"grant_type={context['grant_type']} client_id={context['client_id']} "
            f"({context['duration_ms']} ms)",
            extra=context,
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @staticmethod
    def _context(request: Request, correlation_id: str, started: float) -> dict:
        return {
            "correlation_id": correlation_id,
            "method": request.method,
            "path": request.url.path,
            "grant_type": getattr(request.state, "grant_type", None),
            "client_id": getattr(request.state, "client_id", None),
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        }
