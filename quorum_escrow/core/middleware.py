"""Request logging middleware with request ID, timing and contract error code."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
ERROR_CODE_HEADER = "X-Contract-Error"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request; rejected invocations also carry their error code."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id

        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - start) * 1000, 1)

        response.headers[REQUEST_ID_HEADER] = request_id

        extra = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": elapsed_ms,
        }
        error_code = response.headers.get(ERROR_CODE_HEADER)
        if error_code:
            extra["error_code"] = error_code
            logger.warning("request rejected", extra=extra)
        else:
            logger.info("request", extra=extra)
        return response
