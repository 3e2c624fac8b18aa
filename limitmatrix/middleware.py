import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response

from .logging_utils import log_api_request

REQUEST_ID_HEADER = "X-Request-ID"


async def log_requests_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Middleware to log all HTTP requests with timing information.

    A request id taken from ``X-Request-ID`` (or generated) is bound to the
    structlog context for the duration of the request and echoed back.

    Args:
        request: FastAPI request object
        call_next: Next middleware/route handler in the chain

    Returns:
        Response from the route handler
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    structlog.contextvars.bind_contextvars(request_id=request_id)
    start_time = time.time()

    try:
        response = await call_next(request)

        process_time = (time.time() - start_time) * 1000  # Convert to milliseconds
        log_api_request(
            request=request,
            response_status=response.status_code,
            process_time_ms=process_time,
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        structlog.contextvars.clear_contextvars()
