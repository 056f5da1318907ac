"""Middleware for request logging and error handling.

Every webhook call gets a request id and a completion log line, and any
exception escaping the adapter is turned into a JSON error response with a
status code derived from the engage-bridge error hierarchy.
"""

import logging
import time
import traceback

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from engage_bridge.exceptions import (
    AdapterError,
    InvalidArgumentError,
    NotSupportedError,
    OperationCancelledError,
    PlatformClientError,
)

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER, f"req-{id(request)}")

        logger.info(
            "Request started",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query) if request.url.query else None,
                "client": request.client.host if request.client else None,
            },
        )

        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.exception(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "duration_ms": round(duration_ms, 2),
                    "error": str(e),
                },
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Converts exceptions into JSON error responses.

    Example:
        ```python
        app.add_middleware(ErrorHandlingMiddleware)
        ```
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except AdapterError as e:
            return self._format_adapter_error(request, e)
        except Exception as e:
            return self._format_unexpected_error(request, e)

    def _format_adapter_error(self, request: Request, error: AdapterError) -> JSONResponse:
        status_code = self._get_status_code(error)

        log = logger.warning if status_code < 500 else logger.error
        log(
            "Adapter error",
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
                "status_code": status_code,
                "path": request.url.path,
            },
        )

        return JSONResponse(
            status_code=status_code,
            content={
                "error": type(error).__name__,
                "message": str(error),
                "path": request.url.path,
            },
        )

    def _format_unexpected_error(self, request: Request, error: Exception) -> JSONResponse:
        logger.exception(
            "Unexpected error",
            extra={
                "error_type": type(error).__name__,
                "error_message": str(error),
                "path": request.url.path,
                "traceback": traceback.format_exc(),
            },
        )

        # Generic message, internals stay in the log.
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "InternalServerError",
                "message": "An unexpected error occurred",
                "path": request.url.path,
            },
        )

    def _get_status_code(self, error: AdapterError) -> int:
        if isinstance(error, InvalidArgumentError):
            return status.HTTP_400_BAD_REQUEST
        if isinstance(error, NotSupportedError):
            return status.HTTP_501_NOT_IMPLEMENTED
        if isinstance(error, OperationCancelledError):
            return 499
        if isinstance(error, PlatformClientError):
            return status.HTTP_503_SERVICE_UNAVAILABLE
        return status.HTTP_500_INTERNAL_SERVER_ERROR


def setup_middleware(app) -> None:
    """Install the middleware stack (last added is outermost)."""
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ErrorHandlingMiddleware)
