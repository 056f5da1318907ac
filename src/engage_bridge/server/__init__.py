"""HTTP surface: FastAPI app factory, middleware and uvicorn runner."""

from engage_bridge.server.app import create_app
from engage_bridge.server.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    setup_middleware,
)
from engage_bridge.server.run import run_server

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "create_app",
    "run_server",
    "setup_middleware",
]
