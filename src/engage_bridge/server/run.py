"""Uvicorn runner for the webhook application."""

import logging
from typing import Any

import uvicorn
from fastapi import FastAPI

from engage_bridge.config import ServerSettings
from engage_bridge.log import configure_logging

logger = logging.getLogger(__name__)


def run_server(
    app: FastAPI | str,
    settings: ServerSettings | None = None,
    **uvicorn_kwargs: Any,
) -> None:
    """Run the application with uvicorn.

    Args:
        app: FastAPI application instance or import string.
        settings: Server settings (loads from env vars if None).
        **uvicorn_kwargs: Extra arguments for ``uvicorn.run``; they override
            the settings.
    """
    if settings is None:
        settings = ServerSettings()

    configure_logging(settings.log_level)

    uvicorn_config = {
        "host": settings.host,
        "port": settings.port,
        "reload": settings.reload,
        "log_level": settings.log_level,
        "access_log": settings.access_log,
    }
    uvicorn_config.update(uvicorn_kwargs)

    logger.info(
        "Starting uvicorn server",
        extra={"host": uvicorn_config["host"], "port": uvicorn_config["port"]},
    )

    try:
        uvicorn.run(app, **uvicorn_config)
    except KeyboardInterrupt:
        logger.info("Server shutdown by user")
    except Exception as e:
        logger.exception("Server failed: %s", e)
        raise
