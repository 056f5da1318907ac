"""FastAPI application exposing the Engage webhook endpoint.

The webhook route hands every call to :meth:`EngageAdapter.process` and
renders whatever the platform client wrote to the :class:`WebhookReply`.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from engage_bridge.config import EngageSettings
from engage_bridge.core.events import WebhookReply
from engage_bridge.engine.adapter import EngageAdapter
from engage_bridge.engine.context import CancellationToken
from engage_bridge.engine.protocols import Bot
from engage_bridge.server.middleware import setup_middleware

logger = logging.getLogger(__name__)


def create_app(
    adapter: EngageAdapter,
    bot: Bot,
    settings: EngageSettings | None = None,
) -> FastAPI:
    """Create the webhook application.

    Args:
        adapter: Adapter that dispatches webhook calls.
        bot: Bot receiving the activities.
        settings: Engage settings; only ``webhook_path`` is read here.

    Each webhook call gets its own :class:`CancellationToken`, handed to the
    adapter and on to the bot. The HTTP layer never trips it: a client
    disconnect does not cancel the dispatch. Callers needing cancellation
    use :meth:`EngageAdapter.process` directly with their own token.

    Returns:
        Configured FastAPI application.

    Example:
        ```python
        client = EngageClient(settings)
        adapter = EngageAdapter(client, PhraseHandoffRecognizer())
        app = create_app(adapter, MyBot(), settings)
        ```
    """
    if settings is None:
        settings = EngageSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Engage webhook listening on %s", settings.webhook_path)
        yield
        aclose = getattr(adapter.client, "aclose", None)
        if aclose is not None:
            try:
                await aclose()
            except Exception as e:
                logger.exception("Closing the Engage client failed: %s", e)
        logger.info("Application shutdown complete")

    app = FastAPI(title="engage-bridge", lifespan=lifespan)
    setup_middleware(app)

    @app.api_route(settings.webhook_path, methods=["GET", "POST"])
    async def webhook(request: Request) -> Response:
        reply = WebhookReply()
        event = await adapter.process(request, reply, bot, CancellationToken())
        logger.debug(
            "Webhook dispatched",
            extra={"kind": event.kind.value, "status_code": reply.status_code},
        )
        return Response(
            content=reply.body,
            status_code=reply.status_code,
            media_type=reply.media_type,
            headers=reply.headers or None,
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return app
