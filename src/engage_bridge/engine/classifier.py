"""Inbound webhook classification.

Decides which kind of event a webhook request represents. Verification
handshakes are detected from the query string alone; everything else is
delegated to the platform client's payload parser. Classification never
raises: a malformed webhook degrades to ``UNKNOWN`` so a single bad
request cannot take the listener down.
"""

import asyncio
import logging

from fastapi import Request

from engage_bridge.core.events import ClassifiedEvent, WebhookReply
from engage_bridge.engine.protocols import PlatformClient

logger = logging.getLogger(__name__)

VERIFY_WEBHOOK_QUERY_KEY = "hub.mode"


def is_verification_request(request: Request) -> bool:
    """True when the query string carries the subscription handshake marker."""
    return request.query_params is not None and VERIFY_WEBHOOK_QUERY_KEY in request.query_params


class EventClassifier:
    """Maps inbound requests to :class:`ClassifiedEvent` values."""

    def __init__(self, client: PlatformClient) -> None:
        self._client = client

    async def classify(self, request: Request, reply: WebhookReply) -> ClassifiedEvent:
        if is_verification_request(request):
            return ClassifiedEvent.verify_webhook()

        try:
            event = await self._client.get_activity_from_request(request, reply)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "Could not classify webhook payload: %s",
                e,
                extra={"path": request.url.path, "error_type": type(e).__name__},
            )
            return ClassifiedEvent.unknown()

        if event is None:
            return ClassifiedEvent.unknown()
        return event
