"""RingCentral Engage platform client and webhook payload models."""

from engage_bridge.client.engage import EngageClient
from engage_bridge.client.payloads import (
    CustomSourceRequest,
    EngageEvent,
    WebhookPayload,
    parse_payload,
)

__all__ = [
    "CustomSourceRequest",
    "EngageClient",
    "EngageEvent",
    "WebhookPayload",
    "parse_payload",
]
