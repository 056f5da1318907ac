"""Webhook dispatch engine: classification, handoff and the adapter."""

from engage_bridge.engine.adapter import EngageAdapter
from engage_bridge.engine.classifier import (
    VERIFY_WEBHOOK_QUERY_KEY,
    EventClassifier,
    is_verification_request,
)
from engage_bridge.engine.context import CancellationToken, TurnContext
from engage_bridge.engine.handoff import ConversationControlCoordinator
from engage_bridge.engine.protocols import (
    Bot,
    HandoffRequestRecognizer,
    PlatformClient,
    TurnMiddleware,
)
from engage_bridge.engine.recognizer import PhraseHandoffRecognizer, StaticHandoffRecognizer

__all__ = [
    # Adapter
    "EngageAdapter",
    # Classification
    "EventClassifier",
    "VERIFY_WEBHOOK_QUERY_KEY",
    "is_verification_request",
    # Turns
    "CancellationToken",
    "TurnContext",
    # Handoff
    "ConversationControlCoordinator",
    "PhraseHandoffRecognizer",
    "StaticHandoffRecognizer",
    # Protocols
    "Bot",
    "HandoffRequestRecognizer",
    "PlatformClient",
    "TurnMiddleware",
]
