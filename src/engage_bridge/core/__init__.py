"""Core schema: activities, channel data and webhook classification types."""

from engage_bridge.core.activity import (
    CHANNEL_ID,
    Activity,
    ActivityTypes,
    ChannelAccount,
    ChannelData,
    ConversationAccount,
    ConversationReference,
    ResourceResponse,
)
from engage_bridge.core.events import (
    ClassifiedEvent,
    HandledEventKind,
    HandoffOutcome,
    HandoffTarget,
    Thread,
    WebhookReply,
)

__all__ = [
    # Activity schema
    "CHANNEL_ID",
    "Activity",
    "ActivityTypes",
    "ChannelAccount",
    "ChannelData",
    "ConversationAccount",
    "ConversationReference",
    "ResourceResponse",
    # Classification and handoff
    "ClassifiedEvent",
    "HandledEventKind",
    "HandoffOutcome",
    "HandoffTarget",
    "Thread",
    "WebhookReply",
]
