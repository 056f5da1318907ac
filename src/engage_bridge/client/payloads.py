"""Engage webhook payloads and their conversion to activities.

Engage calls the adapter with two families of payloads:

- Webhook notifications (``{"events": [...]}``) for subscribed event types
  such as ``content.imported`` or ``intervention.opened``.
- Custom source SDK requests (``{"action": ..., "params": {...}}``) issued
  by the agent tooling, e.g. ``messages.create`` when an agent replies.
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from engage_bridge.core.activity import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ChannelData,
    ConversationAccount,
)
from engage_bridge.exceptions import PayloadError

CONTENT_IMPORTED = "content.imported"
INTERVENTION_PREFIX = "intervention."

ACTION_MESSAGES_CREATE = "messages.create"
ACTION_IMPLEMENTATION_INFO = "implementation.info"
LIST_ACTIONS = frozenset({"threads.list", "messages.list", "private_messages.list"})

IMPLEMENTATION_INFO: dict[str, Any] = {
    "objects": {
        "messages": ["create", "list"],
        "private_messages": ["list"],
        "threads": ["list"],
    },
    "options": [],
}


class ResourceMetadata(BaseModel):
    """Metadata of the resource an Engage event refers to."""

    model_config = ConfigDict(extra="allow")

    body: str | None = None
    thread_id: str | None = None
    source_id: str | None = None
    source_type: str | None = None
    author_id: str | None = None
    user_id: str | None = None
    in_reply_to_id: str | None = None
    created_at: datetime | None = None


class EventResource(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str | None = None
    id: str
    metadata: ResourceMetadata = Field(default_factory=ResourceMetadata)


class EngageEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    id: str | None = None
    issued_at: datetime | None = None
    resource: EventResource


class WebhookPayload(BaseModel):
    """Webhook notification envelope."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    domain_id: str | None = None
    events: list[EngageEvent] = Field(default_factory=list)


class CustomSourceRequest(BaseModel):
    """Custom source SDK call made by the Engage agent tooling."""

    model_config = ConfigDict(extra="allow")

    action: str
    params: dict[str, Any] = Field(default_factory=dict)


def parse_payload(data: Any) -> WebhookPayload | CustomSourceRequest:
    """Validate a decoded JSON body as one of the two payload families.

    Raises:
        PayloadError: If the body matches neither shape.
    """
    if not isinstance(data, dict):
        raise PayloadError(f"Expected a JSON object, got {type(data).__name__}")

    try:
        if "action" in data:
            return CustomSourceRequest.model_validate(data)
        if "events" in data:
            return WebhookPayload.model_validate(data)
        if "type" in data and "resource" in data:
            # Single event delivered without the envelope.
            return WebhookPayload(events=[EngageEvent.model_validate(data)])
    except ValidationError as e:
        raise PayloadError(f"Invalid Engage payload: {e.error_count()} validation error(s)", cause=e) from e

    raise PayloadError("Payload is neither an Engage webhook nor a custom source request")


def activity_from_content_event(event: EngageEvent) -> Activity:
    """Build the user message activity for a ``content.imported`` event.

    Raises:
        PayloadError: If the content has no source or thread.
    """
    meta = event.resource.metadata
    if not meta.source_id or not meta.thread_id:
        raise PayloadError(f"Content '{event.resource.id}' has no source_id or thread_id")

    return Activity(
        type=ActivityTypes.MESSAGE,
        id=event.resource.id,
        text=meta.body or "",
        timestamp=meta.created_at or event.issued_at or datetime.now(timezone.utc),
        from_property=ChannelAccount(id=meta.author_id or "unknown", role="user"),
        recipient=ChannelAccount(id=meta.source_id, role="bot"),
        conversation=ConversationAccount(id=meta.thread_id),
        reply_to_id=meta.in_reply_to_id,
        channel_data=ChannelData(
            source_id=meta.source_id,
            thread_id=meta.thread_id,
            author_id=meta.author_id,
            content_id=event.resource.id,
            source_type=meta.source_type,
        ),
    )


def activity_from_intervention_event(event: EngageEvent) -> Activity:
    """Build the event activity for an ``intervention.*`` notification."""
    meta = event.resource.metadata
    if not meta.source_id:
        raise PayloadError(f"Intervention '{event.resource.id}' has no source_id")

    return Activity(
        type=ActivityTypes.EVENT,
        id=event.id or event.resource.id,
        name=event.type,
        value=event.resource.model_dump(mode="json"),
        timestamp=event.issued_at or datetime.now(timezone.utc),
        from_property=ChannelAccount(id=meta.user_id or "engage", role="agent"),
        conversation=ConversationAccount(id=meta.thread_id) if meta.thread_id else None,
        channel_data=ChannelData(
            source_id=meta.source_id,
            thread_id=meta.thread_id,
            author_id=meta.author_id,
            source_type=meta.source_type,
        ),
    )


def activity_from_agent_message(request: CustomSourceRequest, source_id: str) -> Activity:
    """Build the message activity for an agent reply (``messages.create``)."""
    params = request.params
    thread_id = params.get("thread_id")
    if not thread_id:
        raise PayloadError("messages.create request has no thread_id")
    author_id = _optional_str(params.get("author_id"))

    return Activity(
        type=ActivityTypes.MESSAGE,
        id=str(params.get("id") or uuid.uuid4().hex),
        text=params.get("body") or "",
        from_property=ChannelAccount(id=author_id or "agent", role="agent"),
        conversation=ConversationAccount(id=str(thread_id)),
        reply_to_id=_optional_str(params.get("in_reply_to_id")),
        value=params,
        channel_data=ChannelData(
            source_id=source_id,
            thread_id=str(thread_id),
            author_id=author_id,
        ),
    )


def _optional_str(value: Any) -> str | None:
    """Engage sends ids as strings or numbers depending on the source."""
    return None if value is None or value == "" else str(value)


def agent_message_receipt(activity: Activity) -> dict[str, Any]:
    """Object Engage expects back after ``messages.create``."""
    channel_data = activity.get_channel_data()
    return {
        "id": activity.id,
        "body": activity.text,
        "thread_id": channel_data.thread_id,
        "in_reply_to_id": activity.reply_to_id,
        "created_at": activity.timestamp.isoformat(),
    }
