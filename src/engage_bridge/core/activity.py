"""Normalized activity schema exchanged with the bot pipeline.

An :class:`Activity` is the transport-neutral unit a bot consumes and
produces. Engage-specific identifiers travel alongside it as
:class:`ChannelData`, which can be read back either tolerantly
(:meth:`Activity.try_get_channel_data`) or strictly
(:meth:`Activity.get_channel_data`).
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from engage_bridge.exceptions import ChannelDataMissingError

CHANNEL_ID = "ringcentral"


class ActivityTypes(str, Enum):
    """Activity type tags understood by the bot pipeline."""

    MESSAGE = "message"
    TYPING = "typing"
    EVENT = "event"
    CONVERSATION_UPDATE = "conversationUpdate"
    END_OF_CONVERSATION = "endOfConversation"
    HANDOFF = "handoff"
    TRACE = "trace"


class ChannelAccount(BaseModel):
    """Participant in a conversation (user, agent or bot)."""

    id: str
    name: str | None = None
    role: str | None = None


class ConversationAccount(BaseModel):
    """Conversation an activity belongs to."""

    id: str
    name: str | None = None
    is_group: bool = False


class ChannelData(BaseModel):
    """Engage identifiers correlating an activity with platform objects.

    ``source_id`` identifies the Engage source content is posted to and is
    required to send. ``thread_id`` identifies the content thread and is
    required for handoff.
    """

    model_config = ConfigDict(populate_by_name=True)

    source_id: str = Field(alias="SourceId")
    thread_id: str | None = Field(default=None, alias="ThreadId")
    author_id: str | None = Field(default=None, alias="AuthorId")
    content_id: str | None = Field(default=None, alias="ContentId")
    source_type: str | None = Field(default=None, alias="SourceType")


class ConversationReference(BaseModel):
    """Enough information to resume a conversation proactively."""

    activity_id: str | None = None
    user: ChannelAccount | None = None
    bot: ChannelAccount | None = None
    conversation: ConversationAccount
    channel_id: str = CHANNEL_ID
    channel_data: Any = None


class ResourceResponse(BaseModel):
    """Acknowledgment of a successful send, carrying the platform content id."""

    model_config = ConfigDict(frozen=True)

    id: str


class Activity(BaseModel):
    """A normalized unit of conversational content."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    type: ActivityTypes = ActivityTypes.MESSAGE
    id: str | None = None
    text: str | None = None
    name: str | None = None
    value: Any = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    channel_id: str = CHANNEL_ID
    from_property: ChannelAccount | None = Field(default=None, alias="from")
    recipient: ChannelAccount | None = None
    conversation: ConversationAccount | None = None
    reply_to_id: str | None = None
    channel_data: Any = None

    def try_get_channel_data(self) -> ChannelData | None:
        """Return channel data, or None when absent or malformed."""
        if self.channel_data is None:
            return None
        if isinstance(self.channel_data, ChannelData):
            return self.channel_data
        try:
            return ChannelData.model_validate(self.channel_data)
        except ValidationError:
            return None

    def get_channel_data(self) -> ChannelData:
        """Return channel data, raising when the activity does not carry it.

        Use where presence was already established upstream, e.g. on
        activities produced by the webhook classifier.

        Raises:
            ChannelDataMissingError: If channel data is absent or malformed.
        """
        if self.channel_data is None:
            raise ChannelDataMissingError(self.id)
        if isinstance(self.channel_data, ChannelData):
            return self.channel_data
        try:
            return ChannelData.model_validate(self.channel_data)
        except ValidationError as e:
            raise ChannelDataMissingError(self.id, cause=e) from e

    def get_conversation_reference(self) -> ConversationReference:
        """Capture a reference for resuming this conversation later."""
        if self.conversation is None:
            raise ChannelDataMissingError(self.id)
        return ConversationReference(
            activity_id=self.id,
            user=self.from_property,
            bot=self.recipient,
            conversation=self.conversation,
            channel_id=self.channel_id,
            channel_data=self.channel_data,
        )

    def create_reply(self, text: str | None = None) -> "Activity":
        """Create a message addressed back to the sender of this activity.

        Channel data is carried over so the reply is posted to the same
        Engage source and thread.
        """
        return Activity(
            type=ActivityTypes.MESSAGE,
            id=uuid.uuid4().hex,
            text=text,
            channel_id=self.channel_id,
            from_property=self.recipient,
            recipient=self.from_property,
            conversation=self.conversation,
            reply_to_id=self.id,
            channel_data=self.channel_data,
        )
