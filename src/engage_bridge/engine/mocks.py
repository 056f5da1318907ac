"""In-memory collaborators for testing the adapter.

Provides a platform client and a bot that record every call without any
network side effects.
"""

from itertools import count
from typing import Any

from fastapi import Request

from engage_bridge.core.activity import Activity
from engage_bridge.core.events import ClassifiedEvent, HandoffTarget, Thread, WebhookReply
from engage_bridge.engine.context import CancellationToken, TurnContext
from engage_bridge.engine.protocols import Bot, PlatformClient

BOT_CATEGORY = "category-bot"
AGENT_CATEGORY = "category-agent"


class MockPlatformClient:
    """Platform client backed by a dict of threads.

    ``event`` is returned by :meth:`get_activity_from_request`; set it (or
    ``parse_error``) before dispatching a request. Handoff replaces the
    thread's categories with the target's category, like the Engage API.
    """

    def __init__(
        self,
        threads: list[Thread] | None = None,
        event: ClassifiedEvent | None = None,
    ) -> None:
        self.threads: dict[str, Thread] = {t.id: t for t in threads or []}
        self.event = event or ClassifiedEvent.unknown()
        self.parse_error: Exception | None = None
        self.lookup_error: Exception | None = None
        self.handoff_error: Exception | None = None
        self.sent: list[dict[str, Any]] = []
        self.lookups: list[str] = []
        self.handoffs: list[dict[str, Any]] = []
        self.verifications: list[dict[str, Any]] = []
        self.parse_calls = 0
        self._ids = count(1)

    async def get_activity_from_request(
        self, request: Request, reply: WebhookReply
    ) -> ClassifiedEvent:
        self.parse_calls += 1
        if self.parse_error is not None:
            raise self.parse_error
        return self.event

    async def verify_webhook(
        self,
        request: Request,
        reply: WebhookReply,
        cancellation: CancellationToken | None = None,
    ) -> None:
        challenge = request.query_params.get("hub.challenge", "")
        self.verifications.append({"query": dict(request.query_params), "cancellation": cancellation})
        reply.write_text(challenge)

    async def send_content(self, activity: Activity, source_id: str) -> str:
        content_id = f"content-{next(self._ids)}"
        self.sent.append({"activity": activity, "source_id": source_id, "id": content_id})
        return content_id

    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        self.lookups.append(thread_id)
        if self.lookup_error is not None:
            raise self.lookup_error
        return self.threads.get(thread_id)

    async def handoff_conversation_control_to(self, target: HandoffTarget, thread: Thread) -> None:
        self.handoffs.append({"target": target, "thread_id": thread.id})
        if self.handoff_error is not None:
            raise self.handoff_error
        category = AGENT_CATEGORY if target == HandoffTarget.AGENT else BOT_CATEGORY
        self.threads[thread.id] = thread.model_copy(update={"category_ids": [category]})

    def controller_of(self, thread_id: str) -> HandoffTarget:
        """Current controller as encoded in the thread categories."""
        thread = self.threads[thread_id]
        if AGENT_CATEGORY in thread.category_ids:
            return HandoffTarget.AGENT
        if BOT_CATEGORY in thread.category_ids:
            return HandoffTarget.BOT
        return HandoffTarget.NONE


class RecordingBot:
    """Bot that records the activities it was given.

    Optionally replies with ``reply_text`` and can be told to raise.
    """

    def __init__(self, reply_text: str | None = None, error: Exception | None = None) -> None:
        self.reply_text = reply_text
        self.error = error
        self.turns: list[Activity] = []
        self.cancellations: list[CancellationToken | None] = []

    async def on_turn(
        self, turn_context: TurnContext, cancellation: CancellationToken | None = None
    ) -> None:
        self.turns.append(turn_context.activity)
        self.cancellations.append(cancellation)
        if self.error is not None:
            raise self.error
        if self.reply_text is not None:
            await turn_context.send_activity(self.reply_text)


# Verify protocol compliance at import time
assert isinstance(MockPlatformClient(), PlatformClient)
assert isinstance(RecordingBot(), Bot)
