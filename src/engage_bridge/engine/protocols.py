"""Protocols for the adapter's collaborators.

The adapter composes three external capabilities: the Engage platform
client, the bot that processes turns and the recognizer deciding whether a
message asks for a handoff. Defining them as protocols keeps the adapter
free of concrete implementations and lets tests inject in-memory fakes.
"""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from fastapi import Request

from engage_bridge.core.activity import Activity
from engage_bridge.core.events import ClassifiedEvent, HandoffTarget, Thread, WebhookReply

if TYPE_CHECKING:
    from engage_bridge.engine.context import CancellationToken, TurnContext


@runtime_checkable
class PlatformClient(Protocol):
    """Remote Engage API plus webhook payload parsing.

    Implementations own authentication and retries. The thread store and
    its current controller live on the platform; callers must not cache
    threads between requests.
    """

    async def get_activity_from_request(
        self, request: Request, reply: WebhookReply
    ) -> ClassifiedEvent:
        """Parse a webhook payload into an event kind and optional activity.

        May write to ``reply`` for requests that expect a synchronous answer
        (custom source actions).
        """
        ...

    async def verify_webhook(
        self,
        request: Request,
        reply: WebhookReply,
        cancellation: "CancellationToken | None" = None,
    ) -> None:
        """Answer the platform's subscription handshake."""
        ...

    async def send_content(self, activity: Activity, source_id: str) -> str:
        """Publish a message on a source. Returns the created content id."""
        ...

    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        """Look up a thread. Returns None when it does not exist."""
        ...

    async def handoff_conversation_control_to(
        self, target: HandoffTarget, thread: Thread
    ) -> None:
        """Make ``target`` the controller of ``thread``. Safe to repeat."""
        ...


@runtime_checkable
class Bot(Protocol):
    """Turn handler invoked once per inbound activity."""

    async def on_turn(
        self, turn_context: "TurnContext", cancellation: "CancellationToken | None" = None
    ) -> None:
        """Process the activity held by ``turn_context``."""
        ...


@runtime_checkable
class HandoffRequestRecognizer(Protocol):
    """Decides whether a message asks to switch between bot and agent.

    Must be side-effect free and must not raise for a well-formed activity;
    unrecognized content yields ``HandoffTarget.NONE``.
    """

    async def recognize_handoff_request(self, activity: Activity) -> HandoffTarget:
        ...


NextDelegate = Callable[[], Awaitable[None]]


@runtime_checkable
class TurnMiddleware(Protocol):
    """Extension point wrapping every bot turn run by the adapter."""

    async def on_turn(self, turn_context: "TurnContext", next_: NextDelegate) -> None:
        """Do work around the turn and call ``next_()`` to continue."""
        ...
