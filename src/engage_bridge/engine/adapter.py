"""RingCentral Engage webhook adapter.

The adapter is the single entry point for Engage webhook calls. For each
request it classifies the payload, optionally hands the conversation over
between bot and human agent, and feeds the resulting activity into the
bot. Outbound, it turns bot messages into Engage content.

Routing per event kind:

- ``VERIFY_WEBHOOK``: answer the subscription handshake, no bot turn.
- ``INTERVENTION`` / ``ACTION``: agent or system events from Engage's agent
  tooling; run the bot once, without handoff recognition.
- ``CONTENT_IMPORTED``: user content; recognize a handoff request, perform
  the transfer (awaited, failures isolated), then run the bot unless the
  verdict routes the message to an agent exclusively.
- ``UNKNOWN``: log and drop.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request

from engage_bridge.core.activity import (
    Activity,
    ActivityTypes,
    ChannelData,
    ConversationReference,
    ResourceResponse,
)
from engage_bridge.core.events import (
    ClassifiedEvent,
    HandledEventKind,
    HandoffOutcome,
    HandoffTarget,
    WebhookReply,
)
from engage_bridge.engine.classifier import EventClassifier
from engage_bridge.engine.context import CancellationToken, TurnContext
from engage_bridge.engine.handoff import ConversationControlCoordinator
from engage_bridge.engine.protocols import (
    Bot,
    HandoffRequestRecognizer,
    PlatformClient,
    TurnMiddleware,
)
from engage_bridge.exceptions import (
    ChannelDataMissingError,
    InvalidArgumentError,
    NotSupportedError,
)
from engage_bridge.log import TRACE

logger = logging.getLogger(__name__)

TurnCallback = Callable[[TurnContext], Awaitable[None]]
TurnErrorHandler = Callable[[TurnContext, Exception], Awaitable[None]]


class EngageAdapter:
    """Bridges Engage webhooks and a bot's turn pipeline.

    Collaborators are injected, never subclassed: the platform client, the
    handoff recognizer and, per request, the bot.

    Args:
        client: Engage platform client.
        recognizer: Handoff request recognizer.
        on_turn_error: Optional handler receiving exceptions raised by the
            bot or middleware. Without it such exceptions propagate.
    """

    def __init__(
        self,
        client: PlatformClient,
        recognizer: HandoffRequestRecognizer,
        on_turn_error: TurnErrorHandler | None = None,
    ) -> None:
        if client is None:
            raise InvalidArgumentError("client")
        if recognizer is None:
            raise InvalidArgumentError("recognizer")
        self._client = client
        self._recognizer = recognizer
        self._classifier = EventClassifier(client)
        self._coordinator = ConversationControlCoordinator(client)
        self._middlewares: list[TurnMiddleware] = []
        self.on_turn_error = on_turn_error

    @property
    def client(self) -> PlatformClient:
        return self._client

    def use(self, middleware: TurnMiddleware) -> "EngageAdapter":
        """Register middleware run around every bot turn, in registration order."""
        self._middlewares.append(middleware)
        return self

    # Inbound

    async def process(
        self,
        request: Request,
        reply: WebhookReply,
        bot: Bot,
        cancellation: CancellationToken | None = None,
    ) -> ClassifiedEvent:
        """Handle one Engage webhook request.

        Args:
            request: Incoming HTTP request.
            reply: Reply the platform client may write to.
            bot: Bot that handles the resulting activity.
            cancellation: Optional cooperative cancellation token.

        Returns:
            The classification that drove the dispatch.

        Raises:
            InvalidArgumentError: If request, reply or bot is None.
        """
        if request is None:
            raise InvalidArgumentError("request")
        if reply is None:
            raise InvalidArgumentError("reply")
        if bot is None:
            raise InvalidArgumentError("bot")

        event = await self._classifier.classify(request, reply)

        match event.kind:
            case HandledEventKind.VERIFY_WEBHOOK:
                await self._client.verify_webhook(request, reply, cancellation)
            case HandledEventKind.INTERVENTION | HandledEventKind.ACTION:
                if event.activity is not None:
                    await self._run_turn(event.activity, bot, cancellation)
            case HandledEventKind.CONTENT_IMPORTED:
                if event.activity is not None:
                    await self._process_content_imported(event.activity, bot, cancellation)
            case _:
                logger.warning(
                    "Unsupported RingCentral Webhook or payload: '%s'.",
                    request.url.path,
                    extra={"path": request.url.path},
                )

        return event

    async def _process_content_imported(
        self,
        activity: Activity,
        bot: Bot,
        cancellation: CancellationToken | None,
    ) -> None:
        target = await self._recognizer.recognize_handoff_request(activity)

        if target != HandoffTarget.NONE:
            outcome = await self._handoff(target, activity)
            if target == HandoffTarget.AGENT and outcome != HandoffOutcome.SUCCESS:
                logger.warning(
                    "Message '%s' was routed to an agent but the handoff did not complete; "
                    "it is not delivered to the bot.",
                    activity.id,
                    extra={"activity_id": activity.id, "outcome": outcome.value},
                )

        # The handoff above has fully completed before the bot sees the activity.
        if target != HandoffTarget.AGENT:
            await self._run_turn(activity, bot, cancellation)

    async def _handoff(self, target: HandoffTarget, activity: Activity) -> HandoffOutcome:
        try:
            channel_data = activity.get_channel_data()
            return await self._coordinator.handoff(target, channel_data.thread_id)
        except asyncio.CancelledError:
            raise
        except ChannelDataMissingError as e:
            logger.warning("Could not handoff the conversation: %s", e)
            return HandoffOutcome.NOT_FOUND
        except Exception:
            logger.exception(
                "Unexpected error while handing off activity '%s'",
                activity.id,
                extra={"activity_id": activity.id, "target": target.value},
            )
            return HandoffOutcome.FAILED

    async def _run_turn(
        self,
        activity: Activity,
        bot: Bot,
        cancellation: CancellationToken | None,
    ) -> None:
        async def on_turn(turn_context: TurnContext) -> None:
            await bot.on_turn(turn_context, cancellation)

        await self.run_pipeline(TurnContext(self, activity), on_turn, cancellation)

    async def run_pipeline(
        self,
        turn_context: TurnContext,
        callback: TurnCallback,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Run registered middleware, then ``callback``, for one turn."""
        if turn_context is None:
            raise InvalidArgumentError("turn_context")
        if cancellation is not None:
            cancellation.raise_if_cancelled()

        async def run_from(index: int) -> None:
            if index < len(self._middlewares):
                await self._middlewares[index].on_turn(turn_context, lambda: run_from(index + 1))
            else:
                await callback(turn_context)

        try:
            await run_from(0)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self.on_turn_error is None:
                raise
            await self.on_turn_error(turn_context, e)

    async def continue_conversation(
        self,
        reference: ConversationReference,
        callback: TurnCallback,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Resume a conversation proactively, e.g. after an agent hands back."""
        if reference is None:
            raise InvalidArgumentError("reference")
        if callback is None:
            raise InvalidArgumentError("callback")

        activity = Activity(
            type=ActivityTypes.EVENT,
            id=uuid.uuid4().hex,
            name="ContinueConversation",
            channel_id=reference.channel_id,
            from_property=reference.user,
            recipient=reference.bot,
            conversation=reference.conversation,
            reply_to_id=reference.activity_id,
            channel_data=reference.channel_data,
        )
        await self.run_pipeline(TurnContext(self, activity), callback, cancellation)

    # Outbound

    async def send_activities(
        self, turn_context: TurnContext, activities: list[Activity]
    ) -> list[ResourceResponse]:
        """Publish bot messages on Engage.

        Each activity is handled on its own: skipped ones produce no
        response, so match responses by id rather than by position.

        Raises:
            InvalidArgumentError: If activities is None.
        """
        if activities is None:
            raise InvalidArgumentError("activities")

        responses: list[ResourceResponse] = []

        for activity in activities:
            if activity.type != ActivityTypes.MESSAGE:
                logger.log(
                    TRACE,
                    "send_activities: Did not send activity with id '%s' to RingCentral. "
                    "Activity type '%s' is not supported. Only activities of type '%s' are supported.",
                    activity.id,
                    activity.type.value,
                    ActivityTypes.MESSAGE.value,
                )
                continue

            channel_data = self._outbound_channel_data(turn_context, activity)
            if channel_data is None:
                logger.log(
                    TRACE,
                    "send_activities: Required channel data of type %s is not present on message '%s'.",
                    ChannelData.__name__,
                    activity.id,
                )
                continue

            resource_id = await self._client.send_content(activity, channel_data.source_id)
            responses.append(ResourceResponse(id=resource_id))

        return responses

    def _outbound_channel_data(
        self, turn_context: TurnContext | None, activity: Activity
    ) -> ChannelData | None:
        channel_data = activity.try_get_channel_data()
        if channel_data is None and turn_context is not None:
            channel_data = turn_context.activity.try_get_channel_data()
        return channel_data

    async def update_activity(self, turn_context: TurnContext, activity: Activity) -> ResourceResponse:
        """Engage content cannot be edited once published."""
        raise NotSupportedError("update_activity")

    async def delete_activity(self, turn_context: TurnContext, reference: ConversationReference) -> None:
        """Engage content cannot be deleted through the adapter."""
        raise NotSupportedError("delete_activity")
