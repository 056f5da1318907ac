"""Turn context and cooperative cancellation.

A :class:`TurnContext` is created by the adapter for every activity it
feeds into the bot. It binds the activity to the adapter so that replies
sent by the bot flow back through :meth:`EngageAdapter.send_activities`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from engage_bridge.core.activity import Activity, ActivityTypes, ResourceResponse
from engage_bridge.exceptions import InvalidArgumentError, OperationCancelledError

if TYPE_CHECKING:
    from engage_bridge.engine.adapter import EngageAdapter


class CancellationToken:
    """Cooperative cancellation signal threaded through a webhook dispatch.

    Cancellation is best effort: it is checked between steps, and an Engage
    API call that is already in flight runs to completion.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self.reason = reason

    def raise_if_cancelled(self) -> None:
        """Raise :class:`OperationCancelledError` once cancelled."""
        if self._cancelled:
            message = "Operation was cancelled"
            if self.reason:
                message = f"{message}: {self.reason}"
            raise OperationCancelledError(message)


class TurnContext:
    """Context for one bot turn, bound to the adapter that created it."""

    def __init__(self, adapter: EngageAdapter, activity: Activity) -> None:
        if adapter is None:
            raise InvalidArgumentError("adapter")
        if activity is None:
            raise InvalidArgumentError("activity")
        self.adapter = adapter
        self.activity = activity
        self.turn_state: dict[str, Any] = {}
        self._responded = False

    @property
    def responded(self) -> bool:
        """True once at least one message was sent during this turn."""
        return self._responded

    async def send_activity(self, activity_or_text: Activity | str) -> ResourceResponse | None:
        """Send a single activity or plain text reply.

        Returns:
            The resource response, or None if the adapter skipped it.
        """
        if isinstance(activity_or_text, str):
            activity = self.activity.create_reply(activity_or_text)
        else:
            activity = activity_or_text
        responses = await self.send_activities([activity])
        return responses[0] if responses else None

    async def send_activities(self, activities: list[Activity]) -> list[ResourceResponse]:
        """Send activities through the adapter, addressed to this conversation."""
        if activities is None:
            raise InvalidArgumentError("activities")

        outgoing = [self._apply_conversation_defaults(a) for a in activities]
        responses = await self.adapter.send_activities(self, outgoing)

        if any(a.type == ActivityTypes.MESSAGE for a in outgoing) and responses:
            self._responded = True
        return responses

    async def update_activity(self, activity: Activity) -> ResourceResponse:
        return await self.adapter.update_activity(self, activity)

    async def delete_activity(self, activity_id: str) -> None:
        reference = self.activity.get_conversation_reference()
        reference = reference.model_copy(update={"activity_id": activity_id})
        await self.adapter.delete_activity(self, reference)

    def _apply_conversation_defaults(self, activity: Activity) -> Activity:
        """Fill in addressing fields the bot left empty from the inbound activity."""
        updates: dict[str, Any] = {}
        if activity.conversation is None:
            updates["conversation"] = self.activity.conversation
        if activity.from_property is None:
            updates["from_property"] = self.activity.recipient
        if activity.recipient is None:
            updates["recipient"] = self.activity.from_property
        if activity.reply_to_id is None and activity.type == ActivityTypes.MESSAGE:
            updates["reply_to_id"] = self.activity.id
        return activity.model_copy(update=updates) if updates else activity
