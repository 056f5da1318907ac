"""Conversation control coordination between bot and human agents.

Transfers ownership of an Engage thread after the recognizer asked for a
handoff. The coordinator never reads or caches who currently owns the
thread: it always issues the switch, which the platform applies
idempotently. Every failure is reported as an outcome, never raised, so a
missing thread cannot abort the webhook request that triggered it.
"""

import asyncio
import logging

from engage_bridge.core.events import HandoffOutcome, HandoffTarget
from engage_bridge.engine.protocols import PlatformClient
from engage_bridge.exceptions import PlatformClientError

logger = logging.getLogger(__name__)


class ConversationControlCoordinator:
    """Switches the active controller of a thread."""

    def __init__(self, client: PlatformClient) -> None:
        self._client = client

    async def handoff(self, target: HandoffTarget, thread_id: str | None) -> HandoffOutcome:
        """Hand the thread over to ``target``.

        Args:
            target: New controller. ``NONE`` is a no-op.
            thread_id: Engage thread identifier.

        Returns:
            ``SUCCESS`` when the switch was issued, ``NOT_FOUND`` when the
            thread does not exist, ``FAILED`` when the Engage API errored and
            ``SKIPPED`` for ``HandoffTarget.NONE``.
        """
        if target == HandoffTarget.NONE:
            return HandoffOutcome.SKIPPED

        if not thread_id:
            logger.warning("Could not handoff the conversation, activity carries no thread id.")
            return HandoffOutcome.NOT_FOUND

        try:
            thread = await self._client.get_thread_by_id(thread_id)
        except asyncio.CancelledError:
            raise
        except PlatformClientError as e:
            logger.warning(
                'Could not handoff the conversation, lookup of thread "%s" failed: %s',
                thread_id,
                e,
                extra={"thread_id": thread_id, "status_code": e.status_code},
            )
            return HandoffOutcome.FAILED

        if thread is None:
            logger.warning(
                'Could not handoff the conversation, thread with thread id "%s" could not be found.',
                thread_id,
                extra={"thread_id": thread_id},
            )
            return HandoffOutcome.NOT_FOUND

        try:
            await self._client.handoff_conversation_control_to(target, thread)
        except asyncio.CancelledError:
            raise
        except PlatformClientError as e:
            logger.warning(
                'Handoff of thread "%s" to %s failed: %s',
                thread_id,
                target.value,
                e,
                extra={"thread_id": thread_id, "target": target.value, "status_code": e.status_code},
            )
            return HandoffOutcome.FAILED

        logger.info(
            'Handed thread "%s" over to %s',
            thread_id,
            target.value,
            extra={"thread_id": thread_id, "target": target.value},
        )
        return HandoffOutcome.SUCCESS
