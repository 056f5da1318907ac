"""Tests for the conversation control coordinator."""

import logging

import pytest

from engage_bridge.core.events import HandoffOutcome, HandoffTarget
from engage_bridge.engine.handoff import ConversationControlCoordinator
from engage_bridge.engine.mocks import MockPlatformClient
from engage_bridge.exceptions import PlatformClientError


class TestConversationControlCoordinator:
    """Outcomes of a single handoff attempt."""

    @pytest.mark.asyncio
    async def test_none_target_is_skipped(self, platform_client: MockPlatformClient) -> None:
        outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.NONE, "thread-1")

        assert outcome == HandoffOutcome.SKIPPED
        assert platform_client.lookups == []
        assert platform_client.handoffs == []

    @pytest.mark.asyncio
    async def test_handoff_to_agent(self, platform_client: MockPlatformClient) -> None:
        outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.AGENT, "thread-1")

        assert outcome == HandoffOutcome.SUCCESS
        assert platform_client.controller_of("thread-1") == HandoffTarget.AGENT
        assert platform_client.handoffs == [{"target": HandoffTarget.AGENT, "thread_id": "thread-1"}]

    @pytest.mark.asyncio
    async def test_handoff_is_idempotent(self, platform_client: MockPlatformClient) -> None:
        coordinator = ConversationControlCoordinator(platform_client)

        first = await coordinator.handoff(HandoffTarget.AGENT, "thread-1")
        state_after_first = platform_client.threads["thread-1"]
        second = await coordinator.handoff(HandoffTarget.AGENT, "thread-1")

        assert first == second == HandoffOutcome.SUCCESS
        assert platform_client.threads["thread-1"] == state_after_first

    @pytest.mark.asyncio
    async def test_does_not_check_current_controller(self, platform_client: MockPlatformClient) -> None:
        """Handing a bot-owned thread to the bot still issues the switch."""
        outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.BOT, "thread-1")

        assert outcome == HandoffOutcome.SUCCESS
        assert len(platform_client.handoffs) == 1

    @pytest.mark.asyncio
    async def test_unknown_thread(self, platform_client: MockPlatformClient, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.AGENT, "missing")

        assert outcome == HandoffOutcome.NOT_FOUND
        assert platform_client.handoffs == []
        assert 'thread with thread id "missing" could not be found' in caplog.text

    @pytest.mark.asyncio
    async def test_missing_thread_id(self, platform_client: MockPlatformClient) -> None:
        outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.AGENT, None)

        assert outcome == HandoffOutcome.NOT_FOUND
        assert platform_client.lookups == []

    @pytest.mark.asyncio
    async def test_lookup_failure(self, platform_client: MockPlatformClient) -> None:
        platform_client.lookup_error = PlatformClientError("boom", status_code=503)

        outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.AGENT, "thread-1")

        assert outcome == HandoffOutcome.FAILED
        assert platform_client.handoffs == []

    @pytest.mark.asyncio
    async def test_transfer_failure(self, platform_client: MockPlatformClient) -> None:
        platform_client.handoff_error = PlatformClientError("boom", status_code=500)

        outcome = await ConversationControlCoordinator(platform_client).handoff(HandoffTarget.AGENT, "thread-1")

        assert outcome == HandoffOutcome.FAILED
        assert platform_client.controller_of("thread-1") == HandoffTarget.BOT
