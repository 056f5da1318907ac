"""Shared pytest fixtures for engage-bridge tests.

Provides in-memory collaborators, sample activities and a factory for
starlette requests.
"""

import json
from collections.abc import Callable
from typing import Any

import pytest
from fastapi import Request

from engage_bridge.core.activity import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ChannelData,
    ConversationAccount,
)
from engage_bridge.core.events import Thread
from engage_bridge.engine.mocks import BOT_CATEGORY, MockPlatformClient, RecordingBot

THREAD_ID = "thread-1"
SOURCE_ID = "source-1"


def build_request(
    query: str = "",
    body: bytes | str | dict[str, Any] | None = None,
    method: str = "POST",
    path: str = "/api/ringcentral",
) -> Request:
    """Build a starlette request without going through an ASGI server."""
    if isinstance(body, dict):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode()
    payload = body or b""

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": payload, "more_body": False}

    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "server": ("testserver", 80),
        "root_path": "",
        "path": path,
        "query_string": query.encode(),
        "headers": [(b"content-type", b"application/json")],
    }
    return Request(scope, receive)


def build_message(
    text: str = "hello",
    thread_id: str | None = THREAD_ID,
    with_channel_data: bool = True,
    activity_id: str = "content-in-1",
) -> Activity:
    """Inbound user message as the classifier produces it."""
    return Activity(
        type=ActivityTypes.MESSAGE,
        id=activity_id,
        text=text,
        from_property=ChannelAccount(id="user-1", role="user"),
        recipient=ChannelAccount(id=SOURCE_ID, role="bot"),
        conversation=ConversationAccount(id=thread_id or "no-thread"),
        channel_data=(
            ChannelData(source_id=SOURCE_ID, thread_id=thread_id, content_id=activity_id)
            if with_channel_data
            else None
        ),
    )


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory fixture for starlette requests."""
    return build_request


@pytest.fixture
def make_message() -> Callable[..., Activity]:
    """Factory fixture for inbound message activities."""
    return build_message


@pytest.fixture
def thread() -> Thread:
    return Thread(id=THREAD_ID, source_id=SOURCE_ID, category_ids=[BOT_CATEGORY])


@pytest.fixture
def platform_client(thread: Thread) -> MockPlatformClient:
    """In-memory platform client that knows one bot-owned thread."""
    return MockPlatformClient(threads=[thread])


@pytest.fixture
def bot() -> RecordingBot:
    return RecordingBot()
