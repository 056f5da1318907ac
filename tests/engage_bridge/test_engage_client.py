"""Tests for the httpx based Engage client."""

import json
from collections.abc import Callable

import httpx
import pytest

from engage_bridge.client.engage import EngageClient
from engage_bridge.config import EngageSettings
from engage_bridge.core.activity import Activity, ChannelData
from engage_bridge.core.events import HandledEventKind, HandoffTarget, Thread, WebhookReply
from engage_bridge.engine.protocols import PlatformClient
from engage_bridge.exceptions import ConfigurationError, PayloadError, PlatformClientError

API_URL = "https://acme.api.engagement.dimelo.com/1.0"


def make_settings(**overrides) -> EngageSettings:
    values = {
        "api_url": API_URL,
        "api_access_token": "secret-token",
        "webhook_validation_token": "verify-me",
        "source_id": "source-1",
        "bot_category_id": "cat-bot",
        "agent_category_id": "cat-agent",
        "max_retries": 2,
        "retry_base_delay": 0,
    }
    values.update(overrides)
    return EngageSettings(**values)


def make_client(
    handler: Callable[[httpx.Request], httpx.Response], **overrides
) -> tuple[EngageClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(recording), base_url=API_URL)
    return EngageClient(make_settings(**overrides), http_client=http), seen


class TestVerifyWebhook:
    """Subscription handshake."""

    @pytest.mark.asyncio
    async def test_echoes_challenge(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        reply = WebhookReply()

        await client.verify_webhook(
            make_request(query="hub.mode=subscribe&hub.challenge=12345&hub.verify_token=verify-me"), reply
        )

        assert reply.status_code == 200
        assert reply.body == "12345"

    @pytest.mark.asyncio
    async def test_rejects_wrong_token(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        reply = WebhookReply()

        await client.verify_webhook(
            make_request(query="hub.mode=subscribe&hub.challenge=12345&hub.verify_token=nope"), reply
        )

        assert reply.status_code == 401
        assert "12345" not in reply.body


class TestGetActivityFromRequest:
    """Payload classification done by the client."""

    @pytest.mark.asyncio
    async def test_content_imported(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        body = {
            "events": [
                {
                    "type": "content.imported",
                    "resource": {
                        "id": "content-1",
                        "metadata": {"body": "hi", "thread_id": "t1", "source_id": "s1"},
                    },
                }
            ]
        }

        event = await client.get_activity_from_request(make_request(body=body), WebhookReply())

        assert event.kind == HandledEventKind.CONTENT_IMPORTED
        assert event.activity.text == "hi"

    @pytest.mark.asyncio
    async def test_intervention(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        body = {
            "events": [
                {
                    "type": "intervention.closed",
                    "resource": {"id": "i1", "metadata": {"thread_id": "t1", "source_id": "s1"}},
                }
            ]
        }

        event = await client.get_activity_from_request(make_request(body=body), WebhookReply())

        assert event.kind == HandledEventKind.INTERVENTION
        assert event.activity.name == "intervention.closed"

    @pytest.mark.asyncio
    async def test_unsupported_event_is_unknown(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        body = {"events": [{"type": "user.updated", "resource": {"id": "u1"}}]}

        event = await client.get_activity_from_request(make_request(body=body), WebhookReply())

        assert event.kind == HandledEventKind.UNKNOWN
        assert event.activity is None

    @pytest.mark.asyncio
    async def test_messages_create_writes_receipt(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        reply = WebhookReply()
        body = {"action": "messages.create", "params": {"id": "m1", "thread_id": "t1", "body": "hello"}}

        event = await client.get_activity_from_request(make_request(body=body), reply)

        assert event.kind == HandledEventKind.ACTION
        assert event.activity.text == "hello"
        assert json.loads(reply.body)["id"] == "m1"
        assert reply.media_type == "application/json"

    @pytest.mark.asyncio
    async def test_messages_create_with_numeric_author(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        reply = WebhookReply()
        body = {"action": "messages.create", "params": {"thread_id": "t1", "body": "hi", "author_id": 42}}

        event = await client.get_activity_from_request(make_request(body=body), reply)

        assert event.kind == HandledEventKind.ACTION
        assert event.activity.get_channel_data().author_id == "42"
        assert json.loads(reply.body)["thread_id"] == "t1"

    @pytest.mark.asyncio
    async def test_implementation_info(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        reply = WebhookReply()

        event = await client.get_activity_from_request(
            make_request(body={"action": "implementation.info"}), reply
        )

        assert event.kind == HandledEventKind.ACTION
        assert event.activity is None
        assert "messages" in json.loads(reply.body)["objects"]

    @pytest.mark.asyncio
    async def test_list_action_returns_empty_list(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))
        reply = WebhookReply()

        await client.get_activity_from_request(make_request(body={"action": "threads.list"}), reply)

        assert json.loads(reply.body) == []

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_request) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))

        with pytest.raises(PayloadError, match="JSON"):
            await client.get_activity_from_request(make_request(body="{not json"), WebhookReply())


class TestEngageApi:
    """Calls against the Engage REST API."""

    @pytest.mark.asyncio
    async def test_send_content(self) -> None:
        client, seen = make_client(lambda r: httpx.Response(201, json={"id": "content-42"}))
        activity = Activity(
            id="m1",
            text="It is noon.",
            channel_data=ChannelData(source_id="source-1", content_id="content-1"),
        )

        content_id = await client.send_content(activity, "source-1")

        assert content_id == "content-42"
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/1.0/contents"
        assert request.url.params["source_id"] == "source-1"
        assert request.url.params["body"] == "It is noon."
        assert request.url.params["in_reply_to_id"] == "content-1"
        assert request.headers["Authorization"] == "Bearer secret-token"

    @pytest.mark.asyncio
    async def test_send_content_without_id_fails(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(200, json={}))

        with pytest.raises(PlatformClientError):
            await client.send_content(Activity(id="m1", text="x"), "source-1")

    @pytest.mark.asyncio
    async def test_get_thread(self) -> None:
        client, seen = make_client(
            lambda r: httpx.Response(200, json={"id": "t1", "category_ids": ["cat-bot"], "extra": 1})
        )

        thread = await client.get_thread_by_id("t1")

        assert thread == Thread(id="t1", category_ids=["cat-bot"])
        assert seen[0].url.path == "/1.0/content_threads/t1"

    @pytest.mark.asyncio
    async def test_get_missing_thread(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(404, json={"error": "not found"}))

        assert await client.get_thread_by_id("gone") is None

    @pytest.mark.asyncio
    async def test_handoff_sets_target_category(self) -> None:
        client, seen = make_client(lambda r: httpx.Response(200, json={"id": "t1"}))

        await client.handoff_conversation_control_to(HandoffTarget.AGENT, Thread(id="t1"))

        request = seen[0]
        assert request.method == "PUT"
        assert request.url.path == "/1.0/content_threads/t1/update_categories"
        assert request.url.params.get_list("thread_category_ids[]") == ["cat-agent"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("thread_id", "raw_path"),
        [
            ("../contents/abc", b"/1.0/content_threads/..%2Fcontents%2Fabc"),
            ("a?b=1", b"/1.0/content_threads/a%3Fb%3D1"),
        ],
    )
    async def test_thread_id_is_escaped(self, thread_id: str, raw_path: bytes) -> None:
        """Thread ids from webhook payloads stay inside one path segment."""
        client, seen = make_client(lambda r: httpx.Response(200, json={"id": thread_id}))

        await client.get_thread_by_id(thread_id)
        await client.handoff_conversation_control_to(HandoffTarget.BOT, Thread(id=thread_id))

        assert seen[0].url.raw_path == raw_path
        assert seen[1].url.raw_path.split(b"?")[0] == raw_path + b"/update_categories"
        assert "b" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_handoff_to_none_is_rejected(self) -> None:
        client, seen = make_client(lambda r: httpx.Response(200))

        with pytest.raises(ValueError):
            await client.handoff_conversation_control_to(HandoffTarget.NONE, Thread(id="t1"))

        assert seen == []

    @pytest.mark.asyncio
    async def test_handoff_requires_category(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(200), agent_category_id="")

        with pytest.raises(ConfigurationError):
            await client.handoff_conversation_control_to(HandoffTarget.AGENT, Thread(id="t1"))


class TestRetries:
    """Transient failures are retried, permanent ones are not."""

    @pytest.mark.asyncio
    async def test_retries_server_errors(self) -> None:
        responses = iter([httpx.Response(503), httpx.Response(502), httpx.Response(200, json={"id": "t1"})])
        client, seen = make_client(lambda r: next(responses))

        thread = await client.get_thread_by_id("t1")

        assert thread is not None
        assert len(seen) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        client, seen = make_client(lambda r: httpx.Response(503), max_retries=1)

        with pytest.raises(PlatformClientError) as exc_info:
            await client.get_thread_by_id("t1")

        assert exc_info.value.status_code == 503
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_transport_errors_are_wrapped(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client, seen = make_client(fail, max_retries=1)

        with pytest.raises(PlatformClientError) as exc_info:
            await client.get_thread_by_id("t1")

        assert exc_info.value.status_code is None
        assert isinstance(exc_info.value.cause, httpx.ConnectError)
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self) -> None:
        client, seen = make_client(lambda r: httpx.Response(401, text="bad token"))

        with pytest.raises(PlatformClientError) as exc_info:
            await client.get_thread_by_id("t1")

        assert exc_info.value.status_code == 401
        assert len(seen) == 1


class TestLifecycle:
    def test_satisfies_protocol(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))

        assert isinstance(client, PlatformClient)

    @pytest.mark.asyncio
    async def test_borrowed_client_stays_open(self) -> None:
        client, _ = make_client(lambda r: httpx.Response(200))

        async with client:
            pass

        assert not client._http.is_closed

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self) -> None:
        client = EngageClient(make_settings())

        await client.aclose()

        assert client._http.is_closed
