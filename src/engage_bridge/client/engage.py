"""HTTP client for the RingCentral Engage Digital API.

Implements :class:`~engage_bridge.engine.protocols.PlatformClient` on top of
``httpx.AsyncClient``. Transient failures (transport errors, 429 and 5xx
responses) are retried with exponential backoff (powered by tenacity);
everything else surfaces as :class:`PlatformClientError`.
"""

import json
import logging
import secrets
from typing import Any
from urllib.parse import quote

import httpx
from fastapi import Request
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from engage_bridge.client.payloads import (
    ACTION_IMPLEMENTATION_INFO,
    ACTION_MESSAGES_CREATE,
    CONTENT_IMPORTED,
    IMPLEMENTATION_INFO,
    INTERVENTION_PREFIX,
    LIST_ACTIONS,
    CustomSourceRequest,
    WebhookPayload,
    activity_from_agent_message,
    activity_from_content_event,
    activity_from_intervention_event,
    agent_message_receipt,
    parse_payload,
)
from engage_bridge.config import EngageSettings
from engage_bridge.core.activity import Activity
from engage_bridge.core.events import (
    ClassifiedEvent,
    HandledEventKind,
    HandoffTarget,
    Thread,
    WebhookReply,
)
from engage_bridge.engine.context import CancellationToken
from engage_bridge.exceptions import ConfigurationError, PayloadError, PlatformClientError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


class _RetryableStatusError(Exception):
    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code}")
        self.response = response


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    if outcome is not None and outcome.failed:
        next_wait = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "Engage API call failed (attempt %d), retrying in %.2fs: %s",
            retry_state.attempt_number,
            next_wait,
            outcome.exception(),
        )


class EngageClient:
    """Engage Digital API client and webhook payload parser.

    Args:
        settings: Engage settings (loaded from environment if None).
        http_client: Optional preconfigured ``httpx.AsyncClient``. When
            given, the caller owns it and :meth:`aclose` leaves it open.

    Example:
        ```python
        async with EngageClient(EngageSettings()) as client:
            thread = await client.get_thread_by_id("5f1c...")
        ```
    """

    def __init__(
        self,
        settings: EngageSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or EngageSettings()
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=self.settings.api_url,
            timeout=self.settings.request_timeout,
        )
        token = self.settings.api_access_token.get_secret_value()
        if token:
            self._http.headers["Authorization"] = f"Bearer {token}"
        self._http.headers.setdefault("Accept", "application/json")

    async def __aenter__(self) -> "EngageClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # Webhook handling

    async def verify_webhook(
        self,
        request: Request,
        reply: WebhookReply,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Echo ``hub.challenge`` when mode and verify token match."""
        query = request.query_params
        mode = query.get("hub.mode")
        token = query.get("hub.verify_token") or ""
        expected = self.settings.webhook_validation_token.get_secret_value()

        if mode == "subscribe" and expected and secrets.compare_digest(token, expected):
            reply.write_text(query.get("hub.challenge") or "")
            logger.info("Engage webhook subscription verified")
            return

        logger.warning(
            "Engage webhook verification rejected",
            extra={"mode": mode, "token_configured": bool(expected)},
        )
        reply.write_text("Invalid verify token", status_code=401)

    async def get_activity_from_request(
        self, request: Request, reply: WebhookReply
    ) -> ClassifiedEvent:
        """Parse an Engage webhook body.

        Raises:
            PayloadError: If the body is not JSON or matches no known payload.
        """
        raw = await request.body()
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PayloadError("Webhook body is not valid JSON", cause=e) from e

        payload = parse_payload(data)
        if isinstance(payload, CustomSourceRequest):
            return self._classify_action(payload, reply)
        return self._classify_webhook(payload)

    def _classify_webhook(self, payload: WebhookPayload) -> ClassifiedEvent:
        for event in payload.events:
            if event.type == CONTENT_IMPORTED:
                return ClassifiedEvent.of(
                    HandledEventKind.CONTENT_IMPORTED, activity_from_content_event(event)
                )
            if event.type.startswith(INTERVENTION_PREFIX):
                return ClassifiedEvent.of(
                    HandledEventKind.INTERVENTION, activity_from_intervention_event(event)
                )

        logger.debug(
            "No supported event in Engage webhook",
            extra={"event_types": [e.type for e in payload.events]},
        )
        return ClassifiedEvent.unknown()

    def _classify_action(self, request: CustomSourceRequest, reply: WebhookReply) -> ClassifiedEvent:
        if request.action == ACTION_MESSAGES_CREATE:
            activity = activity_from_agent_message(request, self.settings.source_id)
            reply.write_json(agent_message_receipt(activity))
            return ClassifiedEvent.of(HandledEventKind.ACTION, activity)

        if request.action == ACTION_IMPLEMENTATION_INFO:
            reply.write_json(IMPLEMENTATION_INFO)
            return ClassifiedEvent.of(HandledEventKind.ACTION)

        if request.action in LIST_ACTIONS:
            reply.write_json([])
            return ClassifiedEvent.of(HandledEventKind.ACTION)

        logger.debug("Unsupported custom source action", extra={"action": request.action})
        return ClassifiedEvent.unknown()

    # Engage API

    async def send_content(self, activity: Activity, source_id: str) -> str:
        """Create a content on ``source_id`` and return its id."""
        params: dict[str, Any] = {"source_id": source_id, "body": activity.text or ""}
        channel_data = activity.try_get_channel_data()
        in_reply_to_id = activity.reply_to_id or (channel_data.content_id if channel_data else None)
        if in_reply_to_id:
            params["in_reply_to_id"] = in_reply_to_id

        response = await self._request("POST", "/contents", params=params)
        content_id = self._json(response).get("id")
        if not content_id:
            raise PlatformClientError("Engage did not return an id for the created content")
        return str(content_id)

    async def get_thread_by_id(self, thread_id: str) -> Thread | None:
        path = f"/content_threads/{quote(thread_id, safe='')}"
        response = await self._request("GET", path, allow_not_found=True)
        if response.status_code == 404:
            return None
        return Thread.model_validate(self._json(response))

    async def handoff_conversation_control_to(self, target: HandoffTarget, thread: Thread) -> None:
        """Re-categorize the thread so the target's queue owns it.

        Sets the categories instead of toggling them, so repeating the call
        leaves the thread in the same state.
        """
        if target == HandoffTarget.NONE:
            raise ValueError("Cannot hand a thread over to HandoffTarget.NONE")

        category_id = self.settings.category_for(target.value)
        if not category_id:
            raise ConfigurationError(f"No thread category configured for handoff target '{target.value}'")

        await self._request(
            "PUT",
            f"/content_threads/{quote(thread.id, safe='')}/update_categories",
            params={"thread_category_ids[]": category_id},
        )

    # Transport

    async def _request(
        self,
        method: str,
        path: str,
        allow_not_found: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        base_delay = self.settings.retry_base_delay
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.settings.max_retries + 1),
            wait=wait_exponential(multiplier=base_delay, min=base_delay, max=30),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatusError)),
            before_sleep=_log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._http.request(method, path, **kwargs)
                    if response.status_code in RETRYABLE_STATUS_CODES:
                        raise _RetryableStatusError(response)
        except httpx.TransportError as e:
            raise PlatformClientError(f"{method} {path} failed: {e}", cause=e) from e
        except _RetryableStatusError as e:
            raise PlatformClientError(
                f"{method} {path} returned {e.response.status_code}",
                status_code=e.response.status_code,
                cause=e,
            ) from e

        if response.status_code == 404 and allow_not_found:
            return response
        if response.is_error:
            raise PlatformClientError(
                f"{method} {path} returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise PlatformClientError(
                "Engage returned a non-JSON body", status_code=response.status_code, cause=e
            ) from e
        if not isinstance(data, dict):
            raise PlatformClientError("Engage returned an unexpected body", status_code=response.status_code)
        return data
