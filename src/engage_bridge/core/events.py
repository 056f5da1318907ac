"""Webhook classification results, handoff verdicts and platform records."""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from engage_bridge.core.activity import Activity


class HandledEventKind(str, Enum):
    """Kind of inbound webhook request. Computed per request, never stored."""

    VERIFY_WEBHOOK = "verify_webhook"
    INTERVENTION = "intervention"
    ACTION = "action"
    CONTENT_IMPORTED = "content_imported"
    UNKNOWN = "unknown"


class HandoffTarget(str, Enum):
    """Who should own the conversation after a message."""

    NONE = "none"
    BOT = "bot"
    AGENT = "agent"


class HandoffOutcome(str, Enum):
    """Result of a single transfer-of-control attempt."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SKIPPED = "skipped"


_KINDS_WITHOUT_ACTIVITY = (HandledEventKind.VERIFY_WEBHOOK, HandledEventKind.UNKNOWN)


class ClassifiedEvent(BaseModel):
    """Tagged result of webhook classification.

    Verification and unknown requests never carry an activity. The other
    kinds may or may not, depending on the payload.
    """

    model_config = ConfigDict(frozen=True)

    kind: HandledEventKind
    activity: Activity | None = None

    @model_validator(mode="after")
    def _check_activity(self) -> "ClassifiedEvent":
        if self.kind in _KINDS_WITHOUT_ACTIVITY and self.activity is not None:
            raise ValueError(f"{self.kind.value} events cannot carry an activity")
        return self

    @classmethod
    def verify_webhook(cls) -> "ClassifiedEvent":
        return cls(kind=HandledEventKind.VERIFY_WEBHOOK)

    @classmethod
    def unknown(cls) -> "ClassifiedEvent":
        return cls(kind=HandledEventKind.UNKNOWN)

    @classmethod
    def of(cls, kind: HandledEventKind, activity: Activity | None = None) -> "ClassifiedEvent":
        """Build an event, dropping the activity for kinds that cannot carry one."""
        if kind in _KINDS_WITHOUT_ACTIVITY:
            activity = None
        return cls(kind=kind, activity=activity)

    @property
    def has_activity(self) -> bool:
        return self.activity is not None


class Thread(BaseModel):
    """Engage content thread as returned by the platform.

    Read-only snapshot; the platform owns the thread and its categories.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    source_id: str | None = None
    category_ids: list[str] = Field(default_factory=list)
    closed: bool = False
    title: str | None = None


@dataclass
class WebhookReply:
    """HTTP reply written by the platform client during a webhook call.

    The HTTP layer renders whatever was written; untouched replies become
    an empty ``200``.
    """

    status_code: int = 200
    body: str = ""
    media_type: str = "text/plain"
    headers: dict[str, str] = field(default_factory=dict)

    def write_text(self, text: str, status_code: int = 200) -> None:
        self.status_code = status_code
        self.body = text
        self.media_type = "text/plain"

    def write_json(self, data: Any, status_code: int = 200) -> None:
        self.status_code = status_code
        self.body = json.dumps(data, default=str)
        self.media_type = "application/json"
