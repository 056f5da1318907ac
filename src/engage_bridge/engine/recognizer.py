"""Handoff request recognizers.

Recognizers inspect an inbound message and return who should own the
conversation next. They are pure: no I/O, no state, never raising for a
well-formed activity.
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

import yaml

from engage_bridge.core.activity import Activity, ActivityTypes
from engage_bridge.core.events import HandoffTarget
from engage_bridge.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_AGENT_PHRASES: tuple[str, ...] = (
    "talk to a human",
    "speak to a human",
    "talk to someone",
    "real person",
    "live agent",
    "human",
    "agent",
    "representative",
    "operator",
)

DEFAULT_BOT_PHRASES: tuple[str, ...] = (
    "talk to the bot",
    "talk to a bot",
    "back to the bot",
    "back to bot",
    "bot please",
)


def _compile(phrases: Iterable[str]) -> re.Pattern[str] | None:
    cleaned = sorted({" ".join(p.lower().split()) for p in phrases if p and p.strip()}, key=len, reverse=True)
    if not cleaned:
        return None
    alternation = "|".join(r"\s+".join(re.escape(word) for word in p.split()) for p in cleaned)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


class PhraseHandoffRecognizer:
    """Matches whole phrases in message text.

    Agent phrases take precedence when a message matches both lists, so a
    user asking for a human is never kept with the bot by accident.

    Example:
        ```python
        recognizer = PhraseHandoffRecognizer()
        await recognizer.recognize_handoff_request(Activity(text="Can I talk to a human?"))
        # HandoffTarget.AGENT
        ```
    """

    def __init__(
        self,
        agent_phrases: Iterable[str] = DEFAULT_AGENT_PHRASES,
        bot_phrases: Iterable[str] = DEFAULT_BOT_PHRASES,
    ) -> None:
        self.agent_phrases = tuple(agent_phrases)
        self.bot_phrases = tuple(bot_phrases)
        self._agent_pattern = _compile(self.agent_phrases)
        self._bot_pattern = _compile(self.bot_phrases)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "PhraseHandoffRecognizer":
        """Load phrases from a YAML file with ``agent`` and ``bot`` lists.

        Missing keys fall back to the defaults.

        Raises:
            ConfigurationError: If the file is unreadable or malformed.
        """
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read handoff phrases from {path}: {e}", cause=e) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Handoff phrases file {path} must contain a mapping")

        agent = data.get("agent", DEFAULT_AGENT_PHRASES)
        bot = data.get("bot", DEFAULT_BOT_PHRASES)
        for key, value in (("agent", agent), ("bot", bot)):
            if not isinstance(value, (list, tuple)) or not all(isinstance(p, str) for p in value):
                raise ConfigurationError(f"'{key}' in {path} must be a list of strings")

        logger.info(
            "Loaded handoff phrases",
            extra={"path": str(path), "agent_phrases": len(agent), "bot_phrases": len(bot)},
        )
        return cls(agent_phrases=agent, bot_phrases=bot)

    async def recognize_handoff_request(self, activity: Activity) -> HandoffTarget:
        return self.recognize(activity)

    def recognize(self, activity: Activity) -> HandoffTarget:
        """Synchronous core of :meth:`recognize_handoff_request`."""
        if activity.type != ActivityTypes.MESSAGE or not activity.text:
            return HandoffTarget.NONE

        if self._agent_pattern and self._agent_pattern.search(activity.text):
            return HandoffTarget.AGENT
        if self._bot_pattern and self._bot_pattern.search(activity.text):
            return HandoffTarget.BOT
        return HandoffTarget.NONE


class StaticHandoffRecognizer:
    """Always returns the same verdict. Useful for tests and pinned routing."""

    def __init__(self, target: HandoffTarget = HandoffTarget.NONE) -> None:
        self.target = target

    async def recognize_handoff_request(self, activity: Activity) -> HandoffTarget:
        return self.target
