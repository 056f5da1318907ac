"""engage-bridge - RingCentral Engage webhook adapter for conversational bots.

Example:
    ```python
    from engage_bridge import EngageAdapter, EngageClient, PhraseHandoffRecognizer

    adapter = EngageAdapter(EngageClient(), PhraseHandoffRecognizer())
    event = await adapter.process(request, reply, bot)
    ```
"""

__version__ = "0.1.0"

from engage_bridge.client import EngageClient
from engage_bridge.config import EngageSettings, ServerSettings
from engage_bridge.core import (
    Activity,
    ActivityTypes,
    ChannelData,
    ClassifiedEvent,
    HandledEventKind,
    HandoffOutcome,
    HandoffTarget,
    Thread,
    WebhookReply,
)
from engage_bridge.engine import (
    CancellationToken,
    ConversationControlCoordinator,
    EngageAdapter,
    EventClassifier,
    PhraseHandoffRecognizer,
    StaticHandoffRecognizer,
    TurnContext,
)
from engage_bridge.exceptions import (
    AdapterError,
    ChannelDataMissingError,
    ConfigurationError,
    InvalidArgumentError,
    NotSupportedError,
    OperationCancelledError,
    PayloadError,
    PlatformClientError,
)

__all__ = [
    "__version__",
    # Core
    "Activity",
    "ActivityTypes",
    "ChannelData",
    "ClassifiedEvent",
    "HandledEventKind",
    "HandoffOutcome",
    "HandoffTarget",
    "Thread",
    "WebhookReply",
    # Engine
    "CancellationToken",
    "ConversationControlCoordinator",
    "EngageAdapter",
    "EventClassifier",
    "PhraseHandoffRecognizer",
    "StaticHandoffRecognizer",
    "TurnContext",
    # Client and settings
    "EngageClient",
    "EngageSettings",
    "ServerSettings",
    # Errors
    "AdapterError",
    "ChannelDataMissingError",
    "ConfigurationError",
    "InvalidArgumentError",
    "NotSupportedError",
    "OperationCancelledError",
    "PayloadError",
    "PlatformClientError",
]
