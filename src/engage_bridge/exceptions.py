"""engage-bridge exception hierarchy.

Every error raised by the adapter derives from :class:`AdapterError`, so
callers can catch the whole family with a single except clause while the
HTTP layer can still map individual subclasses to status codes.

Usage:
    from engage_bridge.exceptions import NotSupportedError, PlatformClientError

    try:
        await adapter.update_activity(turn_context, activity)
    except NotSupportedError:
        ...  # the platform cannot edit published content
    except PlatformClientError as e:
        print(f"Engage API failed with {e.status_code}: {e.message}")
"""


class AdapterError(Exception):
    """Base exception for all engage-bridge errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


# Caller errors


class InvalidArgumentError(AdapterError, ValueError):
    """A required argument was missing.

    Raised before any side effect takes place.
    """

    def __init__(self, argument: str) -> None:
        self.argument = argument
        super().__init__(f"Argument '{argument}' must not be None")


class ChannelDataMissingError(AdapterError):
    """Activity carries no usable Engage channel data."""

    def __init__(self, activity_id: str | None = None, cause: Exception | None = None) -> None:
        self.activity_id = activity_id
        message = "Required Engage channel data is not present on the activity"
        if activity_id:
            message = f"{message} '{activity_id}'"
        super().__init__(message, cause)


class NotSupportedError(AdapterError, NotImplementedError):
    """Operation is not available on the Engage integration."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"'{operation}' is not supported by the RingCentral Engage adapter")


class OperationCancelledError(AdapterError):
    """The cancellation token for the current request was tripped."""

    def __init__(self, message: str = "Operation was cancelled") -> None:
        super().__init__(message)


# Configuration errors


class ConfigurationError(AdapterError):
    """Invalid settings or handoff phrase file."""

    pass


# Platform errors


class PlatformClientError(AdapterError):
    """Engage API call failed.

    ``status_code`` is ``None`` for transport failures (DNS, timeouts, ...).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        super().__init__(message, cause)


class PayloadError(AdapterError):
    """Webhook body could not be parsed into a known payload."""

    pass
