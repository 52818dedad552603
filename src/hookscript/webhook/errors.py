"""Exceptions raised while authenticating and decoding webhook deliveries."""


class WebhookError(Exception):
    """Base exception for webhook delivery errors."""


class AuthenticationError(WebhookError):
    """Raised when a delivery's signature cannot be verified.

    The reason is kept for internal logging only. It is never reflected
    back to the sender.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class DecodeError(WebhookError):
    """Raised when a delivery body cannot be decoded into an event payload.

    Attributes:
        event_name: The event label the body was decoded for.
    """

    def __init__(self, event_name: str, message: str):
        super().__init__(f"cannot decode {event_name!r} payload: {message}")
        self.event_name = event_name
