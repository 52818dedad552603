"""GitHub webhook authentication and event classification.

This package turns an authenticated byte stream into a typed event:
- signature: HMAC verification of the raw body (sha256 and legacy sha1)
- classifier: event label to payload schema lookup and body decoding
- payloads: pydantic schemas for the known GitHub event labels
- models: the Event handed to template scripts
"""

from .classifier import EventClassifier, create_event_classifier
from .errors import AuthenticationError, DecodeError, WebhookError
from .models import Event
from .payloads import EVENT_PAYLOADS
from .signature import SignatureVerifier, sign, verify

__all__ = [
    "AuthenticationError",
    "DecodeError",
    "EVENT_PAYLOADS",
    "Event",
    "EventClassifier",
    "SignatureVerifier",
    "WebhookError",
    "create_event_classifier",
    "sign",
    "verify",
]
