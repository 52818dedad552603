"""Event classification for verified webhook deliveries.

The classifier turns an event label and a raw body into an Event:

1. The body is decoded. JSON bodies are parsed directly; form-encoded bodies
   (``application/x-www-form-urlencoded``) carry the JSON document in their
   ``payload`` field, as GitHub sends them when a hook is configured with
   that content type.
2. The label is looked up in the payload registry. Known labels are
   validated against their pydantic schema; unknown labels keep the generic
   JSON tree so scripts can still inspect them.

A body that cannot be decoded is a DecodeError, which is a different
outcome from an unknown label. Scripts never see half-decoded payloads.
"""

import json
from typing import Any, Dict, Optional, Type
from urllib.parse import parse_qs

import structlog
from pydantic import BaseModel, ValidationError

from .errors import DecodeError
from .models import Event
from .payloads import EVENT_PAYLOADS

logger = structlog.get_logger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def _media_type(content_type: Optional[str]) -> str:
    """Strip parameters such as ``charset`` from a content type."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class EventClassifier:
    """Maps event labels to payload schemas and decodes delivery bodies.

    Attributes:
        registry: Event label to payload model mapping.
    """

    def __init__(self, registry: Optional[Dict[str, Type[BaseModel]]] = None):
        self.registry = dict(EVENT_PAYLOADS if registry is None else registry)

    def is_known(self, event_name: str) -> bool:
        """Whether ``event_name`` has a typed payload schema."""
        return event_name in self.registry

    def classify(
        self,
        event_name: str,
        body: bytes,
        content_type: Optional[str] = None,
    ) -> Event:
        """Decode a delivery body into an Event.

        Args:
            event_name: The ``X-GitHub-Event`` label, kept verbatim.
            body: The raw request body.
            content_type: The request ``Content-Type`` header, if any.

        Returns:
            An Event whose payload is a typed model for known labels and the
            generic JSON tree otherwise.

        Raises:
            DecodeError: If the body is not a valid document for the label.
        """
        document = self._decode_document(event_name, body, content_type)

        schema = self.registry.get(event_name)
        if schema is None:
            logger.debug("event_untyped", github_event=event_name)
            return Event(name=event_name, payload=document)

        try:
            payload = schema.model_validate(document)
        except ValidationError as exc:
            raise DecodeError(
                event_name, f"{exc.error_count()} schema error(s): {exc.errors()[0]['msg']}"
            ) from exc
        except RecursionError as exc:
            raise DecodeError(event_name, "document nested too deeply") from exc

        return Event(name=event_name, payload=payload)

    def _decode_document(
        self,
        event_name: str,
        body: bytes,
        content_type: Optional[str],
    ) -> Any:
        """Parse the body into the generic JSON tree."""
        try:
            text = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(event_name, "body is not valid UTF-8") from exc

        if _media_type(content_type) == FORM_CONTENT_TYPE:
            fields = parse_qs(text, keep_blank_values=True)
            values = fields.get("payload")
            if not values:
                raise DecodeError(event_name, "form body has no payload field")
            text = values[0]

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise DecodeError(event_name, f"invalid JSON: {exc.msg}") from exc
        except RecursionError as exc:
            raise DecodeError(event_name, "document nested too deeply") from exc
        except ValueError as exc:
            # e.g. an integer literal longer than the conversion limit
            raise DecodeError(event_name, f"invalid JSON: {exc}") from exc


def create_event_classifier() -> EventClassifier:
    """Factory function to create an EventClassifier with the GitHub registry."""
    return EventClassifier()
