"""Event model handed to template scripts.

An Event pairs the transport-supplied event label with the decoded payload.
Scripts reach the two fields either by their Python names (``.name``,
``.payload``) or by the capitalised names used in existing scripts
(``.Name``, ``.Payload``).

Events are only ever built by the EventClassifier, which the dispatcher
calls after the delivery signature has been verified.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Event(BaseModel):
    """A classified, decoded webhook delivery.

    Attributes:
        name: The event label from the ``X-GitHub-Event`` header, verbatim.
        payload: A typed payload model for known labels, otherwise the
                 generic JSON tree (dicts, lists and scalars).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(
        ...,
        alias="Name",
        description="The event label supplied by the sender",
    )

    payload: Any = Field(
        default=None,
        alias="Payload",
        description="The decoded payload for the event label",
    )

    @property
    def is_typed(self) -> bool:
        """Whether the payload was decoded against a known schema."""
        return isinstance(self.payload, BaseModel)
