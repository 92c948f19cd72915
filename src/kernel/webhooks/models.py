"""Webhook event and error types."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class WebhookEvent(BaseModel):
    """A verified webhook delivery handed to registered handlers.

    Attributes:
        id: The delivery id from the ``x-github-delivery`` header.
        name: The event name from the ``x-github-event`` header.
        payload: The parsed JSON body.
    """

    id: str = Field(..., min_length=1, description="GitHub delivery id")
    name: str = Field(..., min_length=1, description="Webhook event name")
    payload: Dict[str, Any] = Field(
        default_factory=dict,
        description="Parsed webhook payload",
    )

    @property
    def action(self) -> Optional[str]:
        """The payload ``action`` field, if the event carries one."""
        action = self.payload.get("action")
        return action if isinstance(action, str) and action else None

    @property
    def key(self) -> str:
        """Event name qualified with its action, e.g. ``issues.opened``."""
        if self.action:
            return f"{self.name}.{self.action}"
        return self.name


class WebhookError(Exception):
    """Raised when a delivery cannot be verified or handled.

    Attributes:
        message: Human-readable error description.
        status: HTTP status code to answer with, if the error dictates one.
        event: The event being processed when the error occurred, if any.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        event: Optional[WebhookEvent] = None,
    ):
        self.message = message
        self.status = status
        self.event = event
        super().__init__(message)
