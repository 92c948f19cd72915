"""GitHub webhook verification and dispatch.

This package provides:
- The enumeration of GitHub webhook event names (``issues``,
  ``issues.opened``, ...)
- HMAC-SHA256 signing and constant-time verification of payloads
- A handler registry that dispatches verified events and aggregates
  handler failures into an ``ExceptionGroup``
"""

from .dispatcher import ANY_EVENT, Webhooks
from .events import EMITTER_EVENT_NAMES, WEBHOOK_EVENTS, is_emitter_event_name
from .models import WebhookError, WebhookEvent
from .signature import sign, verify

__all__ = [
    "ANY_EVENT",
    "EMITTER_EVENT_NAMES",
    "WEBHOOK_EVENTS",
    "WebhookError",
    "WebhookEvent",
    "Webhooks",
    "is_emitter_event_name",
    "sign",
    "verify",
]
