"""Webhook verification and handler dispatch.

The ``Webhooks`` class keeps an explicit registry mapping event names to
ordered lists of handlers. After a delivery's signature has been verified
and its payload parsed, ``receive`` invokes the handlers registered for
``<event>.<action>``, then those for ``<event>``, then the catch-all
handlers, one at a time and each awaited to completion.

Handler failures do not stop the remaining handlers. They are collected,
tagged with the event, and raised together as an ``ExceptionGroup`` once
every handler has run. Callers that answer HTTP requests surface only the
first error of the group.
"""

import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Union

from .events import is_emitter_event_name
from .models import WebhookError, WebhookEvent
from .signature import verify


logger = logging.getLogger(__name__)

EventCallback = Callable[[WebhookEvent], Union[Awaitable[None], None]]
ErrorCallback = Callable[[ExceptionGroup], Union[Awaitable[None], None]]

ANY_EVENT = "*"
ERROR_EVENT = "error"


async def _call(callback: Callable[..., Any], argument: Any) -> None:
    result = callback(argument)
    if inspect.isawaitable(result):
        await result


class Webhooks:
    """Registry of webhook handlers with signature-checked dispatch.

    Attributes:
        secret: The shared webhook secret used to verify deliveries.

    Example:
        >>> webhooks = Webhooks(secret="s3cret")
        >>> webhooks.on("issues.opened", handle_issue_opened)
        >>> await webhooks.verify_and_receive(
        ...     id="delivery-id",
        ...     name="issues",
        ...     payload=body,
        ...     signature=request.headers["x-hub-signature-256"],
        ... )
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("secret required")
        self.secret = secret
        self._hooks: Dict[str, List[EventCallback]] = {}
        self._error_hooks: List[ErrorCallback] = []

    def on(
        self,
        event_name: Union[str, Iterable[str]],
        callback: EventCallback,
    ) -> None:
        """Register a handler for one or more event names.

        Args:
            event_name: An event name (``issues``), an event with action
                (``issues.opened``), or a list of those.
            callback: Sync or async callable receiving the ``WebhookEvent``.

        Raises:
            ValueError: If ``"*"`` or ``"error"`` is used; those have their
                own registration methods.
        """
        if not isinstance(event_name, str):
            for name in event_name:
                self.on(name, callback)
            return

        if event_name in (ANY_EVENT, ERROR_EVENT):
            helper = "on_any" if event_name == ANY_EVENT else "on_error"
            raise ValueError(
                f'Using the "{event_name}" event with the regular Webhooks.on() '
                f"function is not supported. Please use the Webhooks.{helper}() "
                "method instead"
            )

        if not is_emitter_event_name(event_name):
            logger.warning('"%s" is not a known webhook name', event_name)

        self._hooks.setdefault(event_name, []).append(callback)

    def on_any(self, callback: EventCallback) -> None:
        """Register a handler invoked for every event."""
        self._hooks.setdefault(ANY_EVENT, []).append(callback)

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a handler notified when any event handler fails."""
        self._error_hooks.append(callback)

    def remove_listener(
        self,
        event_name: Union[str, Iterable[str]],
        callback: Callable[..., Any],
    ) -> None:
        """Unregister a handler. Unknown handlers are ignored."""
        if not isinstance(event_name, str):
            for name in event_name:
                self.remove_listener(name, callback)
            return

        if event_name == ERROR_EVENT:
            hooks: List[Any] = self._error_hooks
        else:
            hooks = self._hooks.get(event_name, [])

        if callback in hooks:
            hooks.remove(callback)

    def handlers_for(self, event: WebhookEvent) -> List[EventCallback]:
        """Return the handlers for an event in invocation order."""
        handlers: List[EventCallback] = []
        if event.action:
            handlers.extend(self._hooks.get(f"{event.name}.{event.action}", []))
        handlers.extend(self._hooks.get(event.name, []))
        handlers.extend(self._hooks.get(ANY_EVENT, []))
        return handlers

    async def receive(self, event: WebhookEvent) -> None:
        """Dispatch an already verified event to its handlers.

        Raises:
            ExceptionGroup: If one or more handlers raised. Each contained
                exception has the event attached as ``event``.
        """
        handlers = self.handlers_for(event)
        if not handlers:
            logger.debug(
                "No handlers registered for event",
                extra={"event": event.key, "delivery_id": event.id},
            )
            return

        errors: List[Exception] = []
        for handler in handlers:
            try:
                await _call(handler, event)
            except Exception as e:
                e.event = event
                errors.append(e)

        if not errors:
            return

        error = ExceptionGroup("\n".join(str(e) for e in errors), errors)
        await self._notify_error_handlers(error)
        raise error

    async def verify_and_receive(
        self,
        id: str,
        name: str,
        payload: str,
        signature: str,
    ) -> None:
        """Verify a delivery's signature, parse it and dispatch it.

        Args:
            id: The delivery id.
            name: The event name.
            payload: The raw request body as text.
            signature: The ``x-hub-signature-256`` header value.

        Raises:
            ExceptionGroup: For a signature mismatch or an unparseable
                payload (a single ``WebhookError`` with status 400), or when
                handlers fail.
            ValueError: If the payload or signature is empty.
        """
        if not verify(self.secret, payload, signature):
            error = WebhookError(
                "signature does not match event payload and secret",
                status=400,
            )
            logger.warning(
                "Webhook signature verification failed",
                extra={"event": name, "delivery_id": id},
            )
            group = ExceptionGroup(error.message, [error])
            await self._notify_error_handlers(group)
            raise group

        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError as e:
            error = WebhookError("Invalid JSON", status=400)
            raise ExceptionGroup(error.message, [error]) from e

        if not isinstance(parsed, dict):
            error = WebhookError("Invalid JSON", status=400)
            raise ExceptionGroup(error.message, [error])

        event = WebhookEvent(id=id, name=name, payload=parsed)
        logger.info(
            "Webhook verified",
            extra={"event": event.key, "delivery_id": event.id},
        )
        await self.receive(event)

    async def _notify_error_handlers(self, error: ExceptionGroup) -> None:
        for handler in self._error_hooks:
            try:
                await _call(handler, error)
            except Exception:
                logger.exception("Webhook error handler failed")
