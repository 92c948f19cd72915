"""Webhook request handler.

Each GitHub delivery is handled independently:

1. Validate the configuration against the ``Env`` schema
2. Read the ``x-github-event``, ``x-hub-signature-256`` and
   ``x-github-delivery`` headers
3. Build a ``GitHubEventHandler``, bind the kernel's handlers to it, then
   verify the signature over the raw body and dispatch the event
4. Answer ``200 ok`` or a JSON error

Every error is caught here. Only aggregated errors (``ExceptionGroup``)
and header errors reach the caller with their own message and status; the
first error of a group is surfaced and the others are only logged.
"""

import logging
import time
from typing import Any, Mapping, Optional

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from src.kernel.config import Env, InvalidEnvironmentError, parse_env
from src.kernel.github.event_handler import GitHubEventHandler
from src.kernel.github.handlers import bind_handlers
from src.kernel.metrics import WebhookMetrics
from src.kernel.webhooks import WebhookError, is_emitter_event_name


logger = logging.getLogger(__name__)

EVENT_HEADER = "x-github-event"
SIGNATURE_HEADER = "x-hub-signature-256"
DELIVERY_HEADER = "x-github-delivery"

UNCAUGHT_ERROR_MESSAGE = "An uncaught error occurred"


class HeaderError(WebhookError):
    """Raised when a required webhook header is missing or invalid."""


async def handle_webhook(
    request: Request,
    env: Mapping[str, Any],
    metrics: Optional[WebhookMetrics] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Response:
    """Verify a GitHub delivery and dispatch it to the kernel's handlers.

    Args:
        request: The incoming webhook request.
        env: Configuration mapping validated against ``Env``.
        metrics: Optional metrics to record the delivery on.
        transport: Optional httpx transport for outgoing GitHub calls.

    Returns:
        ``200 text/plain "ok\\n"`` on success, otherwise a JSON error.
    """
    started = time.monotonic()
    event_name: Optional[str] = None
    try:
        config = validate_env(env)
        event_name = get_event_name(request)
        signature = get_signature(request)
        delivery_id = get_id(request)

        event_handler = GitHubEventHandler(
            webhook_secret=config.WEBHOOK_SECRET,
            app_id=config.APP_ID,
            private_key=config.APP_PRIVATE_KEY,
            plugin_chain_state=config.PLUGIN_CHAIN_STATE,
            github_base_url=config.GITHUB_BASE_URL,
            transport=transport,
        )
        bind_handlers(event_handler)
        # Undecodable bytes are replaced, so such bodies fail verification
        payload = (await request.body()).decode("utf-8", errors="replace")
        try:
            await event_handler.webhooks.verify_and_receive(
                id=delivery_id,
                name=event_name,
                payload=payload,
                signature=signature,
            )
        finally:
            await event_handler.close()

        response: Response = PlainTextResponse("ok\n", status_code=200)
    except Exception as e:
        response = handle_uncaught_error(e)

    if metrics is not None:
        metrics.record_delivery(event_name, response.status_code, time.monotonic() - started)
    return response


def handle_uncaught_error(error: Exception) -> JSONResponse:
    """Translate an error into the JSON error response.

    Aggregated errors surface the first error: its class name and message
    (or the generic message if it has none) and its ``status`` attribute if
    set. Anything else answers 500 with the generic message.
    """
    _log_error(error)

    status = 500
    error_message = UNCAUGHT_ERROR_MESSAGE

    first: Optional[BaseException] = None
    if isinstance(error, BaseExceptionGroup):
        first = error.exceptions[0]
    elif isinstance(error, HeaderError):
        first = error

    if first is not None:
        message = str(first)
        error_message = (
            f"{type(first).__name__}: {message}" if message else f"Error: {error_message}"
        )
        first_status = getattr(first, "status", None)
        status = first_status if first_status is not None else 500

    return JSONResponse({"error": error_message}, status_code=status)


def _log_error(error: BaseException) -> None:
    if isinstance(error, BaseExceptionGroup):
        for index, exc in enumerate(error.exceptions):
            logger.error(
                "Webhook error %d of %d: %s",
                index + 1,
                len(error.exceptions),
                exc,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        return
    logger.error("Webhook error: %s", error, exc_info=(type(error), error, error.__traceback__))


def validate_env(env: Mapping[str, Any]) -> Env:
    """Validate the configuration for this request.

    Raises:
        InvalidEnvironmentError: With a generic message; the validation
            errors are logged.
    """
    try:
        return parse_env(env)
    except InvalidEnvironmentError as e:
        logger.error("Invalid environment variables", extra={"errors": e.errors})
        raise


def get_event_name(request: Request) -> str:
    event_name = request.headers.get(EVENT_HEADER)
    if not event_name or not is_emitter_event_name(event_name):
        raise HeaderError(
            f'Unsupported or missing "{EVENT_HEADER}" header value: {event_name}'
        )
    return event_name


def get_signature(request: Request) -> str:
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        raise HeaderError(f'Missing "{SIGNATURE_HEADER}" header')
    return signature


def get_id(request: Request) -> str:
    delivery_id = request.headers.get(DELIVERY_HEADER)
    if not delivery_id:
        raise HeaderError(f'Missing "{DELIVERY_HEADER}" header')
    return delivery_id
