"""Business-logic callbacks registered on the kernel's event handler."""

import logging

from src.kernel.github.event_handler import GitHubEventHandler

from .handle_event import handle_event
from .issue_comment_created import issue_comment_created
from .repository_dispatch import repository_dispatch


logger = logging.getLogger(__name__)


def _log_errors(error: ExceptionGroup) -> None:
    for exc in error.exceptions:
        logger.error(
            "Webhook handler failed",
            exc_info=(type(exc), exc, exc.__traceback__),
        )


def bind_handlers(event_handler: GitHubEventHandler) -> None:
    """Register the kernel's callbacks on a per-delivery event handler."""
    event_handler.on("repository_dispatch", repository_dispatch)
    event_handler.on("issue_comment.created", issue_comment_created)
    event_handler.on_any(handle_event)
    event_handler.on_error(_log_errors)


__all__ = [
    "bind_handlers",
    "handle_event",
    "issue_comment_created",
    "repository_dispatch",
]
