"""Handler for ``issue_comment.created``: answers the ``/hello`` command."""

import logging

from src.kernel.github.event_handler import GitHubContext


logger = logging.getLogger(__name__)

HELLO_COMMAND = "/hello"
HELLO_RESPONSE = "Hello from the kernel!"


async def issue_comment_created(context: GitHubContext) -> None:
    comment = context.payload.get("comment") or {}
    body = comment.get("body")
    if not isinstance(body, str) or body.strip() != HELLO_COMMAND:
        return

    repository = context.repository or {}
    owner = (repository.get("owner") or {}).get("login")
    repo = repository.get("name")
    issue_number = (context.payload.get("issue") or {}).get("number")
    if not owner or not repo or not isinstance(issue_number, int):
        logger.warning(
            "Cannot answer command without repository and issue",
            extra={"delivery_id": context.id},
        )
        return

    client = await context.get_client()
    await client.create_comment(owner, repo, issue_number, HELLO_RESPONSE)
