"""Delivery of plugin inputs to GitHub workflow and worker plugins."""

import json
import logging
from typing import Any, Dict, Optional

import httpx

from src.kernel.github.client import GitHubClient
from src.kernel.plugins.models import GithubPlugin, PluginInvocation


logger = logging.getLogger(__name__)

WORKER_TIMEOUT_SECONDS = 10.0


def build_plugin_inputs(
    state_id: str,
    event_name: str,
    event_payload: Dict[str, Any],
    settings: Dict[str, Any],
    auth_token: str,
    ref: str,
) -> Dict[str, str]:
    """Build the inputs handed to a plugin.

    Workflow dispatch inputs must be strings, so structured values are sent
    JSON-encoded.
    """
    return {
        "stateId": state_id,
        "eventName": event_name,
        "eventPayload": json.dumps(event_payload),
        "settings": json.dumps(settings),
        "authToken": auth_token,
        "ref": ref,
    }


async def resolve_ref(client: GitHubClient, invocation: PluginInvocation) -> str:
    """Return the ref a plugin runs at: its pinned ref, default branch or URL."""
    plugin = invocation.plugin
    if isinstance(plugin, GithubPlugin):
        if plugin.ref:
            return plugin.ref
        return await client.get_default_branch(plugin.owner, plugin.repo)
    return plugin


async def dispatch_plugin(
    client: GitHubClient,
    invocation: PluginInvocation,
    ref: str,
    inputs: Dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> None:
    """Start a plugin: dispatch its workflow or POST to its worker URL."""
    plugin = invocation.plugin
    if isinstance(plugin, GithubPlugin):
        await client.create_workflow_dispatch(
            owner=plugin.owner,
            repo=plugin.repo,
            workflow_id=plugin.workflow_id,
            ref=ref,
            inputs=inputs,
        )
        return

    logger.info("Dispatching worker plugin", extra={"url": plugin})
    async with httpx.AsyncClient(
        timeout=WORKER_TIMEOUT_SECONDS,
        transport=transport,
    ) as http:
        response = await http.post(plugin, json=inputs)
        response.raise_for_status()
