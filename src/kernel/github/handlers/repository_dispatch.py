"""Handler for ``repository_dispatch``: resumes a plugin chain.

Plugins report back by sending a ``repository_dispatch`` whose
``client_payload`` is ``{"state_id": ..., "output": ...}``. The output is
recorded in the chain state, the chain advances, and the next plugin (if
any) is dispatched with the original event. The state of a completed chain
is removed from the store.
"""

import logging
from typing import Any, Dict, Optional

from src.kernel.github.event_handler import GitHubContext
from src.kernel.plugins.dispatch import build_plugin_inputs, dispatch_plugin, resolve_ref
from src.kernel.plugins.models import GithubPlugin, PluginChainState


logger = logging.getLogger(__name__)


def _original_installation_id(state: PluginChainState) -> Optional[int]:
    installation = state.event_payload.get("installation")
    if isinstance(installation, dict) and isinstance(installation.get("id"), int):
        return installation["id"]
    return None


def _sent_by_current_plugin(context: GitHubContext, state: PluginChainState) -> bool:
    invocation = state.current_invocation
    if invocation is None or not isinstance(invocation.plugin, GithubPlugin):
        return True

    repository = context.repository or {}
    owner = (repository.get("owner") or {}).get("login")
    return owner == invocation.plugin.owner and repository.get("name") == invocation.plugin.repo


async def repository_dispatch(context: GitHubContext) -> None:
    client_payload: Dict[str, Any] = context.payload.get("client_payload") or {}
    state_id = client_payload.get("state_id")
    if not isinstance(state_id, str) or not state_id:
        logger.warning(
            "repository_dispatch without state_id",
            extra={"delivery_id": context.id},
        )
        return

    store = context.event_handler.plugin_chain_state
    state = await store.get(state_id)
    if state is None:
        logger.error("No state found for plugin chain", extra={"state_id": state_id})
        return

    if state.is_finished:
        logger.info("Plugin chain has already ended", extra={"state_id": state_id})
        return

    if not _sent_by_current_plugin(context, state):
        logger.error(
            "Plugin chain state does not match payload",
            extra={"state_id": state_id, "current_plugin": state.current_plugin},
        )
        return

    output = client_payload.get("output")
    state.outputs[state.current_plugin] = output if isinstance(output, dict) else {"value": output}
    state.current_plugin += 1

    next_invocation = state.current_invocation
    if next_invocation is None:
        await store.delete(state_id)
        logger.info("Plugin chain completed", extra={"state_id": state_id})
        return

    installation_id = _original_installation_id(state)
    if installation_id is None:
        await store.delete(state_id)
        logger.error(
            "Original event has no installation, cannot continue chain",
            extra={"state_id": state_id},
        )
        return

    await store.put(state_id, state)

    client = await context.get_client()
    ref = await resolve_ref(client, next_invocation)
    inputs = build_plugin_inputs(
        state_id=state_id,
        event_name=state.event_name,
        event_payload=state.event_payload,
        settings=next_invocation.with_,
        auth_token=await context.event_handler.get_token(installation_id),
        ref=ref,
    )
    state.inputs[state.current_plugin] = inputs
    await store.put(state_id, state)

    logger.info(
        "Dispatching next plugin in chain",
        extra={"state_id": state_id, "current_plugin": state.current_plugin},
    )
    await dispatch_plugin(
        client,
        next_invocation,
        ref,
        inputs,
        transport=context.event_handler.transport,
    )
