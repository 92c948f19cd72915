"""Catch-all handler: starts the plugin chains configured for an event.

For every chain configured under the event key, the bare event name or
``*``, a ``PluginChainState`` is created under a fresh state id, the inputs
for the first plugin are recorded in it, and the first plugin is
dispatched. Later plugins are started from ``repository_dispatch`` once the
previous plugin reports back.
"""

import logging
import uuid

from src.kernel.github.event_handler import GitHubContext
from src.kernel.plugins.config import get_config
from src.kernel.plugins.dispatch import build_plugin_inputs, dispatch_plugin, resolve_ref
from src.kernel.plugins.models import PluginChainState


logger = logging.getLogger(__name__)


def _is_bot_event(context: GitHubContext) -> bool:
    sender = context.payload.get("sender")
    return isinstance(sender, dict) and sender.get("type") == "Bot"


async def handle_event(context: GitHubContext) -> None:
    # Plugin results continue an existing chain instead of starting one
    if context.name == "repository_dispatch":
        return

    repository = context.repository
    if context.installation_id is None or repository is None:
        logger.debug(
            "Event has no installation or repository, skipping plugins",
            extra={"event": context.key, "delivery_id": context.id},
        )
        return

    owner = (repository.get("owner") or {}).get("login")
    repo = repository.get("name")
    if not owner or not repo:
        return

    client = await context.get_client()
    config = await get_config(client, owner, repo)

    chains = config.chains_for(context.name, context.key)
    if not chains:
        logger.info(
            "No plugin chain configured for event",
            extra={"event": context.key, "repository": f"{owner}/{repo}"},
        )
        return

    is_bot_event = _is_bot_event(context)
    for chain in chains:
        if chain.skip_bot_events and is_bot_event:
            logger.debug("Skipping bot event", extra={"event": context.key})
            continue

        state_id = str(uuid.uuid4())
        first = chain.uses[0]
        ref = await resolve_ref(client, first)
        inputs = build_plugin_inputs(
            state_id=state_id,
            event_name=context.key,
            event_payload=context.payload,
            settings=first.with_,
            auth_token=await context.get_token(),
            ref=ref,
        )

        state = PluginChainState(
            event_id=context.id,
            event_name=context.key,
            event_payload=context.payload,
            current_plugin=0,
            plugin_chain=chain.uses,
        )
        state.inputs[0] = inputs
        await context.event_handler.plugin_chain_state.put(state_id, state)

        logger.info(
            "Starting plugin chain",
            extra={
                "event": context.key,
                "state_id": state_id,
                "plugins": len(chain.uses),
            },
        )
        await dispatch_plugin(
            client,
            first,
            ref,
            inputs,
            transport=context.event_handler.transport,
        )
