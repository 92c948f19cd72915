"""Typed access to plugin-chain state in a key-value store."""

import logging
from typing import Optional

from pydantic import ValidationError

from src.kernel.plugins.models import PluginChainState
from src.kernel.storage.kv import KeyValueStore, StorageError


logger = logging.getLogger(__name__)


class PluginChainStateStore:
    """Reads and writes ``PluginChainState`` records by state id."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def get(self, state_id: str) -> Optional[PluginChainState]:
        """Load a chain state.

        Raises:
            StorageError: If the stored value is not a valid chain state.
        """
        value = await self.store.get(state_id)
        if value is None:
            return None

        try:
            return PluginChainState.model_validate(value)
        except ValidationError as e:
            logger.error(
                "Stored plugin chain state is invalid",
                extra={"state_id": state_id, "error": str(e)},
            )
            raise StorageError(
                f"Invalid plugin chain state for {state_id}",
                original_error=e,
            ) from e

    async def put(self, state_id: str, state: PluginChainState) -> None:
        await self.store.put(state_id, state.model_dump(mode="json", by_alias=True))

    async def delete(self, state_id: str) -> None:
        await self.store.delete(state_id)
