"""State storage shared across webhook deliveries."""

from src.kernel.storage.kv import (
    InMemoryKeyValueStore,
    KeyValueStore,
    PostgresKeyValueStore,
    StorageError,
)
from src.kernel.storage.plugin_chain import PluginChainStateStore

__all__ = [
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "PluginChainStateStore",
    "PostgresKeyValueStore",
    "StorageError",
]
