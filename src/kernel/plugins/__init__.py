"""Plugin configuration, chain state and dispatch."""

from src.kernel.plugins.models import (
    DEFAULT_WORKFLOW_ID,
    GithubPlugin,
    KernelConfig,
    PluginChain,
    PluginChainState,
    PluginInvocation,
    parse_plugin_reference,
)

__all__ = [
    "DEFAULT_WORKFLOW_ID",
    "GithubPlugin",
    "KernelConfig",
    "PluginChain",
    "PluginChainState",
    "PluginInvocation",
    "parse_plugin_reference",
]
