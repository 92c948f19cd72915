"""Plugin configuration and plugin-chain state models.

A repository opts into plugins with a YAML file (``.github/kernel-config.yml``)
mapping event keys to plugin chains:

    plugins:
      issue_comment.created:
        - uses:
            - plugin: acme/comment-plugin:compute.yml@main
              with:
                greeting: hi
            - plugin: https://plugin.example.com
          skipBotEvents: true

Each chain runs its plugins one after another. The progress of a running
chain is a ``PluginChainState`` persisted in the key-value store under a
random state id, so the ``repository_dispatch`` sent back by a plugin can
resume it.
"""

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


DEFAULT_WORKFLOW_ID = "compute.yml"

_NAME = r"[0-9a-zA-Z\-._]+"
PLUGIN_REFERENCE_PATTERN = re.compile(
    rf"^(?P<owner>{_NAME})/(?P<repo>{_NAME})"
    rf"(?::(?P<workflow_id>{_NAME}))?"
    rf"(?:@(?P<ref>{_NAME}(?:/{_NAME})*))?$"
)


class GithubPlugin(BaseModel):
    """A plugin that runs as a GitHub Actions workflow.

    Attributes:
        owner: Owner of the plugin repository.
        repo: Name of the plugin repository.
        workflow_id: Workflow file dispatched to run the plugin.
        ref: Git ref to run; None means the repository default branch.
    """

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    workflow_id: str = DEFAULT_WORKFLOW_ID
    ref: Optional[str] = None

    @property
    def full_repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_plugin_reference(value: str) -> Union[GithubPlugin, str]:
    """Parse a plugin reference from the configuration file.

    ``https://...`` and ``http://...`` references are worker URLs and are
    returned unchanged. Anything else must look like
    ``owner/repo[:workflow_id][@ref]``.

    Raises:
        ValueError: If the reference is neither a URL nor a repository
            reference.
    """
    if value.startswith(("http://", "https://")):
        return value

    match = PLUGIN_REFERENCE_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Invalid plugin reference: {value}")

    return GithubPlugin(
        owner=match.group("owner"),
        repo=match.group("repo"),
        workflow_id=match.group("workflow_id") or DEFAULT_WORKFLOW_ID,
        ref=match.group("ref"),
    )


class PluginInvocation(BaseModel):
    """One step of a plugin chain: which plugin and with which settings."""

    model_config = ConfigDict(populate_by_name=True)

    plugin: Union[GithubPlugin, str]
    with_: Dict[str, Any] = Field(default_factory=dict, alias="with")

    @field_validator("plugin", mode="before")
    @classmethod
    def parse_plugin(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_plugin_reference(v)
        return v

    @property
    def is_github_plugin(self) -> bool:
        return isinstance(self.plugin, GithubPlugin)


class PluginChain(BaseModel):
    """An ordered list of plugins run for an event."""

    model_config = ConfigDict(populate_by_name=True)

    uses: List[PluginInvocation] = Field(..., min_length=1)
    skip_bot_events: bool = Field(default=True, alias="skipBotEvents")


class KernelConfig(BaseModel):
    """Repository plugin configuration.

    Attributes:
        plugins: Plugin chains keyed by event key (``issues.opened``),
            event name (``issues``) or ``*`` for every event.
    """

    plugins: Dict[str, List[PluginChain]] = Field(default_factory=dict)

    @field_validator("plugins", mode="before")
    @classmethod
    def default_plugins(cls, v: Any) -> Any:
        return v if v is not None else {}

    def chains_for(self, event_name: str, event_key: str) -> List[PluginChain]:
        """Return the chains configured for an event, most specific first."""
        chains: List[PluginChain] = []
        keys = [event_key] if event_key == event_name else [event_key, event_name]
        for key in keys + ["*"]:
            chains.extend(self.plugins.get(key, []))
        return chains


class PluginChainState(BaseModel):
    """Progress of a running plugin chain.

    Attributes:
        event_id: Delivery id of the event that started the chain.
        event_name: Event key (``name.action`` or ``name``).
        event_payload: Payload of the originating event.
        current_plugin: Index of the plugin currently running.
        plugin_chain: The plugins of the chain in order.
        inputs: Inputs sent to each plugin, None until dispatched.
        outputs: Outputs returned by each plugin, None until returned.
    """

    model_config = ConfigDict(populate_by_name=True)

    event_id: str
    event_name: str
    event_payload: Dict[str, Any]
    current_plugin: int = Field(default=0, ge=0)
    plugin_chain: List[PluginInvocation]
    inputs: List[Optional[Dict[str, Any]]] = Field(default_factory=list)
    outputs: List[Optional[Dict[str, Any]]] = Field(default_factory=list)

    def model_post_init(self, __context: Any) -> None:
        length = len(self.plugin_chain)
        if len(self.inputs) < length:
            self.inputs.extend([None] * (length - len(self.inputs)))
        if len(self.outputs) < length:
            self.outputs.extend([None] * (length - len(self.outputs)))

    @property
    def is_finished(self) -> bool:
        return self.current_plugin >= len(self.plugin_chain)

    @property
    def current_invocation(self) -> Optional[PluginInvocation]:
        if self.is_finished:
            return None
        return self.plugin_chain[self.current_plugin]
