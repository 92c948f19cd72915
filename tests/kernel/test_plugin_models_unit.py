"""Unit tests for plugin configuration parsing and chain state."""

import pytest
from hypothesis import given, settings, strategies as st

from src.kernel.plugins.config import parse_config
from src.kernel.plugins.models import (
    DEFAULT_WORKFLOW_ID,
    GithubPlugin,
    KernelConfig,
    PluginChainState,
    PluginInvocation,
    parse_plugin_reference,
)


names = st.text(
    alphabet=st.sampled_from(
        "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_."
    ),
    min_size=1,
    max_size=30,
)


CONFIG_YAML = """
plugins:
  issue_comment.created:
    - uses:
        - plugin: acme/comment-plugin:run.yml@v1
          with:
            greeting: hi
        - plugin: https://plugin.example.com
  issues:
    - uses:
        - plugin: acme/issues-plugin
      skipBotEvents: false
  "*":
    - uses:
        - plugin: acme/audit
"""


class TestPluginReference:
    def test_full_reference(self) -> None:
        plugin = parse_plugin_reference("acme/widgets:build.yml@feature/x")

        assert plugin == GithubPlugin(
            owner="acme", repo="widgets", workflow_id="build.yml", ref="feature/x"
        )

    def test_defaults(self) -> None:
        plugin = parse_plugin_reference("acme/widgets")

        assert isinstance(plugin, GithubPlugin)
        assert plugin.workflow_id == DEFAULT_WORKFLOW_ID
        assert plugin.ref is None
        assert plugin.full_repository == "acme/widgets"

    def test_worker_url_kept(self) -> None:
        assert parse_plugin_reference("https://plugin.example.com/run") == (
            "https://plugin.example.com/run"
        )

    @pytest.mark.parametrize("value", ["widgets", "acme/", "/widgets", "acme/widgets@", "a b/c"])
    def test_invalid_reference(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_plugin_reference(value)

    @given(owner=names, repo=names, workflow=names, ref=names)
    @settings(max_examples=100)
    def test_parsed_parts_match(self, owner: str, repo: str, workflow: str, ref: str) -> None:
        plugin = parse_plugin_reference(f"{owner}/{repo}:{workflow}@{ref}")

        assert plugin == GithubPlugin(owner=owner, repo=repo, workflow_id=workflow, ref=ref)


class TestKernelConfig:
    def test_parse_config(self) -> None:
        config = parse_config(CONFIG_YAML)

        chain = config.plugins["issue_comment.created"][0]
        assert chain.skip_bot_events is True
        assert chain.uses[0].plugin.ref == "v1"
        assert chain.uses[0].with_ == {"greeting": "hi"}
        assert chain.uses[1].plugin == "https://plugin.example.com"
        assert not chain.uses[1].is_github_plugin
        assert config.plugins["issues"][0].skip_bot_events is False

    def test_chains_for_most_specific_first(self) -> None:
        config = parse_config(CONFIG_YAML)

        chains = config.chains_for("issues", "issues.opened")
        assert [c.uses[0].plugin.repo for c in chains] == ["issues-plugin", "audit"]

        chains = config.chains_for("issue_comment", "issue_comment.created")
        assert [len(c.uses) for c in chains] == [2, 1]

    def test_empty_file_is_empty_config(self) -> None:
        assert parse_config("") == KernelConfig()
        assert parse_config("plugins:\n") == KernelConfig()

    @pytest.mark.parametrize(
        "text",
        [
            "plugins: [",
            "- just a list",
            "plugins:\n  issues:\n    - uses: []\n",
            "plugins:\n  issues:\n    - uses:\n        - plugin: not a reference\n",
        ],
    )
    def test_invalid_config(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_config(text)


class TestPluginChainState:
    def _state(self) -> PluginChainState:
        return PluginChainState(
            event_id="delivery-1",
            event_name="issues.opened",
            event_payload={"action": "opened"},
            plugin_chain=[
                PluginInvocation(plugin="acme/one"),
                PluginInvocation.model_validate({"plugin": "acme/two", "with": {"k": 1}}),
            ],
        )

    def test_inputs_and_outputs_sized_to_chain(self) -> None:
        state = self._state()

        assert state.inputs == [None, None]
        assert state.outputs == [None, None]
        assert state.current_invocation.plugin.repo == "one"

    def test_finished_after_last_plugin(self) -> None:
        state = self._state()
        state.current_plugin = 2

        assert state.is_finished
        assert state.current_invocation is None

    def test_serialized_state_validates_back(self) -> None:
        state = self._state()
        state.outputs[0] = {"result": "done"}

        data = state.model_dump(mode="json", by_alias=True)

        assert data["plugin_chain"][1]["with"] == {"k": 1}
        assert PluginChainState.model_validate(data) == state
