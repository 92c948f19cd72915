"""GitHub event handler: the capability object built for each delivery.

``GitHubEventHandler`` bundles everything a handler may need while
processing one webhook delivery: the verifying ``Webhooks`` dispatcher, the
GitHub App credentials used to act on the installation that sent the
event, and the store holding plugin-chain state. A new instance is created
per request; nothing here is shared between deliveries except the injected
store.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx

from src.kernel.github.auth import GitHubAppAuth
from src.kernel.github.client import DEFAULT_BASE_URL, GitHubClient
from src.kernel.storage import KeyValueStore, PluginChainStateStore
from src.kernel.webhooks import WebhookEvent, Webhooks


logger = logging.getLogger(__name__)


class GitHubContext:
    """A verified event together with the handler that received it.

    Attributes:
        key: Event name qualified with its action (``issues.opened``).
        id: The delivery id.
        name: The event name.
        payload: The parsed payload.
        event_handler: The ``GitHubEventHandler`` dispatching the event.
    """

    def __init__(self, event_handler: "GitHubEventHandler", event: WebhookEvent) -> None:
        self.event_handler = event_handler
        self.event = event
        self.key = event.key
        self.id = event.id
        self.name = event.name
        self.payload = event.payload
        self._token: Optional[str] = None
        self._client: Optional[GitHubClient] = None

    @property
    def installation_id(self) -> Optional[int]:
        installation = self.payload.get("installation")
        if isinstance(installation, dict) and isinstance(installation.get("id"), int):
            return installation["id"]
        return None

    @property
    def repository(self) -> Optional[Dict[str, Any]]:
        repository = self.payload.get("repository")
        return repository if isinstance(repository, dict) else None

    async def get_token(self) -> str:
        """Return an installation token for the event's installation.

        Raises:
            ValueError: If the payload has no installation.
        """
        if self._token is None:
            if self.installation_id is None:
                raise ValueError(f"Event {self.key} has no installation id")
            self._token = await self.event_handler.get_token(self.installation_id)
        return self._token

    async def get_client(self) -> GitHubClient:
        """Return a client authenticated as the event's installation."""
        if self._client is None:
            self._client = self.event_handler.create_client(await self.get_token())
        return self._client


ContextCallback = Callable[[GitHubContext], Awaitable[None]]


class GitHubEventHandler:
    """Per-delivery wiring of secret, app credentials and state store.

    Attributes:
        webhooks: The verifying dispatcher handlers are registered on.
        app_id: The GitHub App id.
        private_key: The GitHub App private key.
        plugin_chain_state: Typed access to plugin-chain state.
        github_base_url: Base URL for GitHub API.
    """

    def __init__(
        self,
        webhook_secret: str,
        app_id: Union[str, int],
        private_key: str,
        plugin_chain_state: KeyValueStore,
        github_base_url: str = DEFAULT_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.webhooks = Webhooks(secret=webhook_secret)
        self.app_id = app_id
        self.private_key = private_key
        self.plugin_chain_state = PluginChainStateStore(plugin_chain_state)
        self.github_base_url = github_base_url
        self.transport = transport
        self._auth = GitHubAppAuth(
            app_id=app_id,
            private_key=private_key,
            base_url=github_base_url,
            transport=transport,
        )
        self._clients: List[GitHubClient] = []

    def transform_event(self, event: WebhookEvent) -> GitHubContext:
        return GitHubContext(self, event)

    def on(self, event_name: Union[str, List[str]], callback: ContextCallback) -> None:
        """Register a callback receiving a ``GitHubContext``."""
        self.webhooks.on(event_name, self._wrap(callback))

    def on_any(self, callback: ContextCallback) -> None:
        self.webhooks.on_any(self._wrap(callback))

    def on_error(self, callback: Callable[[ExceptionGroup], Any]) -> None:
        self.webhooks.on_error(callback)

    def _wrap(self, callback: ContextCallback) -> Callable[[WebhookEvent], Awaitable[None]]:
        async def handler(event: WebhookEvent) -> None:
            await callback(self.transform_event(event))

        handler.__name__ = getattr(callback, "__name__", "handler")
        return handler

    async def get_token(self, installation_id: int) -> str:
        """Create an installation access token for the app."""
        return await self._auth.get_installation_token(installation_id)

    def create_client(self, token: str) -> GitHubClient:
        """Create a client for a token. Clients are closed by ``close()``."""
        client = GitHubClient(
            token=token,
            base_url=self.github_base_url,
            transport=self.transport,
        )
        self._clients.append(client)
        return client

    async def close(self) -> None:
        """Close every client created for this delivery."""
        for client in self._clients:
            await client.close()
        self._clients.clear()
