"""GitHub App integration: authentication, REST client and event handling.

This package provides:
- GitHub App JWT creation and installation token exchange
- An async REST client with retry logic
- The per-delivery ``GitHubEventHandler`` and the handlers bound to it
"""

from src.kernel.github.client import GitHubAPIError, GitHubClient

__all__ = [
    "GitHubAPIError",
    "GitHubClient",
]
