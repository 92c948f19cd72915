"""GitHub App authentication.

A GitHub App authenticates as itself with a short-lived RS256 JWT signed by
the app's private key, then exchanges that JWT for an installation access
token scoped to the installation that sent the webhook.
"""

import logging
import time
from typing import Optional, Union

import httpx
import jwt

from src.kernel.github.client import DEFAULT_BASE_URL, GitHubClient


logger = logging.getLogger(__name__)

# GitHub rejects app JWTs valid for more than 10 minutes
JWT_EXPIRATION_SECONDS = 600
# Backdated to tolerate clock drift between us and GitHub
JWT_CLOCK_DRIFT_SECONDS = 60


def create_app_jwt(
    app_id: Union[str, int],
    private_key: str,
    now: Optional[int] = None,
) -> str:
    """Create a JWT identifying the GitHub App.

    Args:
        app_id: The GitHub App id (used as issuer).
        private_key: The app's PEM-encoded RSA private key.
        now: Current Unix time, for tests.

    Returns:
        The encoded JWT.
    """
    issued_at = int(time.time()) if now is None else now
    payload = {
        "iat": issued_at - JWT_CLOCK_DRIFT_SECONDS,
        "exp": issued_at - JWT_CLOCK_DRIFT_SECONDS + JWT_EXPIRATION_SECONDS,
        "iss": str(app_id),
    }
    return jwt.encode(payload, _normalize_private_key(private_key), algorithm="RS256")


def _normalize_private_key(private_key: str) -> str:
    # Keys passed through environment variables often carry literal "\n"
    if "\\n" in private_key:
        return private_key.replace("\\n", "\n")
    return private_key


class GitHubAppAuth:
    """Issues installation tokens for a GitHub App.

    Attributes:
        app_id: The GitHub App id.
        private_key: The app's PEM private key.
        base_url: Base URL for GitHub API.
    """

    def __init__(
        self,
        app_id: Union[str, int],
        private_key: str,
        base_url: str = DEFAULT_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.app_id = app_id
        self.private_key = private_key
        self.base_url = base_url
        self._transport = transport

    async def get_installation_token(self, installation_id: int) -> str:
        """Create an access token for one installation of the app."""
        app_jwt = create_app_jwt(self.app_id, self.private_key)
        async with GitHubClient(
            token=app_jwt,
            base_url=self.base_url,
            transport=self._transport,
        ) as client:
            return await client.create_installation_token(installation_id)
