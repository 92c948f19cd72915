"""Unit tests for the GitHub REST client and GitHub App authentication.

Requests are answered by an ``httpx.MockTransport`` so no network access is
needed.
"""

import asyncio
import base64
import json
from typing import Callable, List

import httpx
import jwt
import pytest

from src.kernel.github.auth import GitHubAppAuth, create_app_jwt
from src.kernel.github.client import GitHubAPIError, GitHubClient


def run_async(coro):
    return asyncio.run(coro)


def _client(
    handler: Callable[[httpx.Request], httpx.Response], **kwargs
) -> GitHubClient:
    return GitHubClient(
        token="ghs_test",
        base_url="https://github.test/api/v3/",
        base_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestGitHubClient:
    def test_default_headers(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"default_branch": "main"})

        branch = run_async(_client(handler).get_default_branch("acme", "widgets"))

        assert branch == "main"
        assert str(seen[0].url) == "https://github.test/api/v3/repos/acme/widgets"
        assert seen[0].headers["Authorization"] == "Bearer ghs_test"
        assert seen[0].headers["Accept"] == "application/vnd.github+json"

    def test_get_file_contents_decodes_base64(self) -> None:
        content = base64.b64encode("plugins: {}\n".encode()).decode()

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/contents/.github/kernel-config.yml")
            return httpx.Response(200, json={"content": content, "encoding": "base64"})

        text = run_async(
            _client(handler).get_file_contents("acme", "widgets", ".github/kernel-config.yml")
        )

        assert text == "plugins: {}\n"

    def test_get_file_contents_missing_file(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Not Found"})

        assert run_async(_client(handler).get_file_contents("acme", "widgets", "x")) is None

    def test_retries_transient_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(502)
            return httpx.Response(201, json={"id": 1})

        result = run_async(_client(handler).create_comment("acme", "widgets", 7, "hi"))

        assert result == {"id": 1}
        assert len(calls) == 3
        assert json.loads(calls[-1].content) == {"body": "hi"}

    def test_retries_exhausted(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(_client(handler, max_retries=2).get_default_branch("acme", "widgets"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.status == 503
        assert len(calls) == 3

    def test_transport_errors_retried(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GitHubAPIError, match="after 1 retries"):
            run_async(_client(handler, max_retries=1).get_default_branch("acme", "widgets"))

    def test_client_errors_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(422, json={"message": "Unexpected inputs"})

        with pytest.raises(GitHubAPIError) as exc_info:
            run_async(
                _client(handler).create_workflow_dispatch(
                    "acme", "plugin", "compute.yml", "main", {"stateId": "1"}
                )
            )

        assert exc_info.value.status_code == 422
        assert "Unexpected inputs" in exc_info.value.response_body
        assert len(calls) == 1

    def test_workflow_dispatch_body(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        run_async(
            _client(handler).create_workflow_dispatch(
                "acme", "plugin", "compute.yml", "main", {"stateId": "1"}
            )
        )

        assert seen[0].url.path.endswith(
            "/repos/acme/plugin/actions/workflows/compute.yml/dispatches"
        )
        assert json.loads(seen[0].content) == {"ref": "main", "inputs": {"stateId": "1"}}


class TestAppAuth:
    def test_app_jwt_claims(self, rsa_private_key, private_key_pem: str) -> None:
        token = create_app_jwt(123456, private_key_pem, now=1_700_000_000)

        claims = jwt.decode(
            token,
            rsa_private_key.public_key(),
            algorithms=["RS256"],
            options={"verify_exp": False, "verify_iat": False},
        )

        assert claims == {"iat": 1_699_999_940, "exp": 1_700_000_540, "iss": "123456"}

    def test_escaped_newlines_in_key(self, private_key_pem: str) -> None:
        escaped = private_key_pem.replace("\n", "\\n")

        assert create_app_jwt("1", escaped, now=0) == create_app_jwt("1", private_key_pem, now=0)

    def test_installation_token_exchange(self, rsa_private_key, private_key_pem: str) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"token": "ghs_installation"})

        auth = GitHubAppAuth(
            app_id=123456,
            private_key=private_key_pem,
            transport=httpx.MockTransport(handler),
        )

        assert run_async(auth.get_installation_token(42)) == "ghs_installation"
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/app/installations/42/access_tokens"

        bearer = seen[0].headers["Authorization"].removeprefix("Bearer ")
        claims = jwt.decode(bearer, rsa_private_key.public_key(), algorithms=["RS256"])
        assert claims["iss"] == "123456"

    def test_missing_token_in_response(self, private_key_pem: str) -> None:
        auth = GitHubAppAuth(
            app_id=1,
            private_key=private_key_pem,
            transport=httpx.MockTransport(lambda request: httpx.Response(201, json={})),
        )

        with pytest.raises(GitHubAPIError, match="no installation token"):
            run_async(auth.get_installation_token(42))
