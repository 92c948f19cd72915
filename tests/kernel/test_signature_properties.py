"""Property-based tests for webhook payload signatures.

Uses Hypothesis to check that signing and verification agree for arbitrary
secrets and payloads, and that any other signature is rejected.
"""

import hashlib
import hmac

import pytest
from hypothesis import assume, given, settings, strategies as st

from src.kernel.webhooks import sign, verify


secrets = st.text(min_size=1, max_size=64)
payloads = st.text(min_size=1, max_size=2000)


class TestSignatureProperties:
    """Signing and verification are consistent."""

    @given(secret=secrets, payload=payloads)
    @settings(max_examples=100)
    def test_signature_of_payload_verifies(self, secret: str, payload: str) -> None:
        assert verify(secret, payload, sign(secret, payload))

    @given(secret=secrets, payload=payloads)
    @settings(max_examples=100)
    def test_signature_matches_hmac_sha256(self, secret: str, payload: str) -> None:
        expected = hmac.new(
            secret.encode("utf-8"),
            payload.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()
        assert sign(secret, payload) == f"sha256={expected}"

    @given(secret=secrets, other_secret=secrets, payload=payloads)
    @settings(max_examples=100)
    def test_signature_with_other_secret_is_rejected(
        self, secret: str, other_secret: str, payload: str
    ) -> None:
        assume(secret != other_secret)
        assert not verify(secret, payload, sign(other_secret, payload))

    @given(secret=secrets, payload=payloads, tampered=payloads)
    @settings(max_examples=100)
    def test_tampered_payload_is_rejected(
        self, secret: str, payload: str, tampered: str
    ) -> None:
        assume(payload != tampered)
        assert not verify(secret, tampered, sign(secret, payload))

    @given(secret=secrets, payload=payloads, signature=st.text(min_size=1, max_size=100))
    @settings(max_examples=100)
    def test_arbitrary_signature_is_rejected(
        self, secret: str, payload: str, signature: str
    ) -> None:
        assume(signature != sign(secret, payload))
        assert not verify(secret, payload, signature)


class TestSignatureEdgeCases:
    def test_missing_arguments_raise(self) -> None:
        with pytest.raises(ValueError):
            verify("", "{}", "sha256=abc")
        with pytest.raises(ValueError):
            verify("secret", "", "sha256=abc")
        with pytest.raises(ValueError):
            verify("secret", "{}", "")

    def test_signature_without_prefix_is_rejected(self) -> None:
        signature = sign("secret", "{}")
        assert not verify("secret", "{}", signature[len("sha256="):])

    def test_known_vector(self) -> None:
        # Example from GitHub's webhook documentation
        assert (
            sign("It's a Secret to Everybody", "Hello, World!")
            == "sha256=757107ea0eb2509fc211221cce984b8a37570b6d7586c22c46f4379c8b043e17"
        )
