"""Pytest configuration for all tests."""

from typing import Any, Dict

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from src.kernel.storage import InMemoryKeyValueStore


WEBHOOK_SECRET = "test-webhook-secret"
APP_ID = "123456"


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_private_key: rsa.RSAPrivateKey) -> str:
    return rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def env(private_key_pem: str, store: InMemoryKeyValueStore) -> Dict[str, Any]:
    return {
        "WEBHOOK_SECRET": WEBHOOK_SECRET,
        "APP_ID": APP_ID,
        "APP_PRIVATE_KEY": private_key_pem,
        "PLUGIN_CHAIN_STATE": store,
    }
