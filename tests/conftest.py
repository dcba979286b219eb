"""Global test fixtures for the Open E2EE test suite."""

from __future__ import annotations

import os

import pytest

from open_e2ee.client import OpenE2EE
from open_e2ee.core.config import clear_config_cache
from open_e2ee.crypto.curve25519 import Curve25519Provider
from open_e2ee.crypto.provider import ProviderConfig

# ============================================================================
# Provider Fixtures
# ============================================================================

# Minimal scrypt cost so key unlocking and symmetric encryption stay fast.
FAST_SCRYPT = {"key_scrypt_n": 2**4, "message_scrypt_n": 2**4, "scrypt_r": 1, "scrypt_p": 1}


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Provider configuration with cheap scrypt parameters."""
    return ProviderConfig(**FAST_SCRYPT)


@pytest.fixture
def provider(provider_config) -> Curve25519Provider:
    """A Curve25519 provider using cheap scrypt parameters."""
    return Curve25519Provider(provider_config)


@pytest.fixture
def make_client(provider):
    """Factory for unbuilt clients sharing the fast provider."""

    def _make(user_id: str, passphrase: str | None = None) -> OpenE2EE:
        return OpenE2EE(user_id, passphrase or f"{user_id} passphrase", provider=provider)

    return _make


@pytest.fixture
async def alice(make_client) -> OpenE2EE:
    return await make_client("alice").build()


@pytest.fixture
async def bob(make_client) -> OpenE2EE:
    return await make_client("bob").build()


@pytest.fixture
async def carol(make_client) -> OpenE2EE:
    return await make_client("carol").build()


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_config():
    """Drop cached settings so env changes in one test don't leak."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all OPEN_E2EE_ environment variables."""
    for key in list(os.environ.keys()):
        if key.startswith("OPEN_E2EE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fast_env(monkeypatch, clean_env):
    """Environment that makes default-constructed providers fast."""
    monkeypatch.setenv("OPEN_E2EE_KEY_SCRYPT_N", str(FAST_SCRYPT["key_scrypt_n"]))
    monkeypatch.setenv("OPEN_E2EE_MESSAGE_SCRYPT_N", str(FAST_SCRYPT["message_scrypt_n"]))
    monkeypatch.setenv("OPEN_E2EE_SCRYPT_R", str(FAST_SCRYPT["scrypt_r"]))
    monkeypatch.setenv("OPEN_E2EE_SCRYPT_P", str(FAST_SCRYPT["scrypt_p"]))


def flip_char(text: str, index: int | None = None) -> str:
    """Replace one base64 character near ``index`` with a different one."""
    index = len(text) // 2 if index is None else index
    while not text[index].isalnum():
        index += 1
    replacement = "A" if text[index] != "A" else "B"
    return text[:index] + replacement + text[index + 1 :]


@pytest.fixture
def tamper():
    """The flip_char helper, exposed as a fixture."""
    return flip_char
