"""Tests for open_e2ee.core.config module."""

from __future__ import annotations

import pytest

from open_e2ee.core.config import CoreSettings, clear_config_cache, get_config


class TestCoreSettings:
    """Tests for CoreSettings defaults and environment loading."""

    def test_defaults(self, clean_env):
        settings = CoreSettings(_env_file=None)
        assert settings.provider == "curve25519"
        assert settings.symmetric_algorithm == "aes256"
        assert settings.key_scrypt_n == 2**15
        assert settings.message_scrypt_n == 2**14
        assert settings.scrypt_r == 8
        assert settings.scrypt_p == 1
        assert settings.log_level == "INFO"
        assert settings.log_file is None

    def test_env_overrides(self, clean_env, monkeypatch):
        monkeypatch.setenv("OPEN_E2EE_SYMMETRIC_ALGORITHM", "chacha20")
        monkeypatch.setenv("OPEN_E2EE_KEY_SCRYPT_N", "1024")
        monkeypatch.setenv("OPEN_E2EE_LOG_LEVEL", "DEBUG")

        settings = CoreSettings(_env_file=None)
        assert settings.symmetric_algorithm == "chacha20"
        assert settings.key_scrypt_n == 1024
        assert settings.log_level == "DEBUG"

    def test_invalid_int_rejected(self, clean_env, monkeypatch):
        from pydantic import ValidationError

        monkeypatch.setenv("OPEN_E2EE_SCRYPT_R", "lots")
        with pytest.raises(ValidationError):
            CoreSettings(_env_file=None)


class TestGetConfig:
    """Tests for the cached global config."""

    def test_singleton(self, clean_env):
        assert get_config() is get_config()

    def test_clear_cache_reloads(self, clean_env, monkeypatch):
        first = get_config()
        monkeypatch.setenv("OPEN_E2EE_PROVIDER", "other")
        assert get_config().provider == first.provider

        clear_config_cache()
        assert get_config().provider == "other"
