"""Core configuration - centralized config for the open_e2ee package.

All environment-based configuration should flow through this module.

Usage:
    from open_e2ee.core.config import get_config
    config = get_config()

    algorithm = config.symmetric_algorithm
    log_level = config.log_level
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CoreSettings(BaseSettings):
    """Core configuration settings for Open E2EE.

    Settings can be configured via OPEN_E2EE_* environment variables or a
    ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # CRYPTO PROVIDER SETTINGS
    # ==========================================================================

    provider: str = Field(
        default="curve25519",
        description="Crypto provider backend name",
        validation_alias="OPEN_E2EE_PROVIDER",
    )
    symmetric_algorithm: str = Field(
        default="aes256",
        description="Symmetric cipher for bulk data: aes128, aes192, aes256 or chacha20",
        validation_alias="OPEN_E2EE_SYMMETRIC_ALGORITHM",
    )
    key_scrypt_n: int = Field(
        default=2**15,
        description="scrypt cost factor protecting private keys at rest",
        validation_alias="OPEN_E2EE_KEY_SCRYPT_N",
    )
    message_scrypt_n: int = Field(
        default=2**14,
        description="scrypt cost factor for password-based message encryption",
        validation_alias="OPEN_E2EE_MESSAGE_SCRYPT_N",
    )
    scrypt_r: int = Field(
        default=8,
        description="scrypt block size",
        validation_alias="OPEN_E2EE_SCRYPT_R",
    )
    scrypt_p: int = Field(
        default=1,
        description="scrypt parallelization factor",
        validation_alias="OPEN_E2EE_SCRYPT_P",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="OPEN_E2EE_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="OPEN_E2EE_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="OPEN_E2EE_LOG_FILE",
    )


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CoreSettings | None = None


def get_config() -> CoreSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CoreSettings instance.
    """
    global _config
    if _config is None:
        _config = CoreSettings()
    return _config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
