"""Crypto Provider abstraction layer.

The envelope and sharing logic never touches cryptographic primitives
directly. It sequences calls to a ``CryptoProvider``, which owns key
generation, key parsing and unlocking, signed asymmetric encryption and
password-based symmetric encryption, plus the armored text encoding of keys
and messages.

Keys cross the provider boundary as opaque handles. The core only relies on
the small capability surface of ``PublicKeyHandle`` and ``PrivateKeyHandle``;
a provider is free to hold whatever native key objects it wants behind them.

Implementations:
- Curve25519Provider: Ed25519 signatures, X25519 key agreement, AEAD ciphers
  and scrypt, built on the ``cryptography`` library

Example:
    >>> provider = create_provider("curve25519")
    >>> pair = await provider.generate_key_pair("hunter2", "alice")
    >>> private_key = await provider.decrypt_private_key(pair.private_key, "hunter2")
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..core.exceptions import ConfigException

if TYPE_CHECKING:
    from ..core.config import CoreSettings


# Symmetric algorithms and their key sizes in bytes
SYMMETRIC_KEY_SIZES: dict[str, int] = {
    "aes128": 16,
    "aes192": 24,
    "aes256": 32,
    "chacha20": 32,
}

DEFAULT_SYMMETRIC_ALGORITHM = "aes256"

# Upper bound on scrypt cost accepted from configuration or ciphertext headers
MAX_SCRYPT_N = 2**20
MAX_SCRYPT_MEMORY = 2**30


# =============================================================================
# Key handles
# =============================================================================


@runtime_checkable
class PublicKeyHandle(Protocol):
    """Opaque public key as seen by the core."""

    @property
    def fingerprint(self) -> str:
        """Stable hex identifier of the key."""
        ...

    @property
    def user_id(self) -> str:
        """User id bound to the key at generation time."""
        ...

    @property
    def armored(self) -> str:
        """Exportable armored text of the key."""
        ...


@runtime_checkable
class PrivateKeyHandle(Protocol):
    """Opaque private key as seen by the core.

    A handle returned by ``read_private_key`` is still passphrase-locked;
    ``decrypt_private_key`` returns an unlocked one.
    """

    @property
    def fingerprint(self) -> str: ...

    @property
    def is_decrypted(self) -> bool: ...

    @property
    def public_key(self) -> PublicKeyHandle: ...


@dataclass(frozen=True)
class ArmoredKeyPair:
    """A freshly generated key pair in exportable form."""

    private_key: str  # passphrase-encrypted
    public_key: str


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class ProviderConfig:
    """Provider configuration, fixed when the provider is constructed.

    Attributes:
        symmetric_algorithm: Cipher used for bulk data and advertised as the
            preferred algorithm of generated public keys.
        key_scrypt_n: scrypt cost protecting private keys at rest.
        message_scrypt_n: scrypt cost for password-based messages.
        scrypt_r: scrypt block size.
        scrypt_p: scrypt parallelization factor.
    """

    symmetric_algorithm: str = DEFAULT_SYMMETRIC_ALGORITHM
    key_scrypt_n: int = 2**15
    message_scrypt_n: int = 2**14
    scrypt_r: int = 8
    scrypt_p: int = 1

    def __post_init__(self) -> None:
        if self.symmetric_algorithm not in SYMMETRIC_KEY_SIZES:
            raise ConfigException(
                f"Unsupported symmetric algorithm: {self.symmetric_algorithm}",
                field="symmetric_algorithm",
                value=self.symmetric_algorithm,
            )
        for name in ("key_scrypt_n", "message_scrypt_n"):
            value = getattr(self, name)
            if not is_valid_scrypt_n(value):
                raise ConfigException(
                    f"{name} must be a power of two between 2 and {MAX_SCRYPT_N}",
                    field=name,
                    value=value,
                )
        if not 1 <= self.scrypt_r <= 32:
            raise ConfigException("scrypt_r must be between 1 and 32", field="scrypt_r", value=self.scrypt_r)
        if not 1 <= self.scrypt_p <= 16:
            raise ConfigException("scrypt_p must be between 1 and 16", field="scrypt_p", value=self.scrypt_p)
        if 128 * max(self.key_scrypt_n, self.message_scrypt_n) * self.scrypt_r > MAX_SCRYPT_MEMORY:
            raise ConfigException("scrypt parameters exceed the memory limit", field="scrypt_r")

    @property
    def symmetric_key_size(self) -> int:
        return SYMMETRIC_KEY_SIZES[self.symmetric_algorithm]

    @classmethod
    def from_settings(cls, settings: CoreSettings | None = None) -> ProviderConfig:
        """Build a provider config from environment-backed settings."""
        if settings is None:
            from ..core.config import get_config

            settings = get_config()
        return cls(
            symmetric_algorithm=settings.symmetric_algorithm.lower(),
            key_scrypt_n=settings.key_scrypt_n,
            message_scrypt_n=settings.message_scrypt_n,
            scrypt_r=settings.scrypt_r,
            scrypt_p=settings.scrypt_p,
        )


def is_valid_scrypt_n(n: object) -> bool:
    """Whether ``n`` is an acceptable scrypt cost factor."""
    if not isinstance(n, int) or isinstance(n, bool) or n < 2 or n > MAX_SCRYPT_N:
        return False
    return math.log2(n).is_integer()


# =============================================================================
# Abstract interface
# =============================================================================


class CryptoProvider(ABC):
    """Abstract interface for the cryptographic operations the core consumes.

    Every method is a coroutine. Failures are raised as ``E2EEError``
    subclasses tagged ``provider.<method>``.
    """

    def __init__(self, config: ProviderConfig | None = None):
        self.config = config or ProviderConfig()

    @abstractmethod
    async def generate_key_pair(self, passphrase: str, user_id: str) -> ArmoredKeyPair:
        """Generate a key pair whose private half is protected by ``passphrase``.

        Raises:
            KeyGenerationError
        """

    @abstractmethod
    async def generate_session_key(self, public_key: PublicKeyHandle) -> str:
        """Derive a fresh session key suited to ``public_key``, hex encoded.

        Raises:
            DerivationError
        """

    @abstractmethod
    async def read_public_key(self, armored: str) -> PublicKeyHandle:
        """Parse an armored public key.

        Raises:
            KeyParseError
        """

    @abstractmethod
    async def read_private_key(self, armored: str) -> PrivateKeyHandle:
        """Parse an armored private key without unlocking it.

        Raises:
            KeyParseError
        """

    @abstractmethod
    async def decrypt_private_key(self, armored: str, passphrase: str) -> PrivateKeyHandle:
        """Parse and unlock an armored private key.

        Raises:
            KeyParseError, AuthenticationError
        """

    @abstractmethod
    async def encrypt_asymmetric(
        self,
        signing_key: PrivateKeyHandle,
        encryption_keys: Sequence[PublicKeyHandle],
        data: str,
    ) -> str:
        """Sign ``data`` with ``signing_key`` and encrypt it for every recipient.

        Raises:
            EncryptionError
        """

    @abstractmethod
    async def decrypt_asymmetric(
        self,
        decryption_key: PrivateKeyHandle,
        verification_keys: Sequence[PublicKeyHandle],
        data: str,
        expect_signed: bool = True,
    ) -> str:
        """Decrypt ``data`` and verify its signer against ``verification_keys``.

        Raises:
            DecryptionError, SignatureVerificationError
        """

    @abstractmethod
    async def encrypt(self, password: str, data: str) -> str:
        """Password-based symmetric encryption.

        Raises:
            EncryptionError
        """

    @abstractmethod
    async def decrypt(self, password: str, data: str) -> str:
        """Password-based symmetric decryption.

        Raises:
            DecryptionError
        """


# =============================================================================
# Factory
# =============================================================================


def create_provider(
    name: str | None = None,
    config: ProviderConfig | None = None,
) -> CryptoProvider:
    """Create a crypto provider by name.

    Args:
        name: Provider backend name; defaults to OPEN_E2EE_PROVIDER.
        config: Provider configuration; defaults to one built from settings.

    Raises:
        ConfigException: Unknown provider name.
    """
    if name is None or config is None:
        from ..core.config import get_config

        settings = get_config()
        name = name or settings.provider
        config = config or ProviderConfig.from_settings(settings)

    if name == "curve25519":
        from .curve25519 import Curve25519Provider

        return Curve25519Provider(config)

    raise ConfigException(f"Unknown crypto provider: {name}", field="provider", value=name)
