"""Cryptographic provider layer for Open E2EE.

The core consumes the abstract ``CryptoProvider``; the Curve25519 provider
is the default concrete backend.
"""

from open_e2ee.crypto.provider import (
    SYMMETRIC_KEY_SIZES,
    ArmoredKeyPair,
    CryptoProvider,
    PrivateKeyHandle,
    ProviderConfig,
    PublicKeyHandle,
    create_provider,
)
from open_e2ee.crypto.curve25519 import (
    Curve25519PrivateKey,
    Curve25519Provider,
    Curve25519PublicKey,
)

__all__ = [
    # Contract
    "CryptoProvider",
    "ProviderConfig",
    "PublicKeyHandle",
    "PrivateKeyHandle",
    "ArmoredKeyPair",
    "SYMMETRIC_KEY_SIZES",
    "create_provider",
    # Curve25519 backend
    "Curve25519Provider",
    "Curve25519PublicKey",
    "Curve25519PrivateKey",
]
