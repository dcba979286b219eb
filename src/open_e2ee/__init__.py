# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Open E2EE - end-to-end encrypted message exchange between identities.

Every message is a hybrid-encryption envelope: the data is encrypted once
with a per-message session key, and the session key is wrapped
asymmetrically for each identity allowed to read it. Sharing re-wraps the
session key for a new recipient and never touches the encrypted data.

Architecture:
  Identity (key lifecycle: build / load / export)
    -> EncryptionOrchestrator (encrypt / decrypt envelopes)
    -> SharingProtocol (share / share_new / receive)
  all sequencing calls to a CryptoProvider (open_e2ee.crypto).

Entry point for applications: ``OpenE2EE``. CLI: ``open-e2ee``.
"""

from open_e2ee.client import OpenE2EE
from open_e2ee.core.exceptions import (
    AuthenticationError,
    ConfigException,
    DecryptionError,
    DerivationError,
    E2EEError,
    EncryptionError,
    EnvelopeFormatError,
    IdentityStateError,
    KeyGenerationError,
    KeyParseError,
    SignatureVerificationError,
)
from open_e2ee.envelope import read_envelope, write_envelope
from open_e2ee.identity import Identity
from open_e2ee.models import (
    EncryptedMessageItem,
    MasterKeys,
    MessageItem,
    ReceiveItemOut,
    ShareItemOut,
    ShareNewItemOut,
)
from open_e2ee.orchestrator import EncryptionOrchestrator
from open_e2ee.sharing import SharingProtocol

__version__ = "0.1.0"

__all__ = [
    "OpenE2EE",
    "Identity",
    "EncryptionOrchestrator",
    "SharingProtocol",
    # Envelope codec
    "read_envelope",
    "write_envelope",
    # Models
    "MessageItem",
    "EncryptedMessageItem",
    "ShareItemOut",
    "ShareNewItemOut",
    "ReceiveItemOut",
    "MasterKeys",
    # Errors
    "E2EEError",
    "AuthenticationError",
    "KeyParseError",
    "KeyGenerationError",
    "DerivationError",
    "EncryptionError",
    "DecryptionError",
    "SignatureVerificationError",
    "EnvelopeFormatError",
    "IdentityStateError",
    "ConfigException",
]
