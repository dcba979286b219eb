# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Encryption orchestrator: builds and opens hybrid-encryption envelopes.

Encrypting a message:
1. derive a fresh session key bound to the identity's own public key
2. sign and encrypt the session key for the identity itself (the key wrap)
3. encrypt the data with the session key as password
4. pack both ciphertexts into an envelope

Steps 2 and 3 are independent and run concurrently. The data blob produced
in step 3 is the only place bulk data is ever encrypted; sharing re-wraps
the session key and reuses the blob untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .core.exceptions import E2EEError, gather_steps, tagged
from .core.logging import log_operation
from .crypto.provider import CryptoProvider, PublicKeyHandle
from .envelope import read_envelope, write_envelope
from .identity import Identity
from .models import EncryptedMessageItem, MessageItem

logger = logging.getLogger(__name__)


def unpack(envelope: str, operation: str) -> tuple[str, str]:
    """Read an envelope, tagging format errors with ``operation``."""
    try:
        return read_envelope(envelope)
    except E2EEError as exc:
        raise exc.retag(operation) from exc


class EncryptionOrchestrator:
    """Encrypts and decrypts envelopes on behalf of one identity."""

    def __init__(self, identity: Identity):
        self.identity = identity

    @property
    def provider(self) -> CryptoProvider:
        return self.identity.provider

    async def encrypt(self, data: str) -> EncryptedMessageItem:
        """Encrypt ``data`` into a new envelope readable by this identity.

        Returns:
            The raw session key (for sharing flows) and the packed envelope.
        """
        private_key, public_key = self.identity.require_ready("encrypt")
        with log_operation("encrypt", fingerprint=public_key.fingerprint):
            key = await tagged("encrypt.session_key", self.provider.generate_session_key(public_key))
            encrypted_key, encrypted_data = await gather_steps(
                tagged(
                    "encrypt.wrap_key",
                    self.provider.encrypt_asymmetric(private_key, [public_key], key),
                ),
                tagged("encrypt.encrypt_data", self.provider.encrypt(key, data)),
            )
            return EncryptedMessageItem(key=key, encrypted_message=write_envelope(encrypted_key, encrypted_data))

    async def decrypt(
        self,
        encrypted_message: str,
        external_verification_keys: Sequence[str] = (),
    ) -> MessageItem:
        """Open an envelope addressed to this identity.

        The key wrap must be signed by this identity or by one of
        ``external_verification_keys`` (armored public keys).

        Raises:
            EnvelopeFormatError: The envelope cannot be unpacked.
            SignatureVerificationError: Signer not in the verification set,
                or the key wrap is unsigned.
            DecryptionError: Either ciphertext is malformed or not ours.
        """
        return await self.open(encrypted_message, external_verification_keys, operation="decrypt")

    async def open(
        self,
        encrypted_message: str,
        external_verification_keys: Sequence[str],
        operation: str,
        trust_own_key: bool = True,
    ) -> MessageItem:
        """Decrypt an envelope, tagging failures with ``operation``.

        With ``trust_own_key`` False the verification set is exactly
        ``external_verification_keys``.
        """
        private_key, public_key = self.identity.require_ready(operation)
        if isinstance(external_verification_keys, str):
            external_verification_keys = [external_verification_keys]
        with log_operation(
            operation,
            fingerprint=public_key.fingerprint,
            verification_key_count=len(external_verification_keys),
        ):
            encrypted_key, encrypted_data = unpack(encrypted_message, f"{operation}.read_envelope")
            external_keys = await self.read_public_keys(
                external_verification_keys, f"{operation}.read_verification_keys"
            )
            verification_keys = [public_key, *external_keys] if trust_own_key else external_keys
            key = await tagged(
                f"{operation}.decrypt_key",
                self.provider.decrypt_asymmetric(
                    private_key,
                    verification_keys,
                    encrypted_key,
                    expect_signed=True,
                ),
            )
            data = await tagged(f"{operation}.decrypt_data", self.provider.decrypt(key, encrypted_data))
            return MessageItem(key=key, data=data)

    async def read_public_keys(self, armored_keys: Sequence[str], operation: str) -> list[PublicKeyHandle]:
        """Parse armored public keys concurrently."""
        return list(
            await gather_steps(
                *(tagged(operation, self.provider.read_public_key(armored)) for armored in armored_keys)
            )
        )
