# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Sharing protocol: hand encrypted data to other identities.

Sharing never re-encrypts the data blob. It recovers the session key from
the sender's own key wrap and wraps it again for the new recipient, then
repacks the new wrap with the original, byte-identical data blob.

Re-wrap policy: ``share`` only re-wraps envelopes signed by this identity
itself. To pass on something received from another identity, ``receive``
it and ``share_new`` the plaintext.
"""

from __future__ import annotations

import logging

from .core.exceptions import gather_steps, tagged
from .core.logging import log_operation
from .crypto.provider import CryptoProvider
from .envelope import write_envelope
from .models import ReceiveItemOut, ShareItemOut, ShareNewItemOut
from .orchestrator import EncryptionOrchestrator, unpack

logger = logging.getLogger(__name__)


class SharingProtocol:
    """Pairwise sharing on behalf of one identity.

    Stateless given a ready identity; each call is independent.
    """

    def __init__(self, orchestrator: EncryptionOrchestrator):
        self.orchestrator = orchestrator
        self.identity = orchestrator.identity

    @property
    def provider(self) -> CryptoProvider:
        return self.identity.provider

    async def share(self, receiver_public_key: str, encrypted_message: str) -> ShareItemOut:
        """Re-wrap an existing envelope so ``receiver_public_key`` can open it.

        The new key wrap is addressed to both this identity and the receiver,
        and signed by this identity.

        Args:
            receiver_public_key: Receiver's armored public key.
            encrypted_message: Envelope previously produced by this identity.

        Returns:
            This identity's public key (for the receiver to verify the
            signature) and the receiver's envelope.
        """
        private_key, public_key = self.identity.require_ready("share")
        with log_operation("share", fingerprint=public_key.fingerprint):
            encrypted_key, encrypted_data = unpack(encrypted_message, "share.read_envelope")
            receiver_key, session_key = await gather_steps(
                tagged("share.read_receiver_key", self.provider.read_public_key(receiver_public_key)),
                tagged(
                    "share.decrypt_key",
                    self.provider.decrypt_asymmetric(private_key, [public_key], encrypted_key, expect_signed=True),
                ),
            )
            receiver_encrypted_key = await tagged(
                "share.rewrap_key",
                self.provider.encrypt_asymmetric(private_key, [public_key, receiver_key], session_key),
            )
            logger.debug("Re-wrapped envelope key for %s", receiver_key.fingerprint[:16])
            return ShareItemOut(
                sender_public_key=self.identity.public_key_armored,
                receiver_encrypted_message=write_envelope(receiver_encrypted_key, encrypted_data),
            )

    async def share_new(self, receiver_public_key: str, data: str) -> ShareNewItemOut:
        """Encrypt ``data`` for this identity and share it with the receiver.

        The receiver's key wrap is addressed to the receiver only. Both
        returned envelopes reference the same encrypted data blob.
        """
        private_key, public_key = self.identity.require_ready("share_new")
        with log_operation("share_new", fingerprint=public_key.fingerprint):
            # Receiver key is parsed before any encryption work starts
            receiver_key = await tagged(
                "share_new.read_receiver_key", self.provider.read_public_key(receiver_public_key)
            )
            own = await tagged("share_new.encrypt", self.orchestrator.encrypt(data))
            receiver_encrypted_key = await tagged(
                "share_new.rewrap_key",
                self.provider.encrypt_asymmetric(private_key, [receiver_key], own.key),
            )
            _, encrypted_data = unpack(own.encrypted_message, "share_new.read_envelope")
            logger.debug("Shared new envelope with %s", receiver_key.fingerprint[:16])
            return ShareNewItemOut(
                sender_public_key=self.identity.public_key_armored,
                sender_encrypted_message=own.encrypted_message,
                receiver_encrypted_message=write_envelope(receiver_encrypted_key, encrypted_data),
            )

    async def receive(self, sender_public_key: str, encrypted_message: str) -> ReceiveItemOut:
        """Open an envelope shared by the holder of ``sender_public_key``.

        Like ``decrypt(encrypted_message, [sender_public_key])``, except
        that the verification set is exactly the claimed sender: a key wrap
        signed by this identity is rejected unless this identity is the
        sender passed in.
        """
        return await self.orchestrator.open(
            encrypted_message, [sender_public_key], operation="receive", trust_own_key=False
        )
