# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""``OpenE2EE``: one object per identity exposing the whole protocol.

Example::

    alice = await OpenE2EE("alice", "alice passphrase").build()
    bob = await OpenE2EE("bob", "bob passphrase").build()

    item = await alice.encrypt("hello")
    shared = await alice.share(bob.public_key, item.encrypted_message)
    message = await bob.receive(shared.sender_public_key, shared.receiver_encrypted_message)
    assert message.data == "hello"
"""

from __future__ import annotations

from collections.abc import Sequence

from .crypto.provider import CryptoProvider
from .identity import Identity
from .models import (
    EncryptedMessageItem,
    MasterKeys,
    MessageItem,
    ReceiveItemOut,
    ShareItemOut,
    ShareNewItemOut,
)
from .orchestrator import EncryptionOrchestrator
from .sharing import SharingProtocol


class OpenE2EE:
    """End-to-end encryption for one identity.

    Args:
        user_id: User id in your platform.
        passphrase: Master password protecting the private key.
        provider: Crypto provider; defaults to one built from settings.
    """

    def __init__(self, user_id: str, passphrase: str, provider: CryptoProvider | None = None):
        self.identity = Identity(user_id, passphrase, provider)
        self.orchestrator = EncryptionOrchestrator(self.identity)
        self.sharing = SharingProtocol(self.orchestrator)

    def __repr__(self) -> str:
        return f"OpenE2EE({self.identity!r})"

    @property
    def user_id(self) -> str:
        return self.identity.user_id

    @property
    def public_key(self) -> str:
        """Armored public key to hand to other identities."""
        return self.identity.public_key_armored

    async def build(self) -> OpenE2EE:
        """Load a new key pair. Returns self so calls can be chained."""
        await self.identity.build()
        return self

    async def load(self, encrypted_private_key: str, public_key: str) -> OpenE2EE:
        """Load an existing key pair. Returns self so calls can be chained."""
        await self.identity.load(encrypted_private_key, public_key)
        return self

    def export_master_keys(self) -> MasterKeys:
        return self.identity.export_master_keys()

    async def encrypt(self, data: str) -> EncryptedMessageItem:
        return await self.orchestrator.encrypt(data)

    async def decrypt(self, encrypted_message: str, external_verification_keys: Sequence[str] = ()) -> MessageItem:
        return await self.orchestrator.decrypt(encrypted_message, external_verification_keys)

    async def share(self, receiver_public_key: str, encrypted_message: str) -> ShareItemOut:
        return await self.sharing.share(receiver_public_key, encrypted_message)

    async def share_new(self, receiver_public_key: str, data: str) -> ShareNewItemOut:
        return await self.sharing.share_new(receiver_public_key, data)

    async def receive(self, sender_public_key: str, encrypted_message: str) -> ReceiveItemOut:
        return await self.sharing.receive(sender_public_key, encrypted_message)
