# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Identity key lifecycle: create, import and export an identity's key pair.

An ``Identity`` starts uninitialized and becomes ready after ``build``
(fresh key pair) or ``load`` (existing key pair). Once ready its key handles
are never mutated, so concurrent operations may share one identity freely.
"""

from __future__ import annotations

import logging

from .core.exceptions import IdentityStateError, KeyParseError, gather_steps, tagged
from .core.logging import log_operation
from .crypto.provider import CryptoProvider, PrivateKeyHandle, PublicKeyHandle, create_provider
from .models import MasterKeys

logger = logging.getLogger(__name__)


class Identity:
    """Key material of one user: a passphrase-protected key pair.

    Args:
        user_id: User id in the host platform, bound into generated keys.
        passphrase: Master password protecting the private key at rest.
            Used only while unlocking the key in ``build`` / ``load``.
        provider: Crypto provider; defaults to one built from settings.
    """

    def __init__(self, user_id: str, passphrase: str, provider: CryptoProvider | None = None):
        self.user_id = user_id
        self._passphrase = passphrase
        self.provider = provider or create_provider()

        self._private_key: PrivateKeyHandle | None = None
        self._public_key: PublicKeyHandle | None = None
        self._private_key_armored = ""
        self._public_key_armored = ""

    def __repr__(self) -> str:
        state = f"fingerprint={self._public_key.fingerprint[:16]}" if self._public_key else "uninitialized"
        return f"Identity(user_id={self.user_id!r}, {state})"

    @property
    def is_ready(self) -> bool:
        return self._private_key is not None and self._public_key is not None

    def require_ready(self, operation: str) -> tuple[PrivateKeyHandle, PublicKeyHandle]:
        """Return (private key, public key) handles or fail with a state error."""
        if self._private_key is None or self._public_key is None:
            raise IdentityStateError(
                "Identity has no keys; call build() or load() first",
                operation=operation,
                details={"user_id": self.user_id},
            )
        return self._private_key, self._public_key

    @property
    def public_key_armored(self) -> str:
        """The exportable public key, as shared with other identities."""
        self.require_ready("public_key")
        return self._public_key_armored

    @property
    def fingerprint(self) -> str:
        _, public_key = self.require_ready("fingerprint")
        return public_key.fingerprint

    async def build(self) -> Identity:
        """Generate a new key pair for this identity.

        Raises:
            KeyGenerationError: The provider could not create the key pair.
            AuthenticationError: The new private key did not unlock with the
                passphrase it was just protected with (unexpected).
        """
        with log_operation("build", user_id=self.user_id):
            pair = await tagged(
                "build.generate_key_pair",
                self.provider.generate_key_pair(self._passphrase, self.user_id),
            )
            private_key, public_key = await gather_steps(
                tagged(
                    "build.decrypt_private_key",
                    self.provider.decrypt_private_key(pair.private_key, self._passphrase),
                ),
                tagged("build.read_public_key", self.provider.read_public_key(pair.public_key)),
            )
            self._set_keys(private_key, public_key, pair.private_key, pair.public_key)
        logger.info("Built identity %s for %s", public_key.fingerprint[:16], self.user_id)
        return self

    async def load(self, encrypted_private_key: str, public_key: str) -> Identity:
        """Import an existing key pair, unlocking it with this identity's passphrase.

        Args:
            encrypted_private_key: Armored, passphrase-encrypted private key.
            public_key: Armored public key.

        Raises:
            AuthenticationError: The passphrase does not unlock the private key.
            KeyParseError: Either armored key is malformed, or the two keys do
                not belong to the same key pair.
        """
        with log_operation("load", user_id=self.user_id):
            private_handle, public_handle = await gather_steps(
                tagged(
                    "load.decrypt_private_key",
                    self.provider.decrypt_private_key(encrypted_private_key, self._passphrase),
                ),
                tagged("load.read_public_key", self.provider.read_public_key(public_key)),
            )
            if private_handle.fingerprint != public_handle.fingerprint:
                raise KeyParseError(
                    "Private key does not match public key",
                    operation="load",
                    details={
                        "private_fingerprint": private_handle.fingerprint,
                        "public_fingerprint": public_handle.fingerprint,
                    },
                )
            self._set_keys(private_handle, public_handle, encrypted_private_key, public_key)
        logger.info("Loaded identity %s for %s", public_handle.fingerprint[:16], self.user_id)
        return self

    def export_master_keys(self) -> MasterKeys:
        """Return the exportable key pair exactly as held, for persistence by the caller.

        The private key stays passphrase-encrypted.
        """
        self.require_ready("export_master_keys")
        return MasterKeys(private_key=self._private_key_armored, public_key=self._public_key_armored)

    def _set_keys(
        self,
        private_key: PrivateKeyHandle,
        public_key: PublicKeyHandle,
        private_key_armored: str,
        public_key_armored: str,
    ) -> None:
        self._private_key = private_key
        self._public_key = public_key
        self._private_key_armored = private_key_armored
        self._public_key_armored = public_key_armored
