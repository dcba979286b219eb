"""Value types returned by Open E2EE operations."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class MessageItem:
    """An opened envelope.

    Attributes:
        key: Recovered session key (hex).
        data: Recovered plaintext.
    """

    key: str
    data: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __repr__(self) -> str:
        return f"MessageItem(data_length={len(self.data)})"


# Receiving is a decrypt constrained to one sender; the result is the same shape.
ReceiveItemOut = MessageItem


@dataclass(frozen=True)
class EncryptedMessageItem:
    """A freshly built envelope plus the session key it wraps.

    The key is returned so sharing flows can re-wrap it without opening the
    envelope again. It must not be persisted on its own.
    """

    key: str
    encrypted_message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __repr__(self) -> str:
        return f"EncryptedMessageItem(encrypted_message_length={len(self.encrypted_message)})"


@dataclass(frozen=True)
class ShareItemOut:
    """Result of re-wrapping an existing envelope for a new recipient."""

    sender_public_key: str
    receiver_encrypted_message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ShareNewItemOut:
    """Result of encrypting new data and sharing it in one step.

    Both envelopes carry the same encrypted data blob.
    """

    sender_public_key: str
    sender_encrypted_message: str
    receiver_encrypted_message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MasterKeys:
    """Exportable key material of an identity.

    ``private_key`` stays passphrase-encrypted.
    """

    private_key: str
    public_key: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
