# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Exception hierarchy for Open E2EE.

Every failure surfaced by the library is an ``E2EEError`` tagged with the
name of the operation that produced it, so callers can tell a failure in
``share``'s key unwrap from one in its re-wrap step.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Awaitable
from typing import Any, TypeVar

T = TypeVar("T")


class E2EEError(Exception):
    """Base exception for all Open E2EE errors.

    Attributes:
        message: Human-readable description.
        operation: Dotted name of the operation that failed
            (``provider.decrypt_asymmetric``, ``share.rewrap_key``...).
        details: Extra structured context, safe to log.
    """

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.operation = operation
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.operation:
            return f"[{self.operation}] {self.message}"
        return self.message

    def retag(self, operation: str) -> E2EEError:
        """Return a copy of this error re-tagged for an outer operation.

        The previous tag becomes ``details["step"]``. Subclass attributes
        (``ConfigException.field``...) are carried over.
        """
        clone = copy.copy(self)
        clone.details = dict(self.details)
        if self.operation:
            clone.details["step"] = self.operation
        clone.operation = operation
        return clone

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "operation": self.operation,
            "details": self.details,
        }


class AuthenticationError(E2EEError):
    """Raised when a passphrase does not unlock a private key."""

    pass


class KeyParseError(E2EEError):
    """Raised when an armored key block is malformed."""

    pass


class KeyGenerationError(E2EEError):
    """Raised when the provider fails to generate a key pair."""

    pass


class DerivationError(E2EEError):
    """Raised when a session key cannot be derived for a public key."""

    pass


class EncryptionError(E2EEError):
    """Raised when symmetric or asymmetric encryption fails."""

    pass


class DecryptionError(E2EEError):
    """Raised when decryption fails, including malformed ciphertext."""

    pass


class SignatureVerificationError(E2EEError):
    """Raised when a signature is missing, invalid, or from an untrusted key.

    Security relevant: do not retry with the same verification keys.
    """

    pass


class EnvelopeFormatError(E2EEError):
    """Raised when a packed envelope string cannot be read."""

    pass


class IdentityStateError(E2EEError):
    """Raised when an identity is used before ``build`` or ``load``."""

    pass


class ConfigException(E2EEError):  # noqa: N818 - mirrors settings naming
    """Raised for invalid provider or library configuration."""

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, operation="config", details=details)
        self.field = field
        self.value = value


async def tagged(operation: str, awaitable: Awaitable[T]) -> T:
    """Await one step of a public operation, tagging any failure with it.

    Args:
        operation: Dotted step name, e.g. ``share.rewrap_key``.
        awaitable: The provider call (or nested operation) to await.

    Raises:
        E2EEError: The original error re-tagged with ``operation``; the
            inner tag is kept in ``details["step"]``.
    """
    try:
        return await awaitable
    except E2EEError as exc:
        raise exc.retag(operation) from exc


async def gather_steps(*awaitables: Awaitable[Any]) -> list[Any]:
    """Run independent steps concurrently and wait for all of them.

    Unlike a bare ``asyncio.gather``, no step is left running when another
    fails. The first failure in argument order is raised.
    """
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results
