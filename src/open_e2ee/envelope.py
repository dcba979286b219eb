# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Envelope codec: packs a wrapped key and encrypted data into one string.

Wire format::

    OE2EE1:<len>:<wrapped_key>,<len>:<encrypted_data>,

Each blob is a netstring whose length is the decimal character count of the
blob. Blob content is never scanned for delimiters, so any text (including
``:`` and ``,``) survives ``read_envelope(write_envelope(a, b)) == (a, b)``.
"""

from __future__ import annotations

from .core.exceptions import EnvelopeFormatError

ENVELOPE_PREFIX = "OE2EE1:"

# Largest accepted length field, in digits
_MAX_LENGTH_DIGITS = 12


def write_envelope(encrypted_key: str, encrypted_data: str) -> str:
    """Pack the two ciphertext blobs into one transportable string."""
    if not isinstance(encrypted_key, str) or not isinstance(encrypted_data, str):
        raise EnvelopeFormatError("Envelope blobs must be strings", operation="envelope.write")
    return f"{ENVELOPE_PREFIX}{_netstring(encrypted_key)}{_netstring(encrypted_data)}"


def read_envelope(envelope: str) -> tuple[str, str]:
    """Unpack an envelope string into (encrypted_key, encrypted_data).

    Raises:
        EnvelopeFormatError: The string is not exactly a prefix followed by
            two well-formed netstrings.
    """
    if not isinstance(envelope, str):
        raise EnvelopeFormatError("Envelope must be a string", operation="envelope.read")
    if not envelope.startswith(ENVELOPE_PREFIX):
        raise EnvelopeFormatError("Missing envelope prefix", operation="envelope.read")

    pos = len(ENVELOPE_PREFIX)
    encrypted_key, pos = _read_netstring(envelope, pos)
    encrypted_data, pos = _read_netstring(envelope, pos)
    if pos != len(envelope):
        raise EnvelopeFormatError(
            "Trailing data after envelope",
            operation="envelope.read",
            details={"offset": pos},
        )
    return encrypted_key, encrypted_data


def _netstring(value: str) -> str:
    return f"{len(value)}:{value},"


def _read_netstring(envelope: str, pos: int) -> tuple[str, int]:
    colon = envelope.find(":", pos, pos + _MAX_LENGTH_DIGITS + 1)
    if colon == -1:
        raise EnvelopeFormatError("Missing length field", operation="envelope.read", details={"offset": pos})
    digits = envelope[pos:colon]
    if not digits.isascii() or not digits.isdigit() or (len(digits) > 1 and digits[0] == "0"):
        raise EnvelopeFormatError("Invalid length field", operation="envelope.read", details={"offset": pos})

    start = colon + 1
    end = start + int(digits)
    if end >= len(envelope) or envelope[end] != ",":
        raise EnvelopeFormatError("Truncated envelope segment", operation="envelope.read", details={"offset": pos})
    return envelope[start:end], end + 1
