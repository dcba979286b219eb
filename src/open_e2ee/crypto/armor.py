"""ASCII armor for keys and messages.

An armored block is a header line, a strict base64 body wrapped at 64
columns, and a footer line::

    -----BEGIN OPEN-E2EE MESSAGE-----
    eyJjdCI6Ii4uLiJ9
    -----END OPEN-E2EE MESSAGE-----

The body is compact, key-sorted JSON so armoring is deterministic.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any

ARMOR_LINE_LENGTH = 64

PUBLIC_KEY_BLOCK = "PUBLIC KEY"
PRIVATE_KEY_BLOCK = "PRIVATE KEY"
MESSAGE_BLOCK = "MESSAGE"


class ArmorError(ValueError):
    """Raised when text is not a well-formed armored block."""


def _header(block_type: str) -> str:
    return f"-----BEGIN OPEN-E2EE {block_type}-----"


def _footer(block_type: str) -> str:
    return f"-----END OPEN-E2EE {block_type}-----"


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def unb64(value: Any) -> bytes:
    """Strictly decode a base64 string, rejecting non-alphabet characters."""
    if not isinstance(value, str):
        raise ArmorError("Expected base64 string")
    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ArmorError(f"Invalid base64: {exc}") from exc


def armor(block_type: str, payload: dict[str, Any]) -> str:
    """Encode ``payload`` as an armored block of ``block_type``."""
    raw = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    body = b64(raw)
    lines = [body[i : i + ARMOR_LINE_LENGTH] for i in range(0, len(body), ARMOR_LINE_LENGTH)]
    return "\n".join([_header(block_type), *lines, _footer(block_type)]) + "\n"


def dearmor(text: Any, block_type: str) -> dict[str, Any]:
    """Decode an armored block, checking it is of ``block_type``.

    Only the exact text ``armor`` produces for the payload is accepted.

    Raises:
        ArmorError: Wrong block type, bad base64, a body that is not a
            JSON object, or a block that is not in canonical form.
    """
    if not isinstance(text, str):
        raise ArmorError("Armored block must be a string")
    lines = text.strip().splitlines()
    if len(lines) < 3:
        raise ArmorError("Armored block is truncated")
    if lines[0].strip() != _header(block_type) or lines[-1].strip() != _footer(block_type):
        raise ArmorError(f"Expected an armored {block_type} block")

    raw = unb64("".join(line.strip() for line in lines[1:-1]))
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ArmorError(f"Invalid armored body: {exc}") from exc
    if not isinstance(payload, dict):
        raise ArmorError("Armored body must be a JSON object")
    if armor(block_type, payload) != text:
        raise ArmorError("Armored block is not in canonical form")
    return payload
