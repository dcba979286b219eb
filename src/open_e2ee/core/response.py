# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Standard response envelope for Open E2EE public entry points.

The CLI (and any other outer surface) converts every operation outcome into
an ``E2EEResponse`` so callers always receive a consistent
``{success, data, error, operation}`` structure.

Usage::

    from open_e2ee.core.response import ok, err, from_exception

    return ok(data=item.to_dict(), operation="encrypt")
    return from_exception(exc)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .exceptions import E2EEError


@dataclass
class E2EEResponse:
    """Unified result of a public Open E2EE operation.

    Attributes:
        success:   True when the operation completed without error.
        data:      Payload returned on success.
        error:     Human-readable error message on failure.
        operation: Tag of the operation that produced this result.
        details:   Structured error context (error class, failing step).
    """

    success: bool
    data: Any = None
    error: str | None = None
    operation: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a plain dict, omitting keys that carry no information."""
        d: dict[str, Any] = {"success": self.success}
        if self.operation:
            d["operation"] = self.operation
        if self.data is not None:
            d["data"] = self.data
        if self.error:
            d["error"] = self.error
        if self.details:
            d["details"] = self.details
        return d


def ok(data: Any = None, operation: str | None = None) -> E2EEResponse:
    """Create a successful E2EEResponse."""
    return E2EEResponse(success=True, data=data, operation=operation)


def err(error: str, operation: str | None = None) -> E2EEResponse:
    """Create a failed E2EEResponse."""
    return E2EEResponse(success=False, error=error, operation=operation)


def from_exception(exc: E2EEError) -> E2EEResponse:
    """Build a failed response from a tagged library error.

    Args:
        exc: The error raised by a public operation.

    Returns:
        E2EEResponse with success=False, carrying the error class name and
        the failing step in ``details``.
    """
    details = {"error_type": exc.__class__.__name__, **exc.details}
    return E2EEResponse(
        success=False,
        error=exc.message,
        operation=exc.operation,
        details=details,
    )
