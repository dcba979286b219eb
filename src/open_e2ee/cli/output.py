# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Output formatting for CLI commands."""

from __future__ import annotations

import json
import sys

from ..core.response import E2EEResponse


def output_result(response: E2EEResponse, raw_field: str | None = None) -> None:
    """Print a command result.

    With ``raw_field``, a successful result prints only that field of its
    data (e.g. the decrypted plaintext) instead of the JSON document.
    """
    if raw_field and response.success and isinstance(response.data, dict) and raw_field in response.data:
        sys.stdout.write(response.data[raw_field])
        return
    print(json.dumps(response.to_dict(), indent=2, default=str))


def output_error(response: E2EEResponse) -> None:
    """Print a failed result to stderr."""
    print(json.dumps(response.to_dict(), indent=2, default=str), file=sys.stderr)
