# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Open E2EE Contributors

"""Open E2EE CLI - key generation, encryption and sharing from the shell."""

from .main import app, main

__all__ = ["main", "app"]
