#!/usr/bin/env python3
"""
Open E2EE CLI - end-to-end encryption between key pairs.

Commands:
  open-e2ee keygen       Generate a passphrase-protected key pair
  open-e2ee encrypt      Encrypt data into an envelope for yourself
  open-e2ee decrypt      Open one of your envelopes
  open-e2ee share        Re-wrap one of your envelopes for a receiver
  open-e2ee share-new    Encrypt data and share it in one step
  open-e2ee receive      Open an envelope shared with you

The passphrase is read from --passphrase or OPEN_E2EE_PASSPHRASE. Keys are
read from the files given on the command line; the CLI never stores keys.

Examples:
  # Create keys for alice
  OPEN_E2EE_PASSPHRASE=secret open-e2ee keygen --user-id alice > alice.json

  # Share a note with bob
  echo "hi bob" | open-e2ee share-new --private-key alice.key \\
      --public-key alice.pub --receiver-key bob.pub
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from ..client import OpenE2EE
from ..core.exceptions import E2EEError
from ..core.logging import configure_logging
from ..core.response import E2EEResponse, err, from_exception, ok
from .output import output_error, output_result

logger = logging.getLogger(__name__)

PASSPHRASE_ENV = "OPEN_E2EE_PASSPHRASE"


class UsageError(Exception):
    """Raised for missing or invalid command line input."""


def _read_text(path: str | None) -> str:
    """Read a file, or stdin when path is None or '-'."""
    if path is None or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _passphrase(args: argparse.Namespace) -> str:
    passphrase = args.passphrase or os.environ.get(PASSPHRASE_ENV)
    if not passphrase:
        raise UsageError(f"A passphrase is required (--passphrase or {PASSPHRASE_ENV})")
    return passphrase


async def _load_client(args: argparse.Namespace) -> OpenE2EE:
    if not args.private_key or not args.public_key:
        raise UsageError("--private-key and --public-key are required")
    client = OpenE2EE(args.user_id, _passphrase(args))
    return await client.load(_read_text(args.private_key), _read_text(args.public_key))


# =============================================================================
# Commands
# =============================================================================


async def cmd_keygen(args: argparse.Namespace) -> E2EEResponse:
    """Generate a key pair and print it."""
    client = await OpenE2EE(args.user_id, _passphrase(args)).build()
    keys = client.export_master_keys()
    if args.private_key:
        Path(args.private_key).write_text(keys.private_key, encoding="utf-8")
    if args.public_key:
        Path(args.public_key).write_text(keys.public_key, encoding="utf-8")
    return ok(
        data={**keys.to_dict(), "fingerprint": client.identity.fingerprint},
        operation="keygen",
    )


async def cmd_encrypt(args: argparse.Namespace) -> E2EEResponse:
    client = await _load_client(args)
    item = await client.encrypt(_read_text(args.input))
    return ok(data={"encrypted_message": item.encrypted_message}, operation="encrypt")


async def cmd_decrypt(args: argparse.Namespace) -> E2EEResponse:
    client = await _load_client(args)
    verify_keys = [_read_text(path) for path in args.verify_key or []]
    item = await client.decrypt(_read_text(args.input).strip(), verify_keys)
    return ok(data={"data": item.data}, operation="decrypt")


async def cmd_share(args: argparse.Namespace) -> E2EEResponse:
    client = await _load_client(args)
    shared = await client.share(_read_text(args.receiver_key), _read_text(args.input).strip())
    return ok(data=shared.to_dict(), operation="share")


async def cmd_share_new(args: argparse.Namespace) -> E2EEResponse:
    client = await _load_client(args)
    shared = await client.share_new(_read_text(args.receiver_key), _read_text(args.input))
    return ok(data=shared.to_dict(), operation="share_new")


async def cmd_receive(args: argparse.Namespace) -> E2EEResponse:
    client = await _load_client(args)
    item = await client.receive(_read_text(args.sender_key), _read_text(args.input).strip())
    return ok(data={"data": item.data}, operation="receive")


COMMANDS: dict[str, Callable[[argparse.Namespace], Awaitable[E2EEResponse]]] = {
    "keygen": cmd_keygen,
    "encrypt": cmd_encrypt,
    "decrypt": cmd_decrypt,
    "share": cmd_share,
    "share-new": cmd_share_new,
    "receive": cmd_receive,
}

# Commands whose --raw output is a single data field
RAW_FIELDS = {
    "encrypt": "encrypted_message",
    "decrypt": "data",
    "receive": "data",
}


# =============================================================================
# Parser
# =============================================================================


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--user-id", default="open-e2ee", help="User id bound to the key pair")
    common.add_argument("--passphrase", help=f"Private key passphrase (default: ${PASSPHRASE_ENV})")
    common.add_argument("--private-key", help="Armored, passphrase-encrypted private key file")
    common.add_argument("--public-key", help="Armored public key file")
    common.add_argument("--input", "-i", help="Input file (default: stdin)")
    common.add_argument("--raw", action="store_true", help="Print only the primary result field")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        prog="open-e2ee",
        description="End-to-end encrypted message exchange between key pairs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser(
        "keygen",
        parents=[common],
        help="Generate a key pair",
        description="Generate a key pair; writes key files when --private-key/--public-key are given.",
    )
    subparsers.add_parser("encrypt", parents=[common], help="Encrypt data for yourself")

    decrypt_parser = subparsers.add_parser("decrypt", parents=[common], help="Open one of your envelopes")
    decrypt_parser.add_argument(
        "--verify-key",
        action="append",
        help="Additional trusted signer public key file (repeatable)",
    )

    share_parser = subparsers.add_parser("share", parents=[common], help="Share one of your envelopes")
    share_parser.add_argument("--receiver-key", required=True, help="Receiver public key file")

    share_new_parser = subparsers.add_parser("share-new", parents=[common], help="Encrypt and share data")
    share_new_parser.add_argument("--receiver-key", required=True, help="Receiver public key file")

    receive_parser = subparsers.add_parser("receive", parents=[common], help="Open a shared envelope")
    receive_parser.add_argument("--sender-key", required=True, help="Sender public key file")

    return parser


async def run_command(args: argparse.Namespace) -> E2EEResponse:
    """Run one command, converting failures into an error response."""
    try:
        return await COMMANDS[args.command](args)
    except E2EEError as exc:
        return from_exception(exc)
    except UsageError as exc:
        return err(str(exc), operation=args.command)
    except OSError as exc:
        return err(f"{exc.strerror or exc}: {exc.filename}", operation=args.command)


async def async_main(args: argparse.Namespace) -> int:
    """Async main entry point."""
    configure_logging(level="DEBUG" if args.verbose else None)

    response = await run_command(args)
    if not response.success:
        output_error(response)
        return 1
    output_result(response, RAW_FIELDS.get(args.command) if args.raw else None)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    return asyncio.run(async_main(args))


# For CLI entry point
app = main


if __name__ == "__main__":
    sys.exit(main())
