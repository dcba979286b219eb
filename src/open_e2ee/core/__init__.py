"""Open E2EE core - configuration, errors, results and logging."""

from .config import CoreSettings, clear_config_cache, get_config
from .exceptions import (
    AuthenticationError,
    ConfigException,
    DecryptionError,
    DerivationError,
    E2EEError,
    EncryptionError,
    EnvelopeFormatError,
    IdentityStateError,
    KeyGenerationError,
    KeyParseError,
    SignatureVerificationError,
    gather_steps,
    tagged,
)
from .response import E2EEResponse, err, from_exception, ok

__all__ = [
    "CoreSettings",
    "get_config",
    "clear_config_cache",
    "E2EEError",
    "AuthenticationError",
    "KeyParseError",
    "KeyGenerationError",
    "DerivationError",
    "EncryptionError",
    "DecryptionError",
    "SignatureVerificationError",
    "EnvelopeFormatError",
    "IdentityStateError",
    "ConfigException",
    "tagged",
    "gather_steps",
    "E2EEResponse",
    "ok",
    "err",
    "from_exception",
]
