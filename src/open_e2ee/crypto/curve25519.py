"""Curve25519 crypto provider built on the ``cryptography`` library.

Key pairs combine an Ed25519 signing key with an X25519 encryption key.
Asymmetric messages are signed, then encrypted under a random content key
that is wrapped per recipient with ephemeral X25519 + HKDF + AES-GCM.
Symmetric messages derive their key from the password with scrypt.

All primitive calls run in a worker thread via ``asyncio.to_thread`` so
the event loop is never blocked by CPU-bound work.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, x25519
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..core.exceptions import (
    AuthenticationError,
    DecryptionError,
    DerivationError,
    EncryptionError,
    KeyGenerationError,
    KeyParseError,
    SignatureVerificationError,
)
from .armor import (
    MESSAGE_BLOCK,
    PRIVATE_KEY_BLOCK,
    PUBLIC_KEY_BLOCK,
    ArmorError,
    armor,
    b64,
    dearmor,
    unb64,
)
from .provider import (
    MAX_SCRYPT_MEMORY,
    SYMMETRIC_KEY_SIZES,
    ArmoredKeyPair,
    CryptoProvider,
    PrivateKeyHandle,
    PublicKeyHandle,
    is_valid_scrypt_n,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
NONCE_SIZE = 12
SALT_SIZE = 16

_FINGERPRINT_DOMAIN = b"open-e2ee-fingerprint-v1"
_SIGNATURE_DOMAIN = b"open-e2ee-signed-message-v1\x00"
_MESSAGE_AAD = b"open-e2ee-message-v1"
_WRAP_INFO = b"open-e2ee-wrap-v1"
_PRIVATE_KEY_AAD = b"open-e2ee-private-key-v1|"
_SYMMETRIC_AAD = b"open-e2ee-symmetric-v1|"

# Parse failures that mean "malformed input" rather than a bug
_MALFORMED = (ArmorError, AttributeError, KeyError, TypeError, ValueError)


# =============================================================================
# Key handles
# =============================================================================


@dataclass(frozen=True)
class Curve25519PublicKey:
    """Public half of a Curve25519 identity key."""

    user_id: str
    signing_key: ed25519.Ed25519PublicKey
    encryption_key: x25519.X25519PublicKey
    preferred_symmetric: str
    fingerprint: str
    armored: str

    def __repr__(self) -> str:
        return f"Curve25519PublicKey(user_id={self.user_id!r}, fingerprint={self.fingerprint[:16]})"


@dataclass(frozen=True)
class Curve25519PrivateKey:
    """Private half of a Curve25519 identity key.

    ``signing_key`` and ``encryption_key`` are None while the key is locked.
    """

    public_key: Curve25519PublicKey
    kdf: dict[str, Any]
    nonce: bytes
    sealed: bytes
    signing_key: ed25519.Ed25519PrivateKey | None = None
    encryption_key: x25519.X25519PrivateKey | None = None

    @property
    def fingerprint(self) -> str:
        return self.public_key.fingerprint

    @property
    def user_id(self) -> str:
        return self.public_key.user_id

    @property
    def is_decrypted(self) -> bool:
        return self.signing_key is not None and self.encryption_key is not None

    def __repr__(self) -> str:
        state = "unlocked" if self.is_decrypted else "locked"
        return f"Curve25519PrivateKey(user_id={self.user_id!r}, fingerprint={self.fingerprint[:16]}, {state})"


def _raw_public(key: ed25519.Ed25519PublicKey | x25519.X25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _raw_private(key: ed25519.Ed25519PrivateKey | x25519.X25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


def compute_fingerprint(signing_public: bytes, encryption_public: bytes) -> str:
    """SHA-256 over both raw public keys, hex encoded."""
    digest = hashlib.sha256()
    digest.update(_FINGERPRINT_DOMAIN)
    digest.update(signing_public)
    digest.update(encryption_public)
    return digest.hexdigest()


def _aead(algorithm: str, key: bytes) -> AESGCM | ChaCha20Poly1305:
    if algorithm == "chacha20":
        return ChaCha20Poly1305(key)
    return AESGCM(key)


def _scrypt(secret: str, salt: bytes, length: int, n: int, r: int, p: int) -> bytes:
    return Scrypt(salt=salt, length=length, n=n, r=r, p=p).derive(secret.encode("utf-8"))


def _check_scrypt_params(kdf: dict[str, Any]) -> None:
    """Reject scrypt parameters that are unsupported or would exhaust memory."""
    if kdf.get("name") != "scrypt" or not is_valid_scrypt_n(kdf.get("n")):
        raise ValueError("unsupported key derivation parameters")
    r, p = kdf["r"], kdf["p"]
    if not (isinstance(r, int) and isinstance(p, int) and 1 <= r <= 32 and 1 <= p <= 16):
        raise ValueError("unsupported key derivation parameters")
    if 128 * kdf["n"] * r > MAX_SCRYPT_MEMORY:
        raise ValueError("key derivation parameters exceed the memory limit")


def _encode_message(data: str, operation: str) -> bytes:
    try:
        return data.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncryptionError(f"Message data is not encodable as UTF-8: {exc.reason}", operation=operation) from exc


def _derive_wrap_key(shared_secret: bytes, ephemeral_public: bytes, recipient_public: bytes) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=ephemeral_public + recipient_public,
        info=_WRAP_INFO,
    )
    return hkdf.derive(shared_secret)


# =============================================================================
# Provider
# =============================================================================


class Curve25519Provider(CryptoProvider):
    """Crypto provider using Ed25519, X25519, AEAD ciphers and scrypt."""

    # -------------------------------------------------------------------------
    # Keys
    # -------------------------------------------------------------------------

    async def generate_key_pair(self, passphrase: str, user_id: str) -> ArmoredKeyPair:
        return await asyncio.to_thread(self._generate_key_pair, passphrase, user_id)

    def _generate_key_pair(self, passphrase: str, user_id: str) -> ArmoredKeyPair:
        op = "provider.generate_key_pair"
        if not isinstance(user_id, str) or not user_id:
            raise KeyGenerationError("user_id must be a non-empty string", operation=op)
        if not isinstance(passphrase, str) or not passphrase:
            raise KeyGenerationError("passphrase must be a non-empty string", operation=op)

        signing_private = ed25519.Ed25519PrivateKey.generate()
        encryption_private = x25519.X25519PrivateKey.generate()
        public_payload = {
            "v": FORMAT_VERSION,
            "user_id": user_id,
            "sign": b64(_raw_public(signing_private.public_key())),
            "enc": b64(_raw_public(encryption_private.public_key())),
            "sym": self.config.symmetric_algorithm,
            "created_at": datetime.now(UTC).isoformat(),
        }
        public_key = self._public_from_payload(public_payload)

        salt = os.urandom(SALT_SIZE)
        kdf = {
            "name": "scrypt",
            "salt": b64(salt),
            "n": self.config.key_scrypt_n,
            "r": self.config.scrypt_r,
            "p": self.config.scrypt_p,
        }
        try:
            key = _scrypt(passphrase, salt, 32, kdf["n"], kdf["r"], kdf["p"])
        except (ValueError, MemoryError) as exc:
            raise KeyGenerationError(f"Key derivation failed: {exc}", operation=op) from exc
        nonce = os.urandom(NONCE_SIZE)
        sealed = AESGCM(key).encrypt(
            nonce,
            _raw_private(signing_private) + _raw_private(encryption_private),
            _PRIVATE_KEY_AAD + public_key.fingerprint.encode("ascii"),
        )
        private_armored = armor(
            PRIVATE_KEY_BLOCK,
            {
                "v": FORMAT_VERSION,
                "public": public_payload,
                "kdf": kdf,
                "cipher": "aes256-gcm",
                "nonce": b64(nonce),
                "sealed": b64(sealed),
            },
        )
        logger.debug("Generated key pair %s for %s", public_key.fingerprint[:16], user_id)
        return ArmoredKeyPair(private_key=private_armored, public_key=public_key.armored)

    async def read_public_key(self, armored: str) -> Curve25519PublicKey:
        return await asyncio.to_thread(self._read_public_key, armored)

    def _read_public_key(self, armored: str) -> Curve25519PublicKey:
        try:
            payload = dearmor(armored, PUBLIC_KEY_BLOCK)
            return self._public_from_payload(payload)
        except _MALFORMED as exc:
            raise KeyParseError(f"Malformed public key: {exc}", operation="provider.read_public_key") from exc

    def _public_from_payload(self, payload: dict[str, Any]) -> Curve25519PublicKey:
        if payload.get("v") != FORMAT_VERSION:
            raise ValueError(f"unsupported key version {payload.get('v')!r}")
        user_id = payload["user_id"]
        preferred = payload["sym"]
        if not isinstance(user_id, str) or not isinstance(preferred, str):
            raise TypeError("user_id and sym must be strings")
        signing_raw = unb64(payload["sign"])
        encryption_raw = unb64(payload["enc"])
        return Curve25519PublicKey(
            user_id=user_id,
            signing_key=ed25519.Ed25519PublicKey.from_public_bytes(signing_raw),
            encryption_key=x25519.X25519PublicKey.from_public_bytes(encryption_raw),
            preferred_symmetric=preferred,
            fingerprint=compute_fingerprint(signing_raw, encryption_raw),
            armored=armor(PUBLIC_KEY_BLOCK, payload),
        )

    async def read_private_key(self, armored: str) -> Curve25519PrivateKey:
        return await asyncio.to_thread(self._read_private_key, armored)

    def _read_private_key(self, armored: str) -> Curve25519PrivateKey:
        try:
            payload = dearmor(armored, PRIVATE_KEY_BLOCK)
            if payload.get("v") != FORMAT_VERSION:
                raise ValueError(f"unsupported key version {payload.get('v')!r}")
            if payload.get("cipher") != "aes256-gcm":
                raise ValueError(f"unsupported key cipher {payload.get('cipher')!r}")
            kdf = payload["kdf"]
            _check_scrypt_params(kdf)
            unb64(kdf["salt"])
            return Curve25519PrivateKey(
                public_key=self._public_from_payload(payload["public"]),
                kdf=kdf,
                nonce=unb64(payload["nonce"]),
                sealed=unb64(payload["sealed"]),
            )
        except _MALFORMED as exc:
            raise KeyParseError(f"Malformed private key: {exc}", operation="provider.read_private_key") from exc

    async def decrypt_private_key(self, armored: str, passphrase: str) -> Curve25519PrivateKey:
        return await asyncio.to_thread(self._decrypt_private_key, armored, passphrase)

    def _decrypt_private_key(self, armored: str, passphrase: str) -> Curve25519PrivateKey:
        op = "provider.decrypt_private_key"
        locked = self._read_private_key(armored)
        if not isinstance(passphrase, str):
            raise AuthenticationError("passphrase must be a string", operation=op)

        kdf = locked.kdf
        try:
            key = _scrypt(passphrase, unb64(kdf["salt"]), 32, kdf["n"], kdf["r"], kdf["p"])
            raw = AESGCM(key).decrypt(
                locked.nonce,
                locked.sealed,
                _PRIVATE_KEY_AAD + locked.fingerprint.encode("ascii"),
            )
        except InvalidTag as exc:
            raise AuthenticationError("Incorrect passphrase for private key", operation=op) from exc
        except _MALFORMED as exc:
            raise KeyParseError(f"Malformed private key: {exc}", operation=op) from exc

        if len(raw) != 64:
            raise KeyParseError("Private key material has the wrong length", operation=op)
        signing_private = ed25519.Ed25519PrivateKey.from_private_bytes(raw[:32])
        encryption_private = x25519.X25519PrivateKey.from_private_bytes(raw[32:])
        public = locked.public_key
        if _raw_public(signing_private.public_key()) != _raw_public(public.signing_key) or _raw_public(
            encryption_private.public_key()
        ) != _raw_public(public.encryption_key):
            raise KeyParseError("Private key does not match its public key", operation=op)

        return replace(locked, signing_key=signing_private, encryption_key=encryption_private)

    async def generate_session_key(self, public_key: PublicKeyHandle) -> str:
        return await asyncio.to_thread(self._generate_session_key, public_key)

    def _generate_session_key(self, public_key: PublicKeyHandle) -> str:
        op = "provider.generate_session_key"
        if not isinstance(public_key, Curve25519PublicKey):
            raise DerivationError("Session keys require a Curve25519 public key", operation=op)
        size = SYMMETRIC_KEY_SIZES.get(public_key.preferred_symmetric)
        if size is None:
            raise DerivationError(
                f"Public key prefers unsupported algorithm {public_key.preferred_symmetric!r}",
                operation=op,
                details={"fingerprint": public_key.fingerprint},
            )
        return os.urandom(size).hex()

    # -------------------------------------------------------------------------
    # Asymmetric messages
    # -------------------------------------------------------------------------

    async def encrypt_asymmetric(
        self,
        signing_key: PrivateKeyHandle,
        encryption_keys: Sequence[PublicKeyHandle],
        data: str,
    ) -> str:
        return await asyncio.to_thread(self._encrypt_asymmetric, signing_key, list(encryption_keys), data)

    def _encrypt_asymmetric(
        self,
        signing_key: PrivateKeyHandle,
        encryption_keys: list[PublicKeyHandle],
        data: str,
    ) -> str:
        op = "provider.encrypt_asymmetric"
        if not isinstance(signing_key, Curve25519PrivateKey) or not signing_key.is_decrypted:
            raise EncryptionError("Signing key must be an unlocked Curve25519 private key", operation=op)
        if not encryption_keys:
            raise EncryptionError("At least one recipient key is required", operation=op)
        if not isinstance(data, str):
            raise EncryptionError("Message data must be a string", operation=op)

        recipients: dict[str, Curve25519PublicKey] = {}
        for key in encryption_keys:
            if not isinstance(key, Curve25519PublicKey):
                raise EncryptionError("Recipient keys must be Curve25519 public keys", operation=op)
            recipients.setdefault(key.fingerprint, key)

        data_bytes = _encode_message(data, op)
        signature = signing_key.signing_key.sign(_SIGNATURE_DOMAIN + data_bytes)
        inner = json.dumps(
            {"data": b64(data_bytes), "signer": signing_key.fingerprint, "sig": b64(signature)},
            separators=(",", ":"),
        ).encode("utf-8")

        content_key = AESGCM.generate_key(bit_length=256)
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = AESGCM(content_key).encrypt(nonce, inner, _MESSAGE_AAD)

        wrapped_keys = []
        for fingerprint, key in recipients.items():
            ephemeral_private = x25519.X25519PrivateKey.generate()
            ephemeral_public = _raw_public(ephemeral_private.public_key())
            shared_secret = ephemeral_private.exchange(key.encryption_key)
            wrap_key = _derive_wrap_key(shared_secret, ephemeral_public, _raw_public(key.encryption_key))
            wrap_nonce = os.urandom(NONCE_SIZE)
            wrapped_keys.append(
                {
                    "kid": fingerprint,
                    "epk": b64(ephemeral_public),
                    "nonce": b64(wrap_nonce),
                    "wrapped": b64(AESGCM(wrap_key).encrypt(wrap_nonce, content_key, fingerprint.encode("ascii"))),
                }
            )

        return armor(
            MESSAGE_BLOCK,
            {
                "v": FORMAT_VERSION,
                "type": "pk",
                "recipients": wrapped_keys,
                "nonce": b64(nonce),
                "ct": b64(ciphertext),
            },
        )

    async def decrypt_asymmetric(
        self,
        decryption_key: PrivateKeyHandle,
        verification_keys: Sequence[PublicKeyHandle],
        data: str,
        expect_signed: bool = True,
    ) -> str:
        return await asyncio.to_thread(
            self._decrypt_asymmetric, decryption_key, list(verification_keys), data, expect_signed
        )

    def _decrypt_asymmetric(
        self,
        decryption_key: PrivateKeyHandle,
        verification_keys: list[PublicKeyHandle],
        data: str,
        expect_signed: bool,
    ) -> str:
        op = "provider.decrypt_asymmetric"
        if not isinstance(decryption_key, Curve25519PrivateKey) or not decryption_key.is_decrypted:
            raise DecryptionError("Decryption key must be an unlocked Curve25519 private key", operation=op)

        try:
            payload = dearmor(data, MESSAGE_BLOCK)
            if payload.get("v") != FORMAT_VERSION or payload.get("type") != "pk":
                raise ValueError("not a public-key encrypted message")
            entries = [e for e in payload["recipients"] if e["kid"] == decryption_key.fingerprint]
            nonce = unb64(payload["nonce"])
            ciphertext = unb64(payload["ct"])
        except _MALFORMED as exc:
            raise DecryptionError(f"Malformed message: {exc}", operation=op) from exc
        if not entries:
            raise DecryptionError(
                "Message is not encrypted for this key",
                operation=op,
                details={"fingerprint": decryption_key.fingerprint},
            )

        own_public = _raw_public(decryption_key.public_key.encryption_key)
        content_key = None
        for entry in entries:
            try:
                ephemeral_public = unb64(entry["epk"])
                shared_secret = decryption_key.encryption_key.exchange(
                    x25519.X25519PublicKey.from_public_bytes(ephemeral_public)
                )
                wrap_key = _derive_wrap_key(shared_secret, ephemeral_public, own_public)
                content_key = AESGCM(wrap_key).decrypt(
                    unb64(entry["nonce"]),
                    unb64(entry["wrapped"]),
                    decryption_key.fingerprint.encode("ascii"),
                )
                break
            except (InvalidTag, *_MALFORMED):
                continue
        if content_key is None:
            raise DecryptionError("Unable to unwrap message key", operation=op)

        try:
            inner = json.loads(AESGCM(content_key).decrypt(nonce, ciphertext, _MESSAGE_AAD))
            data_bytes = unb64(inner["data"])
            plaintext = data_bytes.decode("utf-8")
        except InvalidTag as exc:
            raise DecryptionError("Message integrity check failed", operation=op) from exc
        except _MALFORMED as exc:
            raise DecryptionError(f"Malformed message body: {exc}", operation=op) from exc

        signature = inner.get("sig")
        if signature is None:
            if expect_signed:
                raise SignatureVerificationError("Message is not signed", operation=op)
            return plaintext

        signer = inner.get("signer")
        trusted = {key.fingerprint: key for key in verification_keys if isinstance(key, Curve25519PublicKey)}
        if signer not in trusted:
            raise SignatureVerificationError(
                "Message signer is not in the verification set",
                operation=op,
                details={"signer_fingerprint": str(signer)},
            )
        try:
            trusted[signer].signing_key.verify(unb64(signature), _SIGNATURE_DOMAIN + data_bytes)
        except (InvalidSignature, ArmorError) as exc:
            raise SignatureVerificationError(
                "Invalid message signature",
                operation=op,
                details={"signer_fingerprint": signer},
            ) from exc
        return plaintext

    # -------------------------------------------------------------------------
    # Symmetric messages
    # -------------------------------------------------------------------------

    async def encrypt(self, password: str, data: str) -> str:
        return await asyncio.to_thread(self._encrypt, password, data)

    def _encrypt(self, password: str, data: str) -> str:
        op = "provider.encrypt"
        if not isinstance(password, str) or not password:
            raise EncryptionError("password must be a non-empty string", operation=op)
        if not isinstance(data, str):
            raise EncryptionError("Message data must be a string", operation=op)

        data_bytes = _encode_message(data, op)
        algorithm = self.config.symmetric_algorithm
        salt = os.urandom(SALT_SIZE)
        kdf = {
            "name": "scrypt",
            "salt": b64(salt),
            "n": self.config.message_scrypt_n,
            "r": self.config.scrypt_r,
            "p": self.config.scrypt_p,
        }
        try:
            key = _scrypt(password, salt, SYMMETRIC_KEY_SIZES[algorithm], kdf["n"], kdf["r"], kdf["p"])
        except (ValueError, MemoryError) as exc:
            raise EncryptionError(f"Key derivation failed: {exc}", operation=op) from exc
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = _aead(algorithm, key).encrypt(
            nonce, data_bytes, _SYMMETRIC_AAD + algorithm.encode("ascii")
        )
        return armor(
            MESSAGE_BLOCK,
            {
                "v": FORMAT_VERSION,
                "type": "sym",
                "alg": algorithm,
                "kdf": kdf,
                "nonce": b64(nonce),
                "ct": b64(ciphertext),
            },
        )

    async def decrypt(self, password: str, data: str) -> str:
        return await asyncio.to_thread(self._decrypt, password, data)

    def _decrypt(self, password: str, data: str) -> str:
        op = "provider.decrypt"
        if not isinstance(password, str) or not password:
            raise DecryptionError("password must be a non-empty string", operation=op)
        try:
            payload = dearmor(data, MESSAGE_BLOCK)
            if payload.get("v") != FORMAT_VERSION or payload.get("type") != "sym":
                raise ValueError("not a password encrypted message")
            algorithm = payload["alg"]
            if algorithm not in SYMMETRIC_KEY_SIZES:
                raise ValueError(f"unsupported algorithm {algorithm!r}")
            kdf = payload["kdf"]
            _check_scrypt_params(kdf)
            key = _scrypt(password, unb64(kdf["salt"]), SYMMETRIC_KEY_SIZES[algorithm], kdf["n"], kdf["r"], kdf["p"])
            plaintext = _aead(algorithm, key).decrypt(
                unb64(payload["nonce"]),
                unb64(payload["ct"]),
                _SYMMETRIC_AAD + algorithm.encode("ascii"),
            )
            return plaintext.decode("utf-8")
        except InvalidTag as exc:
            raise DecryptionError("Message integrity check failed", operation=op) from exc
        except _MALFORMED as exc:
            raise DecryptionError(f"Malformed message: {exc}", operation=op) from exc
