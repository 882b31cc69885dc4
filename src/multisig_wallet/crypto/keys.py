"""secp256k1 ECDSA service — key generation, signing, verification, key codecs.

Implements the cryptographic collaborator the wallet depends on:
- A reusable, immutable :class:`CryptoContext` shared by reference
- Key pair generation from the OS entropy source
- RFC 6979 deterministic signing over SHA-256 digests, low-S canonical
- Verification that returns ``False`` (never raises) on malformed signatures
- Compressed SEC1 public key hex and compact 64-byte signature hex codecs
"""

from __future__ import annotations

import functools
import hashlib
from dataclasses import dataclass, field

from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.curves import Curve
from ecdsa.errors import MalformedPointError
from ecdsa.util import sigdecode_string, sigencode_string_canonize

from multisig_wallet.errors.definitions import (
    CryptoError,
    InvalidPrivateKeyError,
    InvalidPublicKeyError,
)
from multisig_wallet.utils.crypto import sha256

# ---------------------------------------------------------------------------
# Key types
# ---------------------------------------------------------------------------

SecretKey = SigningKey
PublicKey = VerifyingKey

# Compact signature: 32-byte r || 32-byte s
SIGNATURE_SIZE = 64
COMPRESSED_PUBKEY_SIZE = 33
SECRET_KEY_SIZE = 32


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CryptoContext:
    """Curve parameters and the operations bound to them.

    Build one per process (see :func:`default_context`) and pass it by
    reference; the context holds no mutable state and is safe to share
    across threads.
    """

    # Curve defines __eq__ without __hash__, so it cannot be a plain default.
    curve: Curve = field(default_factory=lambda: SECP256k1)

    def hash(self, message: bytes) -> bytes:
        """Return the 32-byte SHA-256 digest of *message*."""
        return sha256(message)

    def generate_keypair(self) -> tuple[SecretKey, PublicKey]:
        """Generate a fresh key pair.

        Raises:
            CryptoError: If the entropy source fails.
        """
        try:
            sk = SigningKey.generate(curve=self.curve)
        except (OSError, NotImplementedError) as exc:
            raise CryptoError(f"entropy source failure: {exc}") from exc
        return sk, sk.get_verifying_key()

    def sign(self, message: bytes, secret_key: SecretKey) -> bytes:
        """Sign SHA-256(*message*) and return the 64-byte compact signature.

        Raises:
            CryptoError: If *secret_key* is not a key on this context's curve.
        """
        if not isinstance(secret_key, SigningKey) or secret_key.curve != self.curve:
            raise InvalidPrivateKeyError("secret key is not a key on the context curve")
        digest = self.hash(message)
        return secret_key.sign_digest_deterministic(
            digest,
            hashfunc=hashlib.sha256,
            sigencode=sigencode_string_canonize,
        )

    def verify(self, message: bytes, signature: bytes, public_key: PublicKey) -> bool:
        """Verify a compact signature over SHA-256(*message*).

        Only the low-S form is accepted, so each signer has exactly one
        valid encoding per message.
        """
        if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_SIZE:
            return False
        _, s = sigdecode_string(bytes(signature), self.curve.order)
        if s > self.curve.order // 2:
            return False
        digest = self.hash(message)
        try:
            return public_key.verify_digest(bytes(signature), digest, sigdecode=sigdecode_string)
        except BadSignatureError:
            return False

    # -- Key / signature codecs ---------------------------------------------

    def public_key_bytes(self, public_key: PublicKey) -> bytes:
        """Return the 33-byte compressed SEC1 encoding of *public_key*."""
        return public_key.to_string("compressed")

    def public_key_hex(self, public_key: PublicKey) -> str:
        """Compressed SEC1 encoding rendered as lowercase hex."""
        return self.public_key_bytes(public_key).hex()

    def public_key_from_hex(self, value: str) -> PublicKey:
        """Decode a compressed (or uncompressed) SEC1 hex public key.

        Raises:
            InvalidPublicKeyError: If the hex or the point is invalid.
        """
        try:
            raw = bytes.fromhex(value)
        except (TypeError, ValueError) as exc:
            raise InvalidPublicKeyError(f"public key is not valid hex: {exc}") from exc
        try:
            return VerifyingKey.from_string(raw, curve=self.curve)
        except (MalformedPointError, ValueError) as exc:
            raise InvalidPublicKeyError(f"public key is not a valid point: {exc}") from exc

    def secret_key_hex(self, secret_key: SecretKey) -> str:
        """32-byte big-endian scalar rendered as lowercase hex."""
        return secret_key.to_string().hex()

    def secret_key_from_hex(self, value: str) -> SecretKey:
        """Decode a 32-byte hex secret scalar.

        Raises:
            InvalidPrivateKeyError: If the hex is malformed or out of range.
        """
        try:
            raw = bytes.fromhex(value)
        except (TypeError, ValueError) as exc:
            raise InvalidPrivateKeyError(f"secret key is not valid hex: {exc}") from exc
        if len(raw) != SECRET_KEY_SIZE:
            msg = f"secret key must be {SECRET_KEY_SIZE} bytes, got {len(raw)}"
            raise InvalidPrivateKeyError(msg)
        try:
            return SigningKey.from_string(raw, curve=self.curve)
        except (MalformedPointError, ValueError) as exc:
            raise InvalidPrivateKeyError(f"secret key out of range: {exc}") from exc


@functools.cache
def default_context() -> CryptoContext:
    """Return the process-wide secp256k1 context."""
    return CryptoContext()


# ---------------------------------------------------------------------------
# Module-level helpers on the default context
# ---------------------------------------------------------------------------


def generate_keypair() -> tuple[SecretKey, PublicKey]:
    """Generate a new key pair for signing."""
    return default_context().generate_keypair()


def sign_message(message: bytes, secret_key: SecretKey) -> bytes:
    """Sign a message with a secret key (compact signature)."""
    return default_context().sign(message, secret_key)


def verify_signature(message: bytes, signature: bytes, public_key: PublicKey) -> bool:
    """Verify a compact signature against a public key."""
    return default_context().verify(message, signature, public_key)


def hash_message(message: bytes) -> bytes:
    """Hash a message using SHA-256."""
    return default_context().hash(message)


def signature_from_hex(value: str) -> bytes:
    """Decode a compact signature from hex.

    Raises:
        CryptoError: If the hex is malformed or not 64 bytes long.
    """
    try:
        raw = bytes.fromhex(value)
    except (TypeError, ValueError) as exc:
        raise CryptoError(f"signature is not valid hex: {exc}") from exc
    if len(raw) != SIGNATURE_SIZE:
        msg = f"signature must be {SIGNATURE_SIZE} bytes, got {len(raw)}"
        raise CryptoError(msg)
    return raw
