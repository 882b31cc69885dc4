"""Typed errors raised by the wallet state machine and crypto service."""

from __future__ import annotations

from multisig_wallet.errors.multisig_errors import MultisigError

# -- Policy ----------------------------------------------------------------


class InvalidThresholdError(MultisigError):
    """Wallet construction with a threshold outside ``1 <= M <= N``."""

    def __init__(self, m: int, n: int) -> None:
        super().__init__(
            f"invalid threshold: M={m} must satisfy 1 <= M <= N={n}",
            code="invalid-threshold",
        )
        self.m = m
        self.n = n


class DuplicateSignerKeyError(MultisigError):
    """Wallet construction with the same public key listed more than once."""

    def __init__(self, key_hex: str) -> None:
        super().__init__(
            f"authorized keys must be distinct: {key_hex} listed twice",
            code="duplicate-signer-key",
        )
        self.key_hex = key_hex


class UnauthorizedSignerError(MultisigError):
    """Signature submitted by a key outside the authorized set."""

    def __init__(self) -> None:
        super().__init__("signer not authorized", code="unauthorized-signer")


# -- Transaction lifecycle -------------------------------------------------


class TransactionNotFoundError(MultisigError):
    """Operation referencing an unknown transaction id."""

    def __init__(self, tx_id: str) -> None:
        super().__init__(f"transaction not found: {tx_id}", code="transaction-not-found")
        self.tx_id = tx_id


class TransactionAlreadyExecutedError(MultisigError):
    """Mutating operation attempted on an executed transaction."""

    def __init__(self, tx_id: str) -> None:
        super().__init__(
            f"transaction already executed: {tx_id}",
            code="transaction-already-executed",
        )
        self.tx_id = tx_id


class TransactionAlreadyProposedError(MultisigError):
    """Re-proposal of an in-flight transaction id under the ``reject`` policy."""

    def __init__(self, tx_id: str) -> None:
        super().__init__(
            f"transaction already proposed: {tx_id}",
            code="transaction-already-proposed",
        )
        self.tx_id = tx_id


class InsufficientSignaturesError(MultisigError):
    """Execution attempted below the signature threshold."""

    def __init__(self, required: int, actual: int) -> None:
        super().__init__(
            f"insufficient signatures: required {required}, got {actual}",
            code="insufficient-signatures",
        )
        self.required = required
        self.actual = actual


# -- Signatures ------------------------------------------------------------


class InvalidSignatureError(MultisigError):
    """Signature failed cryptographic verification."""

    def __init__(self) -> None:
        super().__init__("invalid signature", code="invalid-signature")


class DuplicateSignatureError(MultisigError):
    """Second signature from a signer that already signed."""

    def __init__(self) -> None:
        super().__init__("duplicate signature detected", code="duplicate-signature")


# -- Crypto / encoding -----------------------------------------------------


class CryptoError(MultisigError):
    """Underlying cryptographic operation failed."""

    def __init__(self, message: str, *, code: str = "crypto-error") -> None:
        super().__init__(f"cryptographic error: {message}", code=code)


class InvalidPublicKeyError(CryptoError):
    """Public key bytes or hex could not be decoded to a curve point."""

    def __init__(self, message: str = "invalid public key") -> None:
        super().__init__(message, code="invalid-public-key")


class InvalidPrivateKeyError(CryptoError):
    """Secret key bytes or hex are not a valid scalar."""

    def __init__(self, message: str = "invalid private key") -> None:
        super().__init__(message, code="invalid-private-key")


class SerializationError(MultisigError):
    """Structured encoding or decoding of a payload or snapshot failed."""

    def __init__(self, message: str) -> None:
        super().__init__(f"serialization error: {message}", code="serialization-error")
