"""Transaction — immutable transfer intent with a content-derived id.

The id is ``sha256(preimage).hex()`` where the preimage is the compact
JSON array ``[recipient, amount, metadata, timestamp, nonce]``. The
canonical bytes (the signing payload) are the compact JSON object of all
six fields in the fixed order ``id, recipient, amount, metadata,
timestamp, nonce``.
"""

from __future__ import annotations

import json
import secrets
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Self

from pydantic import ValidationError

from multisig_wallet.crypto.keys import default_context
from multisig_wallet.engine.snapshot import TransactionSnapshot
from multisig_wallet.errors.definitions import SerializationError

if TYPE_CHECKING:
    from multisig_wallet.crypto.keys import CryptoContext, SecretKey

_U64_MAX = 2**64 - 1
_SEPARATORS = (",", ":")


def _dumps(value: Any) -> bytes:
    """Compact, non-ASCII-preserving JSON encoded as UTF-8."""
    try:
        return json.dumps(value, separators=_SEPARATORS, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError, UnicodeEncodeError) as exc:
        raise SerializationError(str(exc)) from exc


def _check_u64(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{name} must be an integer, got {type(value).__name__}"
        raise TypeError(msg)
    if not 0 <= value <= _U64_MAX:
        msg = f"{name} must be in [0, 2**64), got {value}"
        raise ValueError(msg)


def calculate_id(
    recipient: str,
    amount: int,
    metadata: str | None,
    timestamp: int,
    nonce: int,
    *,
    context: CryptoContext | None = None,
) -> str:
    """Compute the content-derived transaction id as lowercase hex."""
    ctx = context or default_context()
    preimage = _dumps([recipient, amount, metadata, timestamp, nonce])
    return ctx.hash(preimage).hex()


@dataclass(frozen=True)
class Transaction:
    """A transfer request awaiting multisig approval.

    Attributes:
        id: Lowercase hex SHA-256 of the content preimage.
        recipient: Opaque recipient identifier.
        amount: Non-negative 64-bit amount.
        metadata: Optional free text.
        timestamp: Creation time in whole seconds since the epoch.
        nonce: Random 64-bit value for uniqueness.
    """

    id: str
    recipient: str
    amount: int
    metadata: str | None
    timestamp: int
    nonce: int

    def __post_init__(self) -> None:
        if not isinstance(self.recipient, str):
            msg = "recipient must be a string"
            raise TypeError(msg)
        if self.metadata is not None and not isinstance(self.metadata, str):
            msg = "metadata must be a string or None"
            raise TypeError(msg)
        _check_u64("amount", self.amount)
        _check_u64("timestamp", self.timestamp)
        _check_u64("nonce", self.nonce)

    # -- Construction --------------------------------------------------------

    @classmethod
    def create(
        cls,
        recipient: str,
        amount: int,
        metadata: str | None = None,
        *,
        timestamp: int | None = None,
        nonce: int | None = None,
        context: CryptoContext | None = None,
    ) -> Self:
        """Create a transaction stamped with the current time and a fresh nonce."""
        ts = int(time.time()) if timestamp is None else timestamp
        n = secrets.randbits(64) if nonce is None else nonce
        tx_id = calculate_id(recipient, amount, metadata, ts, n, context=context)
        return cls(
            id=tx_id,
            recipient=recipient,
            amount=amount,
            metadata=metadata,
            timestamp=ts,
            nonce=n,
        )

    # -- Identity ------------------------------------------------------------

    def calculate_id(self, *, context: CryptoContext | None = None) -> str:
        """Recompute the id from the five content fields."""
        return calculate_id(
            self.recipient,
            self.amount,
            self.metadata,
            self.timestamp,
            self.nonce,
            context=context,
        )

    def has_valid_id(self, *, context: CryptoContext | None = None) -> bool:
        """Check that ``id`` matches the content."""
        return self.id == self.calculate_id(context=context)

    # -- Encoding ------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict in canonical field order."""
        return {
            "id": self.id,
            "recipient": self.recipient,
            "amount": self.amount,
            "metadata": self.metadata,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
        }

    def canonical_bytes(self) -> bytes:
        """Deterministic signing payload covering all six fields.

        Raises:
            SerializationError: If a text field cannot be encoded as UTF-8.
        """
        return _dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any, *, context: CryptoContext | None = None) -> Self:
        """Decode a transaction, rejecting ids that do not match the content.

        Raises:
            SerializationError: If a field is missing or malformed, or the id
                does not match.
        """
        try:
            snap = TransactionSnapshot.model_validate(data)
        except ValidationError as exc:
            raise SerializationError(f"invalid transaction: {exc}") from exc
        tx = cls(**snap.model_dump())
        if not tx.has_valid_id(context=context):
            msg = f"transaction id {tx.id} does not match its content"
            raise SerializationError(msg)
        return tx

    @classmethod
    def from_bytes(cls, data: bytes, *, context: CryptoContext | None = None) -> Self:
        """Decode the output of :meth:`canonical_bytes`."""
        try:
            payload = json.loads(data)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"transaction payload is not JSON: {exc}") from exc
        return cls.from_dict(payload, context=context)

    # -- Signing -------------------------------------------------------------

    def sign(self, secret_key: SecretKey, *, context: CryptoContext | None = None) -> bytes:
        """Sign the canonical bytes; returns a 64-byte compact signature.

        Raises:
            CryptoError: If the signing service rejects the key.
        """
        ctx = context or default_context()
        return ctx.sign(self.canonical_bytes(), secret_key)
