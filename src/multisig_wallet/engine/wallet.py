"""MultisigWallet — M-of-N proposal, signature admission and execution.

Lifecycle of a tracked transaction::

    PROPOSED --(signatures >= threshold)--> APPROVED --execute()--> EXECUTED

Signers are identified two ways: authorization compares the raw
``VerifyingKey`` objects, while the signature map is keyed by the
compressed SEC1 hex of the key. The compressed encoding is bijective, so
both notions always denote the same physical signer.

Every public method runs under a per-wallet re-entrant lock; each
mutating call either completes or leaves the wallet untouched.
"""

from __future__ import annotations

import enum
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

from pydantic import ValidationError

from multisig_wallet.config.settings import ReproposalPolicy
from multisig_wallet.crypto.keys import default_context, signature_from_hex
from multisig_wallet.engine.snapshot import PendingTransactionSnapshot, WalletSnapshot
from multisig_wallet.engine.transaction import Transaction
from multisig_wallet.errors.definitions import (
    CryptoError,
    DuplicateSignatureError,
    DuplicateSignerKeyError,
    InsufficientSignaturesError,
    InvalidSignatureError,
    InvalidThresholdError,
    SerializationError,
    TransactionAlreadyExecutedError,
    TransactionAlreadyProposedError,
    TransactionNotFoundError,
    UnauthorizedSignerError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from multisig_wallet.crypto.keys import CryptoContext, PublicKey
    from multisig_wallet.errors.multisig_errors import MultisigError
    from multisig_wallet.metrics.collector import WalletMetrics

logger = logging.getLogger(__name__)


class TransactionStatus(enum.StrEnum):
    """Observable state of a tracked transaction."""

    PROPOSED = "proposed"
    APPROVED = "approved"
    EXECUTED = "executed"


@dataclass
class PendingTransaction:
    """A proposed transaction with the signatures admitted so far.

    Attributes:
        transaction: The proposed transaction.
        signatures: Signer compressed-key hex -> compact signature hex.
        executed: Set once by :meth:`MultisigWallet.execute`; never reset.
    """

    transaction: Transaction
    signatures: dict[str, str] = field(default_factory=dict)
    executed: bool = False

    @property
    def signature_count(self) -> int:
        return len(self.signatures)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict."""
        return {
            "transaction": self.transaction.to_dict(),
            "signatures": dict(self.signatures),
            "executed": self.executed,
        }


@dataclass(frozen=True)
class WalletInfo:
    """Read-only snapshot of the wallet policy and size."""

    threshold: int
    total_signers: int
    pending_count: int


class MultisigWallet:
    """A wallet requiring *threshold* of *authorized_keys* to execute."""

    def __init__(
        self,
        threshold: int,
        authorized_keys: Iterable[PublicKey],
        *,
        reproposal_policy: ReproposalPolicy = ReproposalPolicy.REJECT,
        context: CryptoContext | None = None,
        metrics: WalletMetrics | None = None,
    ) -> None:
        """Create a wallet with a fixed signer set.

        Args:
            threshold: Number of distinct signatures required (M).
            authorized_keys: The N public keys allowed to sign.
            reproposal_policy: What :meth:`propose` does for a known in-flight id.
            context: Crypto context; defaults to the process-wide one.
            metrics: Optional Prometheus metrics sink.

        Raises:
            InvalidThresholdError: If ``threshold`` is not in ``1..N``.
            DuplicateSignerKeyError: If the same key appears twice.
        """
        keys = list(authorized_keys)
        total_signers = len(keys)
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            msg = "threshold must be an integer"
            raise TypeError(msg)
        if threshold < 1 or threshold > total_signers:
            raise InvalidThresholdError(threshold, total_signers)

        self._context = context or default_context()
        self._threshold = threshold
        self._total_signers = total_signers
        self._authorized_keys = keys
        self._authorized_keys_hex = [self._context.public_key_hex(pk) for pk in keys]
        seen: set[str] = set()
        for key_hex in self._authorized_keys_hex:
            if key_hex in seen:
                raise DuplicateSignerKeyError(key_hex)
            seen.add(key_hex)
        self._pending: dict[str, PendingTransaction] = {}
        self._archived_executed: set[str] = set()
        self._policy = ReproposalPolicy(reproposal_policy)
        self._metrics = metrics
        self._lock = threading.RLock()

    # -- Properties ----------------------------------------------------------

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def total_signers(self) -> int:
        return self._total_signers

    @property
    def authorized_keys_hex(self) -> list[str]:
        """Compressed hex of every authorized key, in construction order."""
        return list(self._authorized_keys_hex)

    @property
    def reproposal_policy(self) -> ReproposalPolicy:
        return self._policy

    # -- Authorization -------------------------------------------------------

    def is_authorized(self, public_key: PublicKey) -> bool:
        """Check key-material equality against the authorized set."""
        return any(pk == public_key for pk in self._authorized_keys)

    # -- Proposal ------------------------------------------------------------

    def propose(self, transaction: Transaction) -> None:
        """Start collecting signatures for *transaction*.

        Raises:
            TransactionAlreadyExecutedError: If the id was already executed.
            TransactionAlreadyProposedError: If the id is in flight and the
                policy is ``reject``.
        """
        tx_id = transaction.id
        with self._lock:
            existing = self._pending.get(tx_id)
            if tx_id in self._archived_executed or (existing is not None and existing.executed):
                logger.warning("Rejected re-proposal of executed transaction %s", tx_id)
                raise TransactionAlreadyExecutedError(tx_id)
            if existing is not None:
                if self._policy is ReproposalPolicy.REJECT:
                    logger.debug("Rejected re-proposal of in-flight transaction %s", tx_id)
                    raise TransactionAlreadyProposedError(tx_id)
                logger.warning(
                    "Overwriting in-flight transaction %s, discarding %d signature(s)",
                    tx_id,
                    existing.signature_count,
                )
            self._pending[tx_id] = PendingTransaction(transaction=transaction)
            if self._metrics is not None:
                self._metrics.record_proposal()
        logger.info("Proposed transaction %s (amount=%d)", tx_id, transaction.amount)

    # -- Signature admission -------------------------------------------------

    def add_signature(self, tx_id: str, signature: bytes | str, signer_public_key: PublicKey) -> None:
        """Admit one signer's signature for a pending transaction.

        Checks run in a fixed order: authorization, existence, execution
        state, cryptographic validity, duplication.

        Raises:
            UnauthorizedSignerError: Signer is not in the authorized set.
            TransactionNotFoundError: Unknown ``tx_id``.
            TransactionAlreadyExecutedError: Transaction already executed.
            InvalidSignatureError: Signature does not verify.
            DuplicateSignatureError: Signer already signed this transaction.
        """
        start = time.monotonic()
        try:
            with self._lock:
                signer_hex = self._admit(tx_id, signature, signer_public_key)
        except (
            UnauthorizedSignerError,
            TransactionNotFoundError,
            TransactionAlreadyExecutedError,
            InvalidSignatureError,
            DuplicateSignatureError,
        ) as exc:
            self._record_rejection(exc)
            raise
        finally:
            if self._metrics is not None:
                self._metrics.observe_add_signature(time.monotonic() - start)
        logger.info("Admitted signature from %s for transaction %s", signer_hex, tx_id)

    def _admit(self, tx_id: str, signature: bytes | str, signer_public_key: PublicKey) -> str:
        if not self.is_authorized(signer_public_key):
            raise UnauthorizedSignerError
        pending = self._require(tx_id)
        if pending.executed:
            raise TransactionAlreadyExecutedError(tx_id)

        sig_bytes = self._signature_bytes(signature)
        message = pending.transaction.canonical_bytes()
        if sig_bytes is None or not self._context.verify(message, sig_bytes, signer_public_key):
            raise InvalidSignatureError

        signer_hex = self._context.public_key_hex(signer_public_key)
        if signer_hex in pending.signatures:
            raise DuplicateSignatureError

        pending.signatures[signer_hex] = sig_bytes.hex()
        if self._metrics is not None:
            self._metrics.record_signature()
        return signer_hex

    @staticmethod
    def _signature_bytes(signature: bytes | str) -> bytes | None:
        """Accept raw or hex signatures; ``None`` when undecodable."""
        if isinstance(signature, str):
            try:
                return signature_from_hex(signature)
            except CryptoError:
                return None
        if isinstance(signature, (bytes, bytearray)):
            return bytes(signature)
        return None

    def _record_rejection(self, exc: MultisigError) -> None:
        logger.debug("Rejected signature: %s", exc.message)
        if self._metrics is not None:
            self._metrics.record_rejection(exc.code)

    # -- Queries -------------------------------------------------------------

    def _require(self, tx_id: str) -> PendingTransaction:
        pending = self._pending.get(tx_id)
        if pending is None:
            raise TransactionNotFoundError(tx_id)
        return pending

    def signature_count(self, tx_id: str) -> int:
        """Number of distinct admitted signatures.

        Raises:
            TransactionNotFoundError: Unknown ``tx_id``.
        """
        with self._lock:
            return self._require(tx_id).signature_count

    def has_enough_signatures(self, tx_id: str) -> bool:
        """Whether the admitted signatures reach the threshold.

        Raises:
            TransactionNotFoundError: Unknown ``tx_id``.
        """
        with self._lock:
            return self._require(tx_id).signature_count >= self._threshold

    def status(self, tx_id: str) -> TransactionStatus:
        """Current state of a tracked transaction.

        Raises:
            TransactionNotFoundError: Unknown ``tx_id``.
        """
        with self._lock:
            pending = self._require(tx_id)
            if pending.executed:
                return TransactionStatus.EXECUTED
            if pending.signature_count >= self._threshold:
                return TransactionStatus.APPROVED
            return TransactionStatus.PROPOSED

    def get_transaction(self, tx_id: str) -> Transaction:
        with self._lock:
            return self._require(tx_id).transaction

    def signers(self, tx_id: str) -> list[str]:
        """Compressed hex keys of the signers admitted for ``tx_id``."""
        with self._lock:
            return list(self._require(tx_id).signatures)

    def info(self) -> WalletInfo:
        """Policy snapshot; ``pending_count`` includes executed records."""
        with self._lock:
            return WalletInfo(
                threshold=self._threshold,
                total_signers=self._total_signers,
                pending_count=len(self._pending),
            )

    # -- Execution -----------------------------------------------------------

    def execute(self, tx_id: str) -> Transaction:
        """Mark an approved transaction executed and return it.

        Raises:
            TransactionNotFoundError: Unknown ``tx_id``.
            InsufficientSignaturesError: Fewer signatures than the threshold.
            TransactionAlreadyExecutedError: Already executed.
        """
        with self._lock:
            pending = self._require(tx_id)
            if pending.signature_count < self._threshold:
                logger.debug(
                    "Execution of %s refused: %d/%d signatures",
                    tx_id,
                    pending.signature_count,
                    self._threshold,
                )
                raise InsufficientSignaturesError(self._threshold, pending.signature_count)
            if pending.executed:
                raise TransactionAlreadyExecutedError(tx_id)
            pending.executed = True
            if self._metrics is not None:
                self._metrics.record_execution()
            transaction = pending.transaction
        logger.info("Executed transaction %s", tx_id)
        return transaction

    # -- Retention -----------------------------------------------------------

    def archive_executed(self) -> list[PendingTransaction]:
        """Remove executed records from the pending map and return them.

        Archived ids stay known as executed, so they cannot be re-proposed.
        """
        with self._lock:
            archived = [p for p in self._pending.values() if p.executed]
            for pending in archived:
                tx_id = pending.transaction.id
                del self._pending[tx_id]
                self._archived_executed.add(tx_id)
        if archived:
            logger.info("Archived %d executed transaction(s)", len(archived))
        return archived

    # -- Snapshot codec ------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize the full wallet state to a JSON-safe dict."""
        with self._lock:
            return {
                "threshold": self._threshold,
                "total_signers": self._total_signers,
                "authorized_keys_hex": list(self._authorized_keys_hex),
                "pending_transactions": {
                    tx_id: pending.to_dict() for tx_id, pending in self._pending.items()
                },
                "archived_executed_ids": sorted(self._archived_executed),
            }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(
        cls,
        data: Any,
        *,
        reproposal_policy: ReproposalPolicy = ReproposalPolicy.REJECT,
        context: CryptoContext | None = None,
        metrics: WalletMetrics | None = None,
    ) -> Self:
        """Rebuild a wallet from :meth:`to_dict` output.

        Keys are decoded from ``authorized_keys_hex`` only.

        Raises:
            SerializationError: If the document is malformed or inconsistent,
                or a stored signature does not verify.
            InvalidThresholdError: If the stored threshold is out of range.
            DuplicateSignerKeyError: If a key is listed twice.
        """
        try:
            snap = WalletSnapshot.model_validate(data)
        except ValidationError as exc:
            raise SerializationError(f"invalid wallet snapshot: {exc}") from exc

        ctx = context or default_context()
        try:
            keys = [ctx.public_key_from_hex(h) for h in snap.authorized_keys_hex]
        except CryptoError as exc:
            raise SerializationError(exc.message) from exc
        if snap.total_signers != len(keys):
            msg = f"total_signers={snap.total_signers} but {len(keys)} keys listed"
            raise SerializationError(msg)

        wallet = cls(
            snap.threshold,
            keys,
            reproposal_policy=reproposal_policy,
            context=ctx,
            metrics=metrics,
        )
        authorized = dict(zip(wallet._authorized_keys_hex, keys, strict=True))
        for tx_id, record in snap.pending_transactions.items():
            wallet._pending[tx_id] = cls._restore_pending(
                tx_id, record, authorized, snap.threshold, ctx
            )
        wallet._archived_executed.update(snap.archived_executed_ids)
        return wallet

    @staticmethod
    def _restore_pending(
        tx_id: str,
        record: PendingTransactionSnapshot,
        authorized: dict[str, PublicKey],
        threshold: int,
        ctx: CryptoContext,
    ) -> PendingTransaction:
        transaction = Transaction.from_dict(record.transaction.model_dump(), context=ctx)
        if transaction.id != tx_id:
            msg = f"pending key {tx_id} does not match transaction id {transaction.id}"
            raise SerializationError(msg)
        message = transaction.canonical_bytes()
        signatures: dict[str, str] = {}
        for signer_hex, sig_hex in record.signatures.items():
            public_key = authorized.get(signer_hex)
            if public_key is None:
                msg = f"signature from unauthorized signer {signer_hex} in {tx_id}"
                raise SerializationError(msg)
            try:
                sig = signature_from_hex(sig_hex)
            except CryptoError as exc:
                raise SerializationError(exc.message) from exc
            if not ctx.verify(message, sig, public_key):
                msg = f"signature from {signer_hex} does not verify for {tx_id}"
                raise SerializationError(msg)
            signatures[signer_hex] = sig.hex()
        if record.executed and len(signatures) < threshold:
            msg = (
                f"transaction {tx_id} marked executed with {len(signatures)} "
                f"of {threshold} required signatures"
            )
            raise SerializationError(msg)
        return PendingTransaction(
            transaction=transaction,
            signatures=signatures,
            executed=record.executed,
        )

    @classmethod
    def from_json(cls, text: str | bytes, **kwargs: Any) -> Self:
        """Rebuild a wallet from :meth:`to_json` output."""
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            raise SerializationError(f"wallet snapshot is not JSON: {exc}") from exc
        return cls.from_dict(data, **kwargs)
