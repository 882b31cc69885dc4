"""Wallet snapshot Pydantic schemas.

These define the serialized document shape of a wallet: the policy, the
hex-encoded authorized keys, and every pending record with its signatures
and executed flag. Raw key objects are never part of the document; they
are rebuilt from ``authorized_keys_hex`` on load.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr

U64 = Annotated[StrictInt, Field(ge=0, le=2**64 - 1)]


class TransactionSnapshot(BaseModel):
    """A transaction in canonical field order."""

    model_config = ConfigDict(extra="forbid")

    id: StrictStr
    recipient: StrictStr
    amount: U64
    metadata: StrictStr | None = None
    timestamp: U64
    nonce: U64


class PendingTransactionSnapshot(BaseModel):
    """A proposed transaction with its admitted signatures."""

    model_config = ConfigDict(extra="forbid")

    transaction: TransactionSnapshot
    signatures: dict[StrictStr, StrictStr] = Field(default_factory=dict)
    executed: StrictBool = False


class WalletSnapshot(BaseModel):
    """Complete serialized wallet state."""

    model_config = ConfigDict(extra="forbid")

    threshold: StrictInt
    total_signers: StrictInt
    authorized_keys_hex: list[StrictStr]
    pending_transactions: dict[StrictStr, PendingTransactionSnapshot] = Field(default_factory=dict)
    archived_executed_ids: list[StrictStr] = Field(default_factory=list)
