"""Shared test fixtures for the multisig-wallet test suite."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from multisig_wallet.crypto.keys import CryptoContext, default_context
from multisig_wallet.engine.transaction import Transaction
from multisig_wallet.engine.wallet import MultisigWallet

if TYPE_CHECKING:
    from multisig_wallet.crypto.keys import PublicKey, SecretKey

# Fixed field values for deterministic transactions
FIXED_TIMESTAMP = 1_700_000_000
FIXED_NONCE = 0x0123456789ABCDEF


@pytest.fixture
def ctx() -> CryptoContext:
    """The process-wide secp256k1 context."""
    return default_context()


@pytest.fixture
def keypairs(ctx: CryptoContext) -> list[tuple[SecretKey, PublicKey]]:
    """Three fresh signer key pairs."""
    return [ctx.generate_keypair() for _ in range(3)]


@pytest.fixture
def outsider(ctx: CryptoContext) -> tuple[SecretKey, PublicKey]:
    """A key pair that is not part of any wallet."""
    return ctx.generate_keypair()


@pytest.fixture
def wallet(keypairs: list[tuple[SecretKey, PublicKey]]) -> MultisigWallet:
    """A 2-of-3 wallet over ``keypairs``."""
    return MultisigWallet(2, [pk for _, pk in keypairs])


@pytest.fixture
def tx() -> Transaction:
    """A deterministic transaction for 1000 units."""
    return Transaction.create(
        "recipient",
        1000,
        "Test multisig transaction",
        timestamp=FIXED_TIMESTAMP,
        nonce=FIXED_NONCE,
    )


@pytest.fixture
def proposed(wallet: MultisigWallet, tx: Transaction) -> Transaction:
    """``tx`` already proposed to ``wallet``."""
    wallet.propose(tx)
    return tx
