"""Tests for wallet snapshot encoding — MultisigWallet.to_dict / from_dict."""

from __future__ import annotations

import json

import pytest
from ecdsa import SECP256k1

from multisig_wallet.config.settings import ReproposalPolicy
from multisig_wallet.engine.transaction import Transaction
from multisig_wallet.engine.wallet import MultisigWallet, TransactionStatus
from multisig_wallet.errors.definitions import (
    DuplicateSignatureError,
    DuplicateSignerKeyError,
    InvalidThresholdError,
    SerializationError,
    TransactionAlreadyExecutedError,
)


@pytest.fixture
def signed_wallet(wallet, proposed, keypairs):
    """2-of-3 wallet with one signature on ``proposed``."""
    sk, pk = keypairs[0]
    wallet.add_signature(proposed.id, proposed.sign(sk), pk)
    return wallet


class TestToDict:
    def test_shape(self, signed_wallet, proposed, ctx, keypairs):
        data = signed_wallet.to_dict()
        assert data["threshold"] == 2
        assert data["total_signers"] == 3
        assert data["authorized_keys_hex"] == [ctx.public_key_hex(pk) for _, pk in keypairs]
        assert list(data["pending_transactions"]) == [proposed.id]
        record = data["pending_transactions"][proposed.id]
        assert record["executed"] is False
        assert record["transaction"] == proposed.to_dict()
        assert list(record["signatures"]) == [ctx.public_key_hex(keypairs[0][1])]
        assert data["archived_executed_ids"] == []

    def test_json_serializable(self, signed_wallet):
        assert json.loads(signed_wallet.to_json()) == signed_wallet.to_dict()


class TestRoundTrip:
    def test_state_preserved(self, signed_wallet, proposed):
        restored = MultisigWallet.from_json(signed_wallet.to_json())
        assert restored.info() == signed_wallet.info()
        assert restored.authorized_keys_hex == signed_wallet.authorized_keys_hex
        assert restored.signature_count(proposed.id) == 1
        assert restored.get_transaction(proposed.id) == proposed
        assert restored.to_dict() == signed_wallet.to_dict()

    def test_restored_wallet_rejects_duplicate(self, signed_wallet, proposed, keypairs):
        restored = MultisigWallet.from_dict(signed_wallet.to_dict())
        sk, pk = keypairs[0]
        with pytest.raises(DuplicateSignatureError):
            restored.add_signature(proposed.id, proposed.sign(sk), pk)

    def test_restored_wallet_completes(self, signed_wallet, proposed, keypairs):
        restored = MultisigWallet.from_dict(signed_wallet.to_dict())
        sk, pk = keypairs[1]
        restored.add_signature(proposed.id, proposed.sign(sk), pk)
        assert restored.execute(proposed.id) == proposed

    def test_executed_flag_survives(self, signed_wallet, proposed, keypairs):
        sk, pk = keypairs[2]
        signed_wallet.add_signature(proposed.id, proposed.sign(sk), pk)
        signed_wallet.execute(proposed.id)
        restored = MultisigWallet.from_dict(signed_wallet.to_dict())
        assert restored.status(proposed.id) == TransactionStatus.EXECUTED
        with pytest.raises(TransactionAlreadyExecutedError):
            restored.execute(proposed.id)

    def test_archived_ids_survive(self, signed_wallet, proposed, keypairs):
        sk, pk = keypairs[1]
        signed_wallet.add_signature(proposed.id, proposed.sign(sk), pk)
        signed_wallet.execute(proposed.id)
        signed_wallet.archive_executed()
        restored = MultisigWallet.from_dict(signed_wallet.to_dict())
        assert restored.info().pending_count == 0
        with pytest.raises(TransactionAlreadyExecutedError):
            restored.propose(proposed)

    def test_policy_is_a_load_option(self, signed_wallet):
        restored = MultisigWallet.from_dict(
            signed_wallet.to_dict(), reproposal_policy=ReproposalPolicy.OVERWRITE
        )
        assert restored.reproposal_policy is ReproposalPolicy.OVERWRITE

    def test_empty_wallet(self, wallet):
        restored = MultisigWallet.from_dict(wallet.to_dict())
        assert restored.info().pending_count == 0

    def test_non_ascii_metadata(self, wallet, keypairs):
        tx = Transaction.create("r", 1, "naïve ✓")
        wallet.propose(tx)
        restored = MultisigWallet.from_json(wallet.to_json().encode())
        assert restored.get_transaction(tx.id).metadata == "naïve ✓"


class TestMalformed:
    def test_not_json(self):
        with pytest.raises(SerializationError):
            MultisigWallet.from_json("{not json")

    def test_not_an_object(self):
        with pytest.raises(SerializationError):
            MultisigWallet.from_dict([1, 2, 3])

    def test_missing_field(self, wallet):
        data = wallet.to_dict()
        del data["threshold"]
        with pytest.raises(SerializationError):
            MultisigWallet.from_dict(data)

    def test_bad_public_key(self, wallet):
        data = wallet.to_dict()
        data["authorized_keys_hex"][0] = "zz"
        with pytest.raises(SerializationError):
            MultisigWallet.from_dict(data)

    def test_signer_count_mismatch(self, wallet):
        data = wallet.to_dict()
        data["total_signers"] = 4
        with pytest.raises(SerializationError, match="total_signers"):
            MultisigWallet.from_dict(data)

    def test_threshold_out_of_range(self, wallet):
        data = wallet.to_dict()
        data["threshold"] = 5
        with pytest.raises(InvalidThresholdError):
            MultisigWallet.from_dict(data)

    def test_duplicate_keys(self, wallet):
        data = wallet.to_dict()
        data["authorized_keys_hex"][1] = data["authorized_keys_hex"][0]
        with pytest.raises(DuplicateSignerKeyError):
            MultisigWallet.from_dict(data)

    def test_forged_signatures_under_authorized_keys(self, wallet, proposed):
        data = wallet.to_dict()
        keys = data["authorized_keys_hex"]
        record = data["pending_transactions"][proposed.id]
        record["signatures"] = {keys[0]: "11" * 64, keys[1]: "22" * 64}
        with pytest.raises(SerializationError, match="does not verify"):
            MultisigWallet.from_dict(data)

    def test_signature_moved_to_another_signer(self, signed_wallet, proposed):
        data = signed_wallet.to_dict()
        keys = data["authorized_keys_hex"]
        sigs = data["pending_transactions"][proposed.id]["signatures"]
        sigs[keys[1]] = sigs.pop(keys[0])
        with pytest.raises(SerializationError, match="does not verify"):
            MultisigWallet.from_dict(data)

    def test_signature_for_other_transaction(self, signed_wallet, proposed, keypairs, ctx):
        other = Transaction.create("elsewhere", 5)
        data = signed_wallet.to_dict()
        sigs = data["pending_transactions"][proposed.id]["signatures"]
        sigs[ctx.public_key_hex(keypairs[1][1])] = other.sign(keypairs[1][0]).hex()
        with pytest.raises(SerializationError, match="does not verify"):
            MultisigWallet.from_dict(data)

    def test_high_s_signature(self, signed_wallet, proposed):
        data = signed_wallet.to_dict()
        sigs = data["pending_transactions"][proposed.id]["signatures"]
        signer = next(iter(sigs))
        raw = bytes.fromhex(sigs[signer])
        s = int.from_bytes(raw[32:], "big")
        sigs[signer] = (raw[:32] + (SECP256k1.order - s).to_bytes(32, "big")).hex()
        with pytest.raises(SerializationError, match="does not verify"):
            MultisigWallet.from_dict(data)

    def test_executed_with_too_few_signatures(self, signed_wallet, proposed):
        data = signed_wallet.to_dict()
        data["pending_transactions"][proposed.id]["executed"] = True
        with pytest.raises(SerializationError, match="marked executed"):
            MultisigWallet.from_dict(data)

    def test_pending_key_mismatch(self, signed_wallet, proposed):
        data = signed_wallet.to_dict()
        record = data["pending_transactions"].pop(proposed.id)
        data["pending_transactions"]["ff" * 32] = record
        with pytest.raises(SerializationError, match="does not match"):
            MultisigWallet.from_dict(data)

    def test_tampered_transaction(self, signed_wallet, proposed):
        data = signed_wallet.to_dict()
        data["pending_transactions"][proposed.id]["transaction"]["amount"] = 1
        with pytest.raises(SerializationError):
            MultisigWallet.from_dict(data)

    def test_unauthorized_signer_in_record(self, signed_wallet, proposed, outsider, ctx):
        data = signed_wallet.to_dict()
        sigs = data["pending_transactions"][proposed.id]["signatures"]
        sigs[ctx.public_key_hex(outsider[1])] = proposed.sign(outsider[0]).hex()
        with pytest.raises(SerializationError, match="unauthorized"):
            MultisigWallet.from_dict(data)

    def test_bad_signature_hex(self, signed_wallet, proposed):
        data = signed_wallet.to_dict()
        sigs = data["pending_transactions"][proposed.id]["signatures"]
        signer = next(iter(sigs))
        sigs[signer] = "abcd"
        with pytest.raises(SerializationError):
            MultisigWallet.from_dict(data)

    def test_extra_field(self, wallet):
        data = {**wallet.to_dict(), "owner": "me"}
        with pytest.raises(SerializationError):
            MultisigWallet.from_dict(data)
