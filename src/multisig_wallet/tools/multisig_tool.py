#!/usr/bin/env python3
"""Multisig Tool — run the M-of-N approval workflow from the command line.

    # End-to-end demo: keys -> wallet -> propose -> sign -> execute
    python -m multisig_wallet.tools.multisig_tool demo [threshold] [signers] [amount]

    # Print fresh secp256k1 key pairs as hex
    python -m multisig_wallet.tools.multisig_tool keygen [count]

    # Run the demo and print the resulting wallet snapshot JSON
    python -m multisig_wallet.tools.multisig_tool snapshot [threshold] [signers]

Defaults for threshold and signers come from ``AppConfig.wallet``.
"""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING

from multisig_wallet.config.settings import AppConfig, configure_logging
from multisig_wallet.crypto.keys import default_context
from multisig_wallet.engine.transaction import Transaction
from multisig_wallet.engine.wallet import MultisigWallet
from multisig_wallet.errors.multisig_errors import MultisigError
from multisig_wallet.metrics.collector import WalletMetrics

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

_DEFAULT_AMOUNT = 1000


def _run_workflow(
    config: AppConfig, threshold: int, signers: int, amount: int, *, verbose: bool
) -> MultisigWallet:
    """Drive one transaction from proposal to execution."""
    ctx = default_context()
    say: Callable[[str], None] = print if verbose else (lambda _msg: None)

    say(f"Generating {signers} key pairs...")
    keypairs = [ctx.generate_keypair() for _ in range(signers)]
    say(f"✓ Generated {signers} key pairs")
    say("")

    say(f"Creating {threshold}-of-{signers} multisig wallet...")
    metrics = WalletMetrics() if config.metrics.enabled else None
    wallet = MultisigWallet(
        threshold,
        [pk for _, pk in keypairs],
        reproposal_policy=config.wallet.reproposal_policy,
        context=ctx,
        metrics=metrics,
    )
    info = wallet.info()
    say("✓ Wallet created:")
    say(f"  - Threshold:     {info.threshold}")
    say(f"  - Total signers: {info.total_signers}")
    say("")

    say("Creating transaction...")
    recipient = ctx.public_key_hex(keypairs[-1][1])
    tx = Transaction.create(recipient, amount, "Test multisig transaction", context=ctx)
    say("✓ Transaction created:")
    say(f"  - ID:       {tx.id}")
    say(f"  - Amount:   {tx.amount}")
    say(f"  - Metadata: {tx.metadata}")
    say("")

    wallet.propose(tx)
    say("✓ Transaction proposed")
    say("")

    for i, (sk, pk) in enumerate(keypairs, start=1):
        if wallet.has_enough_signatures(tx.id):
            break
        say(f"Signing with key {i}...")
        wallet.add_signature(tx.id, tx.sign(sk, context=ctx), pk)
        say(f"✓ Signature added ({wallet.signature_count(tx.id)}/{info.threshold})")

    say("")
    say("Executing transaction...")
    executed = wallet.execute(tx.id)
    say("✓ Transaction executed successfully!")
    say(f"  - ID:     {executed.id}")
    say(f"  - Amount: {executed.amount}")
    return wallet


def _cmd_demo(config: AppConfig, args: Sequence[str]) -> None:
    threshold = int(args[0]) if len(args) > 0 else config.wallet.default_threshold
    signers = int(args[1]) if len(args) > 1 else config.wallet.default_signers
    amount = int(args[2]) if len(args) > 2 else _DEFAULT_AMOUNT

    print("=" * 60)
    print("MULTISIG WALLET DEMO")
    print("=" * 60)
    print()
    _run_workflow(config, threshold, signers, amount, verbose=True)


def _cmd_keygen(config: AppConfig, args: Sequence[str]) -> None:
    count = int(args[0]) if args else 1
    ctx = default_context()
    for i in range(count):
        sk, pk = ctx.generate_keypair()
        print(f"[{i}] public: {ctx.public_key_hex(pk)}")
        print(f"    secret: {ctx.secret_key_hex(sk)}")


def _cmd_snapshot(config: AppConfig, args: Sequence[str]) -> None:
    threshold = int(args[0]) if len(args) > 0 else config.wallet.default_threshold
    signers = int(args[1]) if len(args) > 1 else config.wallet.default_signers
    wallet = _run_workflow(config, threshold, signers, _DEFAULT_AMOUNT, verbose=False)
    print(json.dumps(wallet.to_dict(), indent=2, ensure_ascii=False))


_COMMANDS: dict[str, Callable[[AppConfig, Sequence[str]], None]] = {
    "demo": _cmd_demo,
    "keygen": _cmd_keygen,
    "snapshot": _cmd_snapshot,
}


def _usage() -> None:
    print(__doc__)


def main(argv: Sequence[str] | None = None, config: AppConfig | None = None) -> int:
    """CLI entry point; returns the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] not in _COMMANDS:
        _usage()
        return 1

    config = config or AppConfig()
    configure_logging(config.log)
    try:
        _COMMANDS[args[0]](config, args[1:])
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    except MultisigError as exc:
        print(f"error [{exc.code}]: {exc.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
