"""MultisigError — base exception class for all multisig-wallet errors."""

from __future__ import annotations


class MultisigError(Exception):
    """Base error for all multisig wallet operations.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code string.
    """

    def __init__(self, message: str, *, code: str = "multisig-error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code
