"""
PAPERCHAIN Error Taxonomy

Every rejected registry transition is reported with one stable numeric code.
Registry codes live in the 100 range; fee-transfer failures reported by the
ledger keep the small codes of the native token transfer they stand in for.

    100  NOT_AUTHORIZED          caller may not perform the operation
    101  DUPLICATE_HASH          paper hash already registered
    102  INVALID_HASH            empty or oversized paper hash
    103  PAPER_NOT_FOUND         no paper under that hash
    104  INVALID_FUNDING_GOAL    funding goal not a positive integer
    105  INVALID_TITLE           title outside 1..100 characters
    106  INVALID_DESCRIPTION     description outside 1..500 characters
    107  INVALID_PRINCIPAL       null identity supplied as authority
    108  ALREADY_FUNDED          reserved
    109  FUNDING_NOT_ACTIVE      reserved

The two reserved codes are part of the published taxonomy so that clients can
decode them, but no current operation produces them.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, FrozenSet, Union


class RegistryError(IntEnum):
    """Failure codes returned by registry operations."""
    NOT_AUTHORIZED = 100
    DUPLICATE_HASH = 101
    INVALID_HASH = 102
    PAPER_NOT_FOUND = 103
    INVALID_FUNDING_GOAL = 104
    INVALID_TITLE = 105
    INVALID_DESCRIPTION = 106
    INVALID_PRINCIPAL = 107
    ALREADY_FUNDED = 108
    FUNDING_NOT_ACTIVE = 109

    @property
    def reserved(self) -> bool:
        return self in RESERVED_ERRORS


class TransferError(IntEnum):
    """Failure codes returned by the ledger's transfer primitive."""
    INSUFFICIENT_BALANCE = 1
    SAME_SENDER_AND_RECIPIENT = 2
    NON_POSITIVE_AMOUNT = 3


RESERVED_ERRORS: FrozenSet[RegistryError] = frozenset({
    RegistryError.ALREADY_FUNDED,
    RegistryError.FUNDING_NOT_ACTIVE,
})

ErrorCode = Union[RegistryError, TransferError]


# =============================================================================
# EXCEPTIONS
# =============================================================================

class PaperchainError(Exception):
    """Base exception for the package."""
    pass


class ValidationError(PaperchainError):
    """A single input failed validation."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class InvariantViolation(PaperchainError):
    """Registry state invariant violated."""
    pass


class RejectedTransition(PaperchainError):
    """Raised when a failed result is unwrapped."""

    def __init__(self, code: ErrorCode):
        self.code = code
        super().__init__(f"{code.name} ({int(code)})")


def describe(code: ErrorCode) -> str:
    """Human-readable label, e.g. ``"DUPLICATE_HASH (101)"``."""
    return f"{code.name} ({int(code)})"
