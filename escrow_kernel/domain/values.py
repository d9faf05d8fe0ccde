"""
Value enums for the escrow ledger.

Responsibility:
    Defines the status vocabularies for escrows and payments and the
    stable numeric error codes that every failed operation reports.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Imported by exceptions, models,
    services and selectors alike.

Invariants enforced:
    - Error codes 100-105 are wire-stable and must never be renumbered.
"""

from enum import Enum, IntEnum, unique


@unique
class EscrowStatus(str, Enum):
    """Escrow lifecycle status.

    Contract: ACTIVE -> CLOSED is terminal.  ACTIVE -> DISPUTED is left
    only through admin resolution.
    """

    ACTIVE = "active"
    DISPUTED = "disputed"
    CLOSED = "closed"


@unique
class PaymentStatus(str, Enum):
    """Payment lifecycle status.  PENDING -> RELEASED, never reversed."""

    PENDING = "pending"
    RELEASED = "released"


@unique
class ErrorCode(IntEnum):
    """Stable numeric codes carried by every failed operation."""

    UNAUTHORIZED = 100
    ALREADY_EXISTS = 101
    NOT_FOUND = 102
    INSUFFICIENT_FUNDS = 103
    INVALID_STATE = 104
    INVALID_ARGUMENT = 105


# Statuses an admin may resume a disputed escrow into.
RESOLUTION_STATUSES: frozenset[str] = frozenset(
    {EscrowStatus.ACTIVE.value, EscrowStatus.CLOSED.value}
)

# Storage bounds: amounts are signed 64-bit, keys and principals are
# bounded strings.
MAX_AMOUNT = 2**63 - 1
MAX_ID_LENGTH = 100
MAX_PRINCIPAL_LENGTH = 128
