"""
Ledger Invariants Contract.

These invariants are structural law.  They are enforced by the escrow
services and re-verifiable from stored rows at any time.  No
``EscrowPolicy`` toggle may override them.

This module exists solely to declare the invariants explicitly.  The
enforcement is distributed across PaymentLedger, EscrowRegistry and
EscrowSelector.verify_escrow().
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    RELEASED_WITHIN_TOTAL = "released_within_total"
    """released_amount <= total_amount for every escrow.  Enforced by
    PaymentLedger.release_payment() when the total limit is on, and
    verified by EscrowSelector.verify_escrow()."""

    RELEASED_EQUALS_SUM = "released_equals_sum"
    """released_amount equals the sum of amounts over the escrow's
    released payments.  Both sides change in one savepoint."""

    PAYMENT_MONOTONICITY = "payment_monotonicity"
    """A payment moves PENDING -> RELEASED exactly once and a released
    payment never changes."""

    ESCROW_PARTIES_IMMUTABLE = "escrow_parties_immutable"
    """client, contractor and total_amount are fixed at creation."""

    CLOSED_IS_TERMINAL = "closed_is_terminal"
    """No transition leaves CLOSED."""

    PAYMENT_HAS_PARENT = "payment_has_parent"
    """A payment never exists without its escrow.  Enforced by the
    payments.escrow_id foreign key."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = ("escrow_config",)
