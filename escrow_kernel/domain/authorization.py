"""
Authorization predicates -- pure role checks.

Responsibility:
    Answers "is this caller the admin / the client / the contractor of
    this escrow".  Principals are opaque strings compared for equality.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The stateful admin cell lives in
    ``services.authorization_service``; these predicates receive the
    current admin as an argument.
"""

from escrow_kernel.domain.dtos import EscrowInfo


def is_admin(caller: str, admin: str | None) -> bool:
    return admin is not None and caller == admin


def is_escrow_client(caller: str, escrow: EscrowInfo | None) -> bool:
    return escrow is not None and caller == escrow.client


def is_escrow_contractor(caller: str, escrow: EscrowInfo | None) -> bool:
    return escrow is not None and caller == escrow.contractor


def can_manage_funds(caller: str, escrow: EscrowInfo, admin: str | None) -> bool:
    """Client or admin: add/release payments, close the escrow."""
    return is_escrow_client(caller, escrow) or is_admin(caller, admin)


def can_raise_dispute(caller: str, escrow: EscrowInfo) -> bool:
    """Only the parties themselves may dispute; the admin may not."""
    return is_escrow_client(caller, escrow) or is_escrow_contractor(caller, escrow)
