"""
Escrow transition guards -- pure state gating and argument checks.

Responsibility:
    Encodes the escrow and payment state machines as data plus the guard
    functions the services call before mutating anything.  Every guard
    either returns normally or raises a typed ``EscrowKernelError``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

State machine:

    active   --close_escrow(client|admin)--------> closed     [terminal]
    active   --dispute_escrow(client|contractor)--> disputed
    disputed --resolve_dispute(admin, s)----------> s          [active | closed]
    pending  --release_payment(client|admin)------> released   [terminal]
"""

from escrow_kernel.domain.dtos import EscrowInfo, PaymentInfo
from escrow_kernel.domain.values import (
    MAX_AMOUNT,
    MAX_ID_LENGTH,
    MAX_PRINCIPAL_LENGTH,
    RESOLUTION_STATUSES,
    EscrowStatus,
    PaymentStatus,
)
from escrow_kernel.exceptions import (
    EscrowNotActiveError,
    EscrowNotDisputedError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidIdentifierError,
    InvalidPrincipalError,
    InvalidResolutionStatusError,
    PaymentNotPendingError,
)

# operation -> (required status, resulting status).  None means the admin
# chooses; an unchanged status means the operation works under the escrow.
ESCROW_TRANSITIONS: dict[str, tuple[EscrowStatus, EscrowStatus | None]] = {
    "close_escrow": (EscrowStatus.ACTIVE, EscrowStatus.CLOSED),
    "dispute_escrow": (EscrowStatus.ACTIVE, EscrowStatus.DISPUTED),
    "resolve_dispute": (EscrowStatus.DISPUTED, None),
    "add_payment": (EscrowStatus.ACTIVE, EscrowStatus.ACTIVE),
    "release_payment": (EscrowStatus.ACTIVE, EscrowStatus.ACTIVE),
}

# add_payment only reaches an existing payment when overwriting it.
PAYMENT_TRANSITIONS: dict[str, tuple[PaymentStatus, PaymentStatus]] = {
    "add_payment": (PaymentStatus.PENDING, PaymentStatus.PENDING),
    "release_payment": (PaymentStatus.PENDING, PaymentStatus.RELEASED),
}

MAX_STATUS_LENGTH = 50


def validate_amount(field: str, amount: object) -> int:
    """Amounts are integers in 0..MAX_AMOUNT; bool is rejected."""
    if (
        isinstance(amount, bool)
        or not isinstance(amount, int)
        or amount < 0
        or amount > MAX_AMOUNT
    ):
        raise InvalidAmountError(field, amount)
    return amount


def validate_identifier(field: str, value: object) -> str:
    if not isinstance(value, str) or len(value) > MAX_ID_LENGTH:
        raise InvalidIdentifierError(field, value, MAX_ID_LENGTH)
    return value


def validate_principal(field: str, principal: object) -> str:
    if (
        not isinstance(principal, str)
        or not principal
        or len(principal) > MAX_PRINCIPAL_LENGTH
    ):
        raise InvalidPrincipalError(field, principal)
    return principal


def require_escrow_status(operation: str, escrow: EscrowInfo) -> EscrowStatus | None:
    """
    Check ``escrow`` may undergo ``operation``.

    Returns:
        The status the escrow moves to, or None when the admin chooses it.

    Raises:
        EscrowNotDisputedError: operation needs a disputed escrow.
        EscrowNotActiveError: operation needs an active escrow.
    """
    required, target = ESCROW_TRANSITIONS[operation]
    if escrow.status != required.value:
        if required is EscrowStatus.DISPUTED:
            raise EscrowNotDisputedError(escrow.escrow_id, escrow.status)
        raise EscrowNotActiveError(escrow.escrow_id, escrow.status)
    return target


def require_payment_status(operation: str, payment: PaymentInfo) -> PaymentStatus:
    required, target = PAYMENT_TRANSITIONS[operation]
    if payment.status != required.value:
        raise PaymentNotPendingError(
            payment.escrow_id, payment.payment_id, payment.status
        )
    return target


def require_funds(escrow: EscrowInfo, amount: int) -> None:
    """released_amount + amount must stay within total_amount."""
    if escrow.released_amount + amount > escrow.total_amount:
        raise InsufficientFundsError(
            escrow.escrow_id,
            escrow.total_amount,
            escrow.released_amount,
            amount,
        )


def resolution_target(
    escrow_id: str,
    new_status: str | EscrowStatus,
    restricted: bool = True,
) -> str:
    """
    Normalize the status an admin resolves a dispute into.

    With ``restricted`` only ``active`` and ``closed`` are accepted.
    Without it any non-empty status up to MAX_STATUS_LENGTH characters is
    stored verbatim, which leaves the escrow outside the state machine.

    Raises:
        InvalidResolutionStatusError: status outside the accepted set.
    """
    value = new_status.value if isinstance(new_status, EscrowStatus) else new_status
    allowed = tuple(sorted(RESOLUTION_STATUSES))

    if restricted:
        if value not in RESOLUTION_STATUSES:
            raise InvalidResolutionStatusError(escrow_id, str(value), allowed)
        return value

    if not isinstance(value, str) or not value or len(value) > MAX_STATUS_LENGTH:
        raise InvalidResolutionStatusError(escrow_id, str(value), allowed)
    return value
