"""
Typed Exception Hierarchy for the Escrow Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

An escrow ledger reports every refusal with a stable numeric code.  Callers
must be able to branch on the code (or the exception type) without parsing
message text:

    try:
        ledger.release_payment(caller, escrow_id, payment_id)
    except PaymentNotPendingError as e:      # Typed catch
        log.warning("already released", extra={"payment_id": e.payment_id})
        api_response(code=int(e.code))       # Machine-readable

Every exception:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (an ``ErrorCode``, stable on the wire)
  3. Carries structured DATA as attributes (escrow_id, payment_id, ...)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    EscrowKernelError (base)
    |
    +-- UnauthorizedError                     100
    |
    +-- AlreadyExistsError                    101
    |   +-- EscrowAlreadyExistsError
    |   +-- PaymentAlreadyExistsError
    |   +-- AdminAlreadyInitializedError
    |
    +-- NotFoundError                         102
    |   +-- EscrowNotFoundError
    |   +-- PaymentNotFoundError
    |   +-- MilestoneNotFoundError
    |   +-- InspectionNotFoundError
    |
    +-- InsufficientFundsError                103
    |
    +-- InvalidStateError                     104
    |   +-- EscrowNotActiveError
    |   +-- EscrowNotDisputedError
    |   +-- PaymentNotPendingError
    |   +-- MilestoneNotVerifiedError
    |   +-- InspectionNotPassedError
    |
    +-- InvalidArgumentError                  105
    |   +-- InvalidAmountError
    |   +-- InvalidResolutionStatusError
    |   +-- ContractorNotEligibleError
    |   +-- InvalidPrincipalError
    |   +-- InvalidIdentifierError
    |
    +-- AuditChainBrokenError                 (never returned as a result)
    +-- LedgerInvariantError                  (never returned as a result)

===============================================================================
HANDLING PATTERNS
===============================================================================

1. The ``EscrowStateMachine`` facade converts every ``EscrowKernelError``
   into ``OperationResult.err(exc.code)`` after rolling back the
   operation's savepoint.  Services below the facade simply raise.

2. ``AuditChainBrokenError`` and ``LedgerInvariantError`` signal corrupted
   storage, not a refused request.  They carry the INVALID_STATE code for
   logging, but callers should halt and investigate rather than retry.

===============================================================================
"""

from escrow_kernel.domain.values import MAX_AMOUNT, ErrorCode


class EscrowKernelError(Exception):
    """
    Base exception for all escrow kernel errors.

    All subclasses must define a ``code`` class attribute.
    """

    code: ErrorCode = ErrorCode.INVALID_STATE


# Authorization


class UnauthorizedError(EscrowKernelError):
    """Caller lacks the role required for this transition."""

    code: ErrorCode = ErrorCode.UNAUTHORIZED

    def __init__(self, caller: str, operation: str, escrow_id: str | None = None):
        self.caller = caller
        self.operation = operation
        self.escrow_id = escrow_id
        target = f" on escrow {escrow_id}" if escrow_id else ""
        super().__init__(f"Caller {caller} may not {operation}{target}")


# Creation collisions


class AlreadyExistsError(EscrowKernelError):
    """Base exception for create collisions."""

    code: ErrorCode = ErrorCode.ALREADY_EXISTS


class EscrowAlreadyExistsError(AlreadyExistsError):
    """An escrow with this id is already registered."""

    def __init__(self, escrow_id: str):
        self.escrow_id = escrow_id
        super().__init__(f"Escrow already exists: {escrow_id}")


class PaymentAlreadyExistsError(AlreadyExistsError):
    """A payment with this id already exists under the escrow."""

    def __init__(self, escrow_id: str, payment_id: str):
        self.escrow_id = escrow_id
        self.payment_id = payment_id
        super().__init__(f"Payment already exists: {escrow_id}/{payment_id}")


class AdminAlreadyInitializedError(AlreadyExistsError):
    """The admin cell was already initialized to a different principal."""

    def __init__(self, current_admin: str):
        self.current_admin = current_admin
        super().__init__(f"Admin already initialized: {current_admin}")


# Missing references


class NotFoundError(EscrowKernelError):
    """Base exception for references to non-existent records."""

    code: ErrorCode = ErrorCode.NOT_FOUND


class EscrowNotFoundError(NotFoundError):
    """Escrow with given id was not found."""

    def __init__(self, escrow_id: str):
        self.escrow_id = escrow_id
        super().__init__(f"Escrow not found: {escrow_id}")


class PaymentNotFoundError(NotFoundError):
    """Payment with given id was not found under the escrow."""

    def __init__(self, escrow_id: str, payment_id: str):
        self.escrow_id = escrow_id
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {escrow_id}/{payment_id}")


class MilestoneNotFoundError(NotFoundError):
    """The milestone referenced by a payment is unknown to the tracker."""

    def __init__(self, project_id: str, milestone_id: str):
        self.project_id = project_id
        self.milestone_id = milestone_id
        super().__init__(f"Milestone not found: {project_id}/{milestone_id}")


class InspectionNotFoundError(NotFoundError):
    """The inspection referenced by a payment is unknown to the inspection log."""

    def __init__(self, project_id: str, inspection_id: str):
        self.project_id = project_id
        self.inspection_id = inspection_id
        super().__init__(f"Inspection not found: {project_id}/{inspection_id}")


# Funds


class InsufficientFundsError(EscrowKernelError):
    """Releasing the payment would push released_amount past total_amount."""

    code: ErrorCode = ErrorCode.INSUFFICIENT_FUNDS

    def __init__(
        self,
        escrow_id: str,
        total_amount: int,
        released_amount: int,
        requested: int,
    ):
        self.escrow_id = escrow_id
        self.total_amount = total_amount
        self.released_amount = released_amount
        self.requested = requested
        super().__init__(
            f"Escrow {escrow_id} cannot release {requested}: "
            f"{released_amount} of {total_amount} already released"
        )


# State gating


class InvalidStateError(EscrowKernelError):
    """Base exception for operations invalid in the entity's current status."""

    code: ErrorCode = ErrorCode.INVALID_STATE


class EscrowNotActiveError(InvalidStateError):
    """Operation requires an active escrow."""

    def __init__(self, escrow_id: str, status: str):
        self.escrow_id = escrow_id
        self.status = status
        super().__init__(f"Escrow {escrow_id} is not active (status={status})")


class EscrowNotDisputedError(InvalidStateError):
    """Resolution requires a disputed escrow."""

    def __init__(self, escrow_id: str, status: str):
        self.escrow_id = escrow_id
        self.status = status
        super().__init__(f"Escrow {escrow_id} is not disputed (status={status})")


class PaymentNotPendingError(InvalidStateError):
    """Payment was already released."""

    def __init__(self, escrow_id: str, payment_id: str, status: str):
        self.escrow_id = escrow_id
        self.payment_id = payment_id
        self.status = status
        super().__init__(
            f"Payment {escrow_id}/{payment_id} is not pending (status={status})"
        )


class MilestoneNotVerifiedError(InvalidStateError):
    """The payment's milestone has not been verified yet."""

    def __init__(self, project_id: str, milestone_id: str):
        self.project_id = project_id
        self.milestone_id = milestone_id
        super().__init__(f"Milestone not verified: {project_id}/{milestone_id}")


class InspectionNotPassedError(InvalidStateError):
    """The payment's inspection has not passed."""

    def __init__(self, project_id: str, inspection_id: str, status: str):
        self.project_id = project_id
        self.inspection_id = inspection_id
        self.status = status
        super().__init__(
            f"Inspection {project_id}/{inspection_id} has not passed (status={status})"
        )


# Arguments


class InvalidArgumentError(EscrowKernelError):
    """Base exception for arguments outside their defined bounds."""

    code: ErrorCode = ErrorCode.INVALID_ARGUMENT


class InvalidAmountError(InvalidArgumentError):
    """Amounts must be integers within 0..MAX_AMOUNT."""

    def __init__(self, field: str, amount: object):
        self.field = field
        self.amount = amount
        super().__init__(f"Invalid {field}: {amount!r} (must be an integer within 0..{MAX_AMOUNT})")


class InvalidResolutionStatusError(InvalidArgumentError):
    """Admin supplied a status outside the resolvable set."""

    def __init__(self, escrow_id: str, new_status: str, allowed: tuple[str, ...]):
        self.escrow_id = escrow_id
        self.new_status = new_status
        self.allowed = allowed
        super().__init__(
            f"Cannot resolve escrow {escrow_id} to {new_status!r}; "
            f"allowed: {', '.join(allowed)}"
        )


class ContractorNotEligibleError(InvalidArgumentError):
    """Contractor is unknown, unverified, or rated below the configured floor."""

    def __init__(self, contractor: str, reason: str):
        self.contractor = contractor
        self.reason = reason
        super().__init__(f"Contractor {contractor} not eligible: {reason}")


class InvalidPrincipalError(InvalidArgumentError):
    """Principals must be non-empty identities of bounded length."""

    def __init__(self, field: str, principal: object):
        self.field = field
        self.principal = principal
        super().__init__(f"Invalid {field}: {principal!r}")


class InvalidIdentifierError(InvalidArgumentError):
    """Escrow, project, payment, milestone and inspection keys are bounded strings."""

    def __init__(self, field: str, value: object, max_length: int):
        self.field = field
        self.value = value
        self.max_length = max_length
        super().__init__(
            f"Invalid {field}: must be a string of at most {max_length} characters"
        )


# Storage integrity


class AuditChainBrokenError(EscrowKernelError):
    """Audit hash chain validation failed."""

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at event {audit_event_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


class LedgerInvariantError(EscrowKernelError):
    """Stored escrow totals disagree with their payment rows."""

    def __init__(self, escrow_id: str, invariant: str, detail: str):
        self.escrow_id = escrow_id
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"Invariant {invariant} violated for escrow {escrow_id}: {detail}")
