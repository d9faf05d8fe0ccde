"""
PaymentLedger -- milestone payments and their release against an escrow.

Responsibility:
    Owns the payments table.  Adds PENDING payments under an ACTIVE
    escrow and releases them, moving the payment to RELEASED and adding
    its amount to the escrow's released_amount in the same transaction.

Architecture position:
    Kernel > Services.  Depends on EscrowRegistry (row lock + parent
    state), AuthorizationService, SequenceService (release markers) and,
    optionally, the MilestoneVerification and InspectionLog collaborators.

Invariants enforced:
    - RELEASED_WITHIN_TOTAL: a release that would exceed total_amount is
      refused with InsufficientFundsError.
    - RELEASED_EQUALS_SUM: payment status and escrow released_amount are
      flushed together; the caller wraps the call in one savepoint.
    - PAYMENT_MONOTONICITY: only PENDING payments are released, once.
    - Every operation re-checks the parent escrow's status.

Failure modes:
    - EscrowNotFoundError, PaymentNotFoundError, UnauthorizedError,
      EscrowNotActiveError, PaymentNotPendingError, PaymentAlreadyExistsError,
      InvalidAmountError, InsufficientFundsError, MilestoneNotFoundError,
      MilestoneNotVerifiedError, InspectionNotFoundError,
      InspectionNotPassedError.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain import authorization, transitions
from escrow_kernel.domain.collaborators import InspectionLog, MilestoneVerification
from escrow_kernel.domain.dtos import EscrowInfo, PaymentInfo
from escrow_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from escrow_kernel.domain.values import PaymentStatus
from escrow_kernel.exceptions import (
    InspectionNotFoundError,
    InspectionNotPassedError,
    MilestoneNotFoundError,
    MilestoneNotVerifiedError,
    PaymentAlreadyExistsError,
    PaymentNotFoundError,
    UnauthorizedError,
)
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.payment import Payment
from escrow_kernel.selectors.escrow_selector import (
    EscrowSelector,
    escrow_info,
    payment_info,
)
from escrow_kernel.services.auditor_service import AuditorService
from escrow_kernel.services.authorization_service import AuthorizationService
from escrow_kernel.services.base import BaseService
from escrow_kernel.services.escrow_registry import EscrowRegistry
from escrow_kernel.services.sequence_service import SequenceService

logger = get_logger("services.payment_ledger")


class PaymentLedger(BaseService):
    """
    Service for payment records.

    Non-goals:
        - No cancel or refund path: a payment is never deleted and never
          leaves RELEASED.
    """

    def __init__(
        self,
        session: Session,
        registry: EscrowRegistry,
        authorization_service: AuthorizationService,
        auditor: AuditorService | None = None,
        policy: LedgerPolicy = DEFAULT_POLICY,
        milestones: MilestoneVerification | None = None,
        inspections: InspectionLog | None = None,
    ):
        super().__init__(session)
        if policy.require_verified_milestone and milestones is None:
            raise ValueError("require_verified_milestone needs a MilestoneVerification")
        if policy.require_passed_inspection and inspections is None:
            raise ValueError("require_passed_inspection needs an InspectionLog")
        self._registry = registry
        self._auth = authorization_service
        self._auditor = auditor
        self._policy = policy
        self._milestones = milestones
        self._inspections = inspections
        self._sequence = SequenceService(session)
        self._selector = EscrowSelector(session)

    def _find(self, escrow_id: str, payment_id: str) -> Payment | None:
        return self.session.execute(
            select(Payment)
            .where(
                Payment.escrow_id == escrow_id,
                Payment.payment_id == payment_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _authorize_funds(self, caller: str, escrow: EscrowInfo, operation: str) -> None:
        if not authorization.can_manage_funds(caller, escrow, self._auth.current_admin()):
            raise UnauthorizedError(caller, operation, escrow.escrow_id)

    def add_payment(
        self,
        caller: str,
        escrow_id: str,
        payment_id: str,
        milestone_id: str,
        amount: int,
        inspection_id: str | None = None,
    ) -> PaymentInfo:
        """
        Add a PENDING payment under an ACTIVE escrow.  Client or admin only.

        A duplicate ``payment_id`` is refused unless the policy allows
        overwriting, in which case a still-PENDING payment is replaced.
        A RELEASED payment is never replaced.

        Raises:
            EscrowNotFoundError, UnauthorizedError, EscrowNotActiveError,
            InvalidIdentifierError, InvalidAmountError, PaymentAlreadyExistsError,
            PaymentNotPendingError.
        """
        escrow = escrow_info(self._registry.lock_escrow(escrow_id))
        self._authorize_funds(caller, escrow, "add_payment")
        transitions.require_escrow_status("add_payment", escrow)
        transitions.validate_identifier("payment_id", payment_id)
        transitions.validate_identifier("milestone_id", milestone_id)
        if inspection_id is not None:
            transitions.validate_identifier("inspection_id", inspection_id)
        transitions.validate_amount("amount", amount)

        existing = self._find(escrow_id, payment_id)
        if existing is not None:
            if self._policy.reject_duplicate_payments:
                raise PaymentAlreadyExistsError(escrow_id, payment_id)
            transitions.require_payment_status("add_payment", payment_info(existing))
            existing.milestone_id = milestone_id
            existing.inspection_id = inspection_id
            existing.amount = amount
            existing.updated_by = caller
            payment = existing
        else:
            payment = Payment(
                escrow_id=escrow_id,
                payment_id=payment_id,
                milestone_id=milestone_id,
                inspection_id=inspection_id,
                amount=amount,
                status=PaymentStatus.PENDING.value,
                created_by=caller,
            )
            self.session.add(payment)
        self.session.flush()

        if self._auditor is not None:
            self._auditor.record_payment_added(
                escrow_id,
                payment_id,
                caller,
                milestone_id,
                amount,
                replaced=existing is not None,
            )
        logger.info(
            "payment_added",
            extra={
                "escrow_id": escrow_id,
                "payment_id": payment_id,
                "milestone_id": milestone_id,
                "amount": amount,
                "replaced": existing is not None,
            },
        )
        return payment_info(payment)

    def get_payment(self, escrow_id: str, payment_id: str) -> PaymentInfo | None:
        """Pure read; no authorization."""
        return self._selector.get_payment(escrow_id, payment_id)

    def list_payments(
        self,
        escrow_id: str,
        status: PaymentStatus | None = None,
    ) -> list[PaymentInfo]:
        return self._selector.list_payments(escrow_id, status)

    def _check_work_verified(self, escrow: EscrowInfo, payment: Payment) -> None:
        if self._policy.require_verified_milestone:
            milestone = self._milestones.get_milestone(
                escrow.project_id, payment.milestone_id
            )
            if milestone is None:
                raise MilestoneNotFoundError(escrow.project_id, payment.milestone_id)
            if not milestone.verified:
                raise MilestoneNotVerifiedError(escrow.project_id, payment.milestone_id)

        if self._policy.require_passed_inspection and payment.inspection_id:
            inspection = self._inspections.get_inspection(
                escrow.project_id, payment.inspection_id
            )
            if inspection is None:
                raise InspectionNotFoundError(escrow.project_id, payment.inspection_id)
            if not inspection.passed:
                raise InspectionNotPassedError(
                    escrow.project_id, payment.inspection_id, inspection.status
                )

    def release_payment(self, caller: str, escrow_id: str, payment_id: str) -> PaymentInfo:
        """
        PENDING -> RELEASED and credit the amount to the escrow.

        Client or admin only.  The payment is stamped with the next
        release marker.  The payment row and the escrow row are flushed
        together; run inside a savepoint so both land or neither does.

        Raises:
            EscrowNotFoundError, UnauthorizedError, EscrowNotActiveError,
            PaymentNotFoundError, PaymentNotPendingError,
            MilestoneNotFoundError, MilestoneNotVerifiedError,
            InspectionNotFoundError, InspectionNotPassedError,
            InsufficientFundsError.
        """
        escrow_row = self._registry.lock_escrow(escrow_id)
        escrow = escrow_info(escrow_row)
        self._authorize_funds(caller, escrow, "release_payment")
        transitions.require_escrow_status("release_payment", escrow)

        payment = self._find(escrow_id, payment_id)
        if payment is None:
            raise PaymentNotFoundError(escrow_id, payment_id)
        target = transitions.require_payment_status("release_payment", payment_info(payment))
        self._check_work_verified(escrow, payment)
        transitions.require_funds(escrow, payment.amount)

        marker = self._sequence.next_value(SequenceService.RELEASE_MARKER)
        payment.status = target.value
        payment.release_marker = marker
        payment.updated_by = caller
        escrow_row.released_amount += payment.amount
        escrow_row.updated_by = caller
        self.session.flush()

        if self._auditor is not None:
            self._auditor.record_payment_released(
                escrow_id,
                payment_id,
                caller,
                payment.amount,
                marker,
                escrow_row.released_amount,
            )
        logger.info(
            "payment_released",
            extra={
                "escrow_id": escrow_id,
                "payment_id": payment_id,
                "amount": payment.amount,
                "release_marker": marker,
                "released_amount": escrow_row.released_amount,
                "total_amount": escrow_row.total_amount,
            },
        )
        return payment_info(payment)
