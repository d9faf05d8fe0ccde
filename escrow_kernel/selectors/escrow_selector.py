"""
Module: escrow_kernel.selectors.escrow_selector
Responsibility: Read side of the escrow ledger -- escrow and payment lookups,
    payment listings, and re-verification of the ledger invariants from
    stored rows.
Architecture position: Kernel > Selectors.

Invariants verified:
    RELEASED_WITHIN_TOTAL -- released_amount <= total_amount.
    RELEASED_EQUALS_SUM   -- released_amount == sum(amount) over released payments.

Failure modes:
    - EscrowNotFoundError from verify_escrow() for an unknown escrow.
    - LedgerInvariantError when stored totals disagree with payment rows.
"""

from sqlalchemy import func, select

from escrow_kernel.domain.dtos import EscrowInfo, PaymentInfo
from escrow_kernel.domain.values import PaymentStatus
from escrow_kernel.exceptions import EscrowNotFoundError, LedgerInvariantError
from escrow_kernel.invariants import LedgerInvariant
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.escrow import Escrow
from escrow_kernel.models.payment import Payment
from escrow_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.escrow")


def escrow_info(escrow: Escrow) -> EscrowInfo:
    """Convert an ORM Escrow to its DTO."""
    return EscrowInfo(
        escrow_id=escrow.escrow_id,
        project_id=escrow.project_id,
        client=escrow.client,
        contractor=escrow.contractor,
        total_amount=escrow.total_amount,
        released_amount=escrow.released_amount,
        status=escrow.status,
    )


def payment_info(payment: Payment) -> PaymentInfo:
    """Convert an ORM Payment to its DTO."""
    return PaymentInfo(
        escrow_id=payment.escrow_id,
        payment_id=payment.payment_id,
        milestone_id=payment.milestone_id,
        amount=payment.amount,
        status=payment.status,
        release_marker=payment.release_marker,
        inspection_id=payment.inspection_id,
    )


class EscrowSelector(BaseSelector):
    """Read-only queries over escrows and payments."""

    def get_escrow(self, escrow_id: str) -> EscrowInfo | None:
        escrow = self.session.execute(
            select(Escrow).where(Escrow.escrow_id == escrow_id)
        ).scalar_one_or_none()
        return escrow_info(escrow) if escrow else None

    def get_payment(self, escrow_id: str, payment_id: str) -> PaymentInfo | None:
        payment = self.session.execute(
            select(Payment).where(
                Payment.escrow_id == escrow_id,
                Payment.payment_id == payment_id,
            )
        ).scalar_one_or_none()
        return payment_info(payment) if payment else None

    def list_payments(
        self,
        escrow_id: str,
        status: PaymentStatus | None = None,
    ) -> list[PaymentInfo]:
        """Payments of one escrow ordered by payment id."""
        stmt = select(Payment).where(Payment.escrow_id == escrow_id)
        if status is not None:
            stmt = stmt.where(Payment.status == status.value)
        stmt = stmt.order_by(Payment.payment_id)
        return [payment_info(p) for p in self.session.execute(stmt).scalars().all()]

    def list_escrows(self, project_id: str | None = None) -> list[EscrowInfo]:
        """Escrows ordered by escrow id, optionally for one project."""
        stmt = select(Escrow)
        if project_id is not None:
            stmt = stmt.where(Escrow.project_id == project_id)
        stmt = stmt.order_by(Escrow.escrow_id)
        return [escrow_info(e) for e in self.session.execute(stmt).scalars().all()]

    def released_sum(self, escrow_id: str) -> int:
        """Sum of amounts over the escrow's released payments."""
        total = self.session.execute(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(
                Payment.escrow_id == escrow_id,
                Payment.status == PaymentStatus.RELEASED.value,
            )
        ).scalar_one()
        return int(total)

    def verify_escrow(self, escrow_id: str) -> EscrowInfo:
        """
        Re-verify the monetary invariants of one escrow from stored rows.

        Returns:
            The escrow DTO when both invariants hold.

        Raises:
            EscrowNotFoundError: unknown escrow.
            LedgerInvariantError: a stored total disagrees with its payments.
        """
        escrow = self.get_escrow(escrow_id)
        if escrow is None:
            raise EscrowNotFoundError(escrow_id)

        if escrow.released_amount > escrow.total_amount:
            logger.critical("ledger_invariant_violated", extra={"escrow_id": escrow_id})
            raise LedgerInvariantError(
                escrow_id,
                LedgerInvariant.RELEASED_WITHIN_TOTAL.value,
                f"released {escrow.released_amount} exceeds total {escrow.total_amount}",
            )

        released = self.released_sum(escrow_id)
        if released != escrow.released_amount:
            logger.critical("ledger_invariant_violated", extra={"escrow_id": escrow_id})
            raise LedgerInvariantError(
                escrow_id,
                LedgerInvariant.RELEASED_EQUALS_SUM.value,
                f"released_amount {escrow.released_amount} != payment sum {released}",
            )

        return escrow

    def verify_all(self) -> int:
        """Verify every escrow; returns how many were checked."""
        escrow_ids = self.session.execute(
            select(Escrow.escrow_id).order_by(Escrow.escrow_id)
        ).scalars().all()
        for escrow_id in escrow_ids:
            self.verify_escrow(escrow_id)
        logger.info("ledger_verified", extra={"escrow_count": len(escrow_ids)})
        return len(escrow_ids)
