"""
Module: escrow_kernel.models.payment
Responsibility: ORM persistence for payments -- sub-allocations of an
    escrow's funds, each tied to one milestone and released independently.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - (escrow_id, payment_id) is unique (uq_payment_escrow_payment).
    - escrow_id references an existing escrow (FK to escrows.escrow_id).
    - amount is non-negative (ck_payment_amount_non_negative).
    - release_marker is set iff status is RELEASED (ck_payment_marker_on_release).
"""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import ID_LENGTH, TrackedBase
from escrow_kernel.domain.values import PaymentStatus


class Payment(TrackedBase):
    """
    A milestone payment under an escrow.

    Guarantees:
        - created PENDING with no release_marker.
        - transitions once to RELEASED, stamped with a release_marker.
        - a released payment never changes; never deleted.
    """

    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint("escrow_id", "payment_id", name="uq_payment_escrow_payment"),
        CheckConstraint("amount >= 0", name="ck_payment_amount_non_negative"),
        CheckConstraint(
            "(status = 'released' AND release_marker IS NOT NULL) OR "
            "(status = 'pending' AND release_marker IS NULL)",
            name="ck_payment_marker_on_release",
        ),
        Index("idx_payment_escrow_status", "escrow_id", "status"),
    )

    escrow_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("escrows.escrow_id"),
        nullable=False,
    )

    payment_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)

    # Reference into the external milestone tracker
    milestone_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)

    # Reference into the external inspection log (optional)
    inspection_id: Mapped[str | None] = mapped_column(String(ID_LENGTH), nullable=True)

    amount: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentStatus.PENDING.value,
    )

    # Ordering token from the release_marker sequence
    release_marker: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    @property
    def is_pending(self) -> bool:
        return self.status == PaymentStatus.PENDING.value

    def __repr__(self) -> str:
        return f"<Payment {self.escrow_id}/{self.payment_id}: {self.amount} ({self.status})>"
