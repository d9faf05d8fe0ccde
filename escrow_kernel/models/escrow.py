"""
Module: escrow_kernel.models.escrow
Responsibility: ORM persistence for escrow records -- the agreed fund amount
    held between a client and a contractor, and how much of it has been
    released.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/values.py only.

Invariants enforced:
    - escrow_id is globally unique (uq_escrow_id).
    - released_amount <= total_amount (ck_escrow_released_within_total).
    - amounts are non-negative (ck_escrow_amounts_non_negative).
    client, contractor and total_amount are written once at creation; the
    services never assign them afterwards.

Failure modes:
    - IntegrityError on duplicate escrow_id or a violated check constraint.
      Services pre-check both and raise typed errors first.
"""

from sqlalchemy import CheckConstraint, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import ID_LENGTH, PRINCIPAL_LENGTH, TrackedBase
from escrow_kernel.domain.values import EscrowStatus


class Escrow(TrackedBase):
    """
    Funds held for one project between a client and a contractor.

    Guarantees:
        - created ACTIVE with released_amount == 0.
        - released_amount only ever increases (PaymentLedger).
        - never deleted; CLOSED escrows are immutable history.
    """

    __tablename__ = "escrows"

    __table_args__ = (
        UniqueConstraint("escrow_id", name="uq_escrow_id"),
        CheckConstraint(
            "total_amount >= 0 AND released_amount >= 0",
            name="ck_escrow_amounts_non_negative",
        ),
        CheckConstraint(
            "released_amount <= total_amount",
            name="ck_escrow_released_within_total",
        ),
        Index("idx_escrow_project", "project_id"),
        Index("idx_escrow_status", "status"),
    )

    escrow_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)

    # Reference into the external project tracker; not validated here
    project_id: Mapped[str] = mapped_column(String(ID_LENGTH), nullable=False)

    client: Mapped[str] = mapped_column(String(PRINCIPAL_LENGTH), nullable=False)

    contractor: Mapped[str] = mapped_column(String(PRINCIPAL_LENGTH), nullable=False)

    total_amount: Mapped[int] = mapped_column(nullable=False)

    released_amount: Mapped[int] = mapped_column(nullable=False, default=0)

    # Free text when an admin resolves a dispute with an unrestricted policy
    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=EscrowStatus.ACTIVE.value,
    )

    @property
    def is_active(self) -> bool:
        return self.status == EscrowStatus.ACTIVE.value

    @property
    def remaining_amount(self) -> int:
        return self.total_amount - self.released_amount

    def __repr__(self) -> str:
        return (
            f"<Escrow {self.escrow_id}: {self.released_amount}/{self.total_amount} "
            f"({self.status})>"
        )
