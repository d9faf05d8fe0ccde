"""
Module: escrow_kernel.models.admin
Responsibility: The single-value admin principal cell.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one row exists (uq_admin_singleton on the constant slot column).
    - The principal changes only through AuthorizationService.transfer_admin().
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import PRINCIPAL_LENGTH, TrackedBase

ADMIN_SLOT = "admin"


class AdminPrincipal(TrackedBase):
    """The principal with cross-escrow override rights."""

    __tablename__ = "admin_principal"

    __table_args__ = (UniqueConstraint("slot", name="uq_admin_singleton"),)

    slot: Mapped[str] = mapped_column(String(10), nullable=False, default=ADMIN_SLOT)

    principal: Mapped[str] = mapped_column(String(PRINCIPAL_LENGTH), nullable=False)

    def __repr__(self) -> str:
        return f"<AdminPrincipal {self.principal}>"
