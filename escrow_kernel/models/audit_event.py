"""
Module: escrow_kernel.models.audit_event
Responsibility: Append-only, hash-chained record of every committed escrow
    transition.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - seq is unique and monotonically increasing (allocated by SequenceService).
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
    - prev_hash is None only for the genesis event.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from escrow_kernel.db.base import ID_LENGTH, PRINCIPAL_LENGTH, Base


class AuditAction(str, Enum):
    """Types of auditable actions.

    Contract: every successful state-mutating operation produces exactly
    one audit event of the matching action.
    """

    ADMIN_INITIALIZED = "admin_initialized"
    ADMIN_TRANSFERRED = "admin_transferred"

    ESCROW_CREATED = "escrow_created"
    ESCROW_CLOSED = "escrow_closed"
    ESCROW_DISPUTED = "escrow_disputed"
    DISPUTE_RESOLVED = "dispute_resolved"

    PAYMENT_ADDED = "payment_added"
    PAYMENT_RELEASED = "payment_released"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Contract:
        AuditEvent rows are append-only, never updated or deleted.
        Each row's hash includes the previous row's hash.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # "escrow", "payment" or "admin"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Business key of the entity ("e1", "e1/pay1", ...)
    entity_id: Mapped[str] = mapped_column(String(2 * ID_LENGTH + 1), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    actor: Mapped[str] = mapped_column(String(PRINCIPAL_LENGTH), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
