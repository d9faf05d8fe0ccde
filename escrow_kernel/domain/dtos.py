"""
Domain DTOs -- immutable records crossing the service boundary.

Responsibility:
    Frozen dataclasses returned by services, selectors and the state
    machine facade.  No ORM dependency: callers never hold live rows.

Architecture position:
    Kernel > Domain -- pure, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from escrow_kernel.domain.values import ErrorCode, EscrowStatus, PaymentStatus


@dataclass(frozen=True)
class EscrowInfo:
    """Immutable snapshot of an escrow record."""

    escrow_id: str
    project_id: str
    client: str
    contractor: str
    total_amount: int
    released_amount: int
    status: str

    @property
    def is_active(self) -> bool:
        return self.status == EscrowStatus.ACTIVE.value

    @property
    def remaining_amount(self) -> int:
        return self.total_amount - self.released_amount


@dataclass(frozen=True)
class PaymentInfo:
    """Immutable snapshot of a payment record."""

    escrow_id: str
    payment_id: str
    milestone_id: str
    amount: int
    status: str
    release_marker: int | None = None
    inspection_id: str | None = None

    @property
    def is_released(self) -> bool:
        return self.status == PaymentStatus.RELEASED.value


@dataclass(frozen=True)
class OperationResult:
    """
    Discriminated success/failure result of a state machine operation.

    Exactly one of ``value`` (on success) or ``error`` (on failure) is
    meaningful.  ``message`` carries the human-readable refusal reason.
    """

    is_ok: bool
    value: Any = None
    error: ErrorCode | None = None
    message: str | None = None

    @classmethod
    def ok(cls, value: Any = True) -> OperationResult:
        """Create a successful result."""
        return cls(is_ok=True, value=value)

    @classmethod
    def err(cls, error: ErrorCode, message: str | None = None) -> OperationResult:
        """Create a failure result."""
        return cls(is_ok=False, error=error, message=message)

    @property
    def is_err(self) -> bool:
        return not self.is_ok

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: ``{"ok": true, "value": ...}`` or ``{"err": code}``."""
        if self.is_ok:
            return {"ok": True, "value": self.value}
        return {"err": int(self.error)}
