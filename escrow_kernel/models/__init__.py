"""ORM models for the escrow kernel."""

from escrow_kernel.models.admin import AdminPrincipal
from escrow_kernel.models.audit_event import AuditAction, AuditEvent
from escrow_kernel.models.escrow import Escrow
from escrow_kernel.models.payment import Payment
from escrow_kernel.models.sequence import SequenceCounter

__all__ = [
    "AdminPrincipal",
    "AuditAction",
    "AuditEvent",
    "Escrow",
    "Payment",
    "SequenceCounter",
]
