"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Creates append-only, hash-chained audit events for every committed
    escrow, payment and admin transition.  Provides chain validation for
    tamper detection and per-entity traces for forensic review.

Architecture position:
    Kernel > Services -- imperative shell, called by AuthorizationService,
    EscrowRegistry and PaymentLedger after each successful mutation.

Invariants enforced:
    - Sequence monotonicity via SequenceService (never raw SQL max+1).
    - Chain integrity: ``hash = H(entity_type|entity_id|action|payload_hash|prev_hash)``.

Failure modes:
    - AuditChainBrokenError: recomputed hash does not match stored hash,
      or prev_hash does not match the predecessor's hash.

Audit relevance:
    Events are written inside the operation's savepoint, so a refused
    operation leaves no audit row behind.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.exceptions import AuditChainBrokenError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.audit_event import AuditAction, AuditEvent
from escrow_kernel.services.sequence_service import SequenceService
from escrow_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("services.auditor")

ESCROW = "escrow"
PAYMENT = "payment"
ADMIN = "admin"


def payment_key(escrow_id: str, payment_id: str) -> str:
    return f"{escrow_id}/{payment_id}"


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: AuditAction
    occurred_at: datetime
    actor: str
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events for one entity, in sequence order."""

    entity_type: str
    entity_id: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT record refused operations (those are logged only).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()

        return last_event.hash if last_event else None

    def _create_audit_event(
        self,
        entity_type: str,
        entity_id: str,
        action: AuditAction,
        actor: str,
        payload: dict[str, Any] | None = None,
    ) -> AuditEvent:
        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()

        payload_data = payload or {}
        computed_payload_hash = hash_payload(payload_data)
        event_hash = hash_audit_event(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            seq=seq,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action.value,
            actor=actor,
            occurred_at=self._clock.now(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action.value,
                "seq": seq,
            },
        )
        return audit_event

    # Domain-specific recording methods

    def record_admin_initialized(self, admin: str) -> AuditEvent:
        return self._create_audit_event(
            ADMIN, ADMIN, AuditAction.ADMIN_INITIALIZED, admin, {"admin": admin}
        )

    def record_admin_transferred(self, previous: str, new_admin: str) -> AuditEvent:
        return self._create_audit_event(
            ADMIN,
            ADMIN,
            AuditAction.ADMIN_TRANSFERRED,
            previous,
            {"previous_admin": previous, "new_admin": new_admin},
        )

    def record_escrow_created(
        self,
        escrow_id: str,
        actor: str,
        project_id: str,
        contractor: str,
        total_amount: int,
    ) -> AuditEvent:
        return self._create_audit_event(
            ESCROW,
            escrow_id,
            AuditAction.ESCROW_CREATED,
            actor,
            {
                "project_id": project_id,
                "client": actor,
                "contractor": contractor,
                "total_amount": total_amount,
            },
        )

    def record_escrow_status_change(
        self,
        escrow_id: str,
        actor: str,
        action: AuditAction,
        from_status: str,
        to_status: str,
    ) -> AuditEvent:
        return self._create_audit_event(
            ESCROW,
            escrow_id,
            action,
            actor,
            {"from_status": from_status, "to_status": to_status},
        )

    def record_payment_added(
        self,
        escrow_id: str,
        payment_id: str,
        actor: str,
        milestone_id: str,
        amount: int,
        replaced: bool = False,
    ) -> AuditEvent:
        return self._create_audit_event(
            PAYMENT,
            payment_key(escrow_id, payment_id),
            AuditAction.PAYMENT_ADDED,
            actor,
            {"milestone_id": milestone_id, "amount": amount, "replaced": replaced},
        )

    def record_payment_released(
        self,
        escrow_id: str,
        payment_id: str,
        actor: str,
        amount: int,
        release_marker: int,
        released_amount: int,
    ) -> AuditEvent:
        return self._create_audit_event(
            PAYMENT,
            payment_key(escrow_id, payment_id),
            AuditAction.PAYMENT_RELEASED,
            actor,
            {
                "amount": amount,
                "release_marker": release_marker,
                "escrow_released_amount": released_amount,
            },
        )

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: If chain validation fails at any point.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": events[0].seq})
            raise AuditChainBrokenError(str(events[0].id), "None", events[0].prev_hash)

        for i, event in enumerate(events):
            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                action=event.action,
                payload_hash=hash_payload(event.payload or {}),
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0 and event.prev_hash != events[i - 1].hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id), events[i - 1].hash, event.prev_hash or "None"
                )

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    # Trace and query methods

    def get_trace(self, entity_type: str, entity_id: str) -> AuditTrace:
        """Get the complete audit trace for an entity in sequence order."""
        events = self._session.execute(
            select(AuditEvent)
            .where(
                AuditEvent.entity_type == entity_type,
                AuditEvent.entity_id == entity_id,
            )
            .order_by(AuditEvent.seq)
        ).scalars().all()

        entries = tuple(
            AuditTraceEntry(
                seq=event.seq,
                action=AuditAction(event.action),
                occurred_at=event.occurred_at,
                actor=event.actor,
                payload=event.payload or {},
                hash=event.hash,
            )
            for event in events
        )
        return AuditTrace(entity_type=entity_type, entity_id=entity_id, entries=entries)
