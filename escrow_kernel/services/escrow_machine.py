"""
EscrowStateMachine -- the result-returning entry point for every escrow operation.

Responsibility:
    Wires the Authorization Context, Escrow Registry, Payment Ledger and
    Auditor together and exposes each operation as an all-or-nothing
    unit returning ``OperationResult`` instead of raising.

Architecture position:
    Kernel > Services -- outermost kernel service.  Callers own the outer
    transaction (``session_scope()`` or the test harness); the state
    machine owns one SAVEPOINT per operation.

Invariants enforced:
    - All-or-nothing: each operation runs in ``session.begin_nested()``.
      Any ``EscrowKernelError`` rolls the savepoint back before the error
      result is returned, so a refused operation leaves no partial write
      (release_payment's two-row update included).
    - Per-escrow linearizability: the escrow row is locked FOR UPDATE
      inside the savepoint by the services.

Failure modes:
    - Domain refusals become ``OperationResult.err(code)``.
    - Anything else (database errors, bugs) propagates unchanged.

Audit relevance:
    Committed operations leave one audit event each.  Refusals are logged
    as ``operation_rejected`` with the error code and reason.
"""

from collections.abc import Callable
from typing import Any

from sqlalchemy.orm import Session

from escrow_kernel.domain.clock import Clock, SystemClock
from escrow_kernel.domain.collaborators import (
    ContractorRegistry,
    InspectionLog,
    MilestoneVerification,
)
from escrow_kernel.domain.dtos import EscrowInfo, OperationResult, PaymentInfo
from escrow_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from escrow_kernel.domain.values import EscrowStatus, PaymentStatus
from escrow_kernel.exceptions import EscrowKernelError
from escrow_kernel.logging_config import LogContext, get_logger
from escrow_kernel.selectors.escrow_selector import EscrowSelector
from escrow_kernel.services.auditor_service import AuditorService
from escrow_kernel.services.authorization_service import AuthorizationService
from escrow_kernel.services.escrow_registry import EscrowRegistry
from escrow_kernel.services.payment_ledger import PaymentLedger

logger = get_logger("services.escrow_machine")


class EscrowStateMachine:
    """
    Facade over the escrow services.

    Usage:
        with session_scope() as session:
            machine = EscrowStateMachine(session)
            machine.initialize_admin("deployer")
            result = machine.create_escrow("client", "e1", "p1", "builder", 100_000)
            if result.is_err:
                return {"err": int(result.error)}
    """

    def __init__(
        self,
        session: Session,
        policy: LedgerPolicy = DEFAULT_POLICY,
        clock: Clock | None = None,
        milestones: MilestoneVerification | None = None,
        inspections: InspectionLog | None = None,
        contractors: ContractorRegistry | None = None,
    ):
        self._session = session
        self._policy = policy
        self.auditor = AuditorService(session, clock or SystemClock())
        self.authorization = AuthorizationService(session, self.auditor)
        self.registry = EscrowRegistry(
            session,
            self.authorization,
            self.auditor,
            policy,
            contractors=contractors,
        )
        self.ledger = PaymentLedger(
            session,
            self.registry,
            self.authorization,
            self.auditor,
            policy,
            milestones=milestones,
            inspections=inspections,
        )
        self.selector = EscrowSelector(session)

    @property
    def policy(self) -> LedgerPolicy:
        return self._policy

    def _run(
        self,
        operation: str,
        caller: str,
        action: Callable[[], Any],
        escrow_id: str | None = None,
        payment_id: str | None = None,
    ) -> OperationResult:
        with LogContext.bind(
            operation=operation,
            caller=caller,
            escrow_id=escrow_id,
            payment_id=payment_id,
        ):
            try:
                with self._session.begin_nested():
                    value = action()
            except EscrowKernelError as exc:
                logger.warning(
                    "operation_rejected",
                    extra={
                        "error_code": int(exc.code),
                        "error_type": type(exc).__name__,
                        "reason": str(exc),
                    },
                )
                return OperationResult.err(exc.code, str(exc))

            logger.debug("operation_committed")
            return OperationResult.ok(value)

    # Authorization context

    def initialize_admin(self, deployer: str) -> OperationResult:
        return self._run(
            "initialize_admin", deployer, lambda: self.authorization.initialize(deployer)
        )

    def current_admin(self) -> str | None:
        return self.authorization.current_admin()

    def is_admin(self, caller: str) -> bool:
        return self.authorization.is_admin(caller)

    def is_escrow_client(self, caller: str, escrow_id: str) -> bool:
        return self.authorization.is_escrow_client(caller, escrow_id)

    def is_escrow_contractor(self, caller: str, escrow_id: str) -> bool:
        return self.authorization.is_escrow_contractor(caller, escrow_id)

    def transfer_admin(self, caller: str, new_admin: str) -> OperationResult:
        return self._run(
            "transfer_admin",
            caller,
            lambda: self.authorization.transfer_admin(caller, new_admin),
        )

    # Escrow registry

    def create_escrow(
        self,
        caller: str,
        escrow_id: str,
        project_id: str,
        contractor: str,
        total_amount: int,
    ) -> OperationResult:
        return self._run(
            "create_escrow",
            caller,
            lambda: self.registry.create_escrow(
                caller, escrow_id, project_id, contractor, total_amount
            ),
            escrow_id=escrow_id,
        )

    def get_escrow(self, escrow_id: str) -> EscrowInfo | None:
        return self.registry.get_escrow(escrow_id)

    def close_escrow(self, caller: str, escrow_id: str) -> OperationResult:
        return self._run(
            "close_escrow",
            caller,
            lambda: self.registry.close_escrow(caller, escrow_id),
            escrow_id=escrow_id,
        )

    def dispute_escrow(self, caller: str, escrow_id: str) -> OperationResult:
        return self._run(
            "dispute_escrow",
            caller,
            lambda: self.registry.dispute_escrow(caller, escrow_id),
            escrow_id=escrow_id,
        )

    def resolve_dispute(
        self,
        caller: str,
        escrow_id: str,
        new_status: str | EscrowStatus,
    ) -> OperationResult:
        return self._run(
            "resolve_dispute",
            caller,
            lambda: self.registry.resolve_dispute(caller, escrow_id, new_status),
            escrow_id=escrow_id,
        )

    # Payment ledger

    def add_payment(
        self,
        caller: str,
        escrow_id: str,
        payment_id: str,
        milestone_id: str,
        amount: int,
        inspection_id: str | None = None,
    ) -> OperationResult:
        return self._run(
            "add_payment",
            caller,
            lambda: self.ledger.add_payment(
                caller, escrow_id, payment_id, milestone_id, amount, inspection_id
            ),
            escrow_id=escrow_id,
            payment_id=payment_id,
        )

    def get_payment(self, escrow_id: str, payment_id: str) -> PaymentInfo | None:
        return self.ledger.get_payment(escrow_id, payment_id)

    def list_payments(
        self,
        escrow_id: str,
        status: PaymentStatus | None = None,
    ) -> list[PaymentInfo]:
        return self.ledger.list_payments(escrow_id, status)

    def release_payment(
        self,
        caller: str,
        escrow_id: str,
        payment_id: str,
    ) -> OperationResult:
        return self._run(
            "release_payment",
            caller,
            lambda: self.ledger.release_payment(caller, escrow_id, payment_id),
            escrow_id=escrow_id,
            payment_id=payment_id,
        )
