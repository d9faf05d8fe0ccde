"""
EscrowRegistry -- escrow creation and escrow-level lifecycle transitions.

Responsibility:
    Owns the escrows table: creates escrows and moves them through
    ACTIVE -> CLOSED, ACTIVE -> DISPUTED and DISPUTED -> <resolved>.

Architecture position:
    Kernel > Services.  Depends on AuthorizationService for role checks
    and (optionally) a ContractorRegistry collaborator for the
    contractor gate.  PaymentLedger uses ``lock_escrow`` to gate payments.

Invariants enforced:
    - client, contractor and total_amount are written once, at creation.
    - CLOSED is terminal: every transition requires ACTIVE or DISPUTED.
    - Check order is existence -> authorization -> state, so callers
      without rights learn nothing about an escrow's status.

Failure modes:
    - EscrowAlreadyExistsError, EscrowNotFoundError, UnauthorizedError,
      EscrowNotActiveError, EscrowNotDisputedError, InvalidAmountError,
      InvalidResolutionStatusError, ContractorNotEligibleError.

Audit relevance:
    Every successful transition appends one audit event
    (ESCROW_CREATED / ESCROW_CLOSED / ESCROW_DISPUTED / DISPUTE_RESOLVED).
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain import authorization, transitions
from escrow_kernel.domain.collaborators import ContractorRegistry
from escrow_kernel.domain.dtos import EscrowInfo
from escrow_kernel.domain.policy import DEFAULT_POLICY, LedgerPolicy
from escrow_kernel.domain.values import EscrowStatus
from escrow_kernel.exceptions import (
    ContractorNotEligibleError,
    EscrowAlreadyExistsError,
    EscrowNotFoundError,
    UnauthorizedError,
)
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.audit_event import AuditAction
from escrow_kernel.models.escrow import Escrow
from escrow_kernel.selectors.escrow_selector import EscrowSelector, escrow_info
from escrow_kernel.services.auditor_service import AuditorService
from escrow_kernel.services.authorization_service import AuthorizationService
from escrow_kernel.services.base import BaseService

logger = get_logger("services.escrow_registry")


class EscrowRegistry(BaseService):
    """
    Service for escrow records.

    All public mutators return ``EscrowInfo`` DTOs, never ORM rows.
    """

    def __init__(
        self,
        session: Session,
        authorization_service: AuthorizationService,
        auditor: AuditorService | None = None,
        policy: LedgerPolicy = DEFAULT_POLICY,
        contractors: ContractorRegistry | None = None,
    ):
        super().__init__(session)
        if policy.require_verified_contractor and contractors is None:
            raise ValueError("require_verified_contractor needs a ContractorRegistry")
        self._auth = authorization_service
        self._auditor = auditor
        self._policy = policy
        self._contractors = contractors
        self._selector = EscrowSelector(session)

    def lock_escrow(self, escrow_id: str) -> Escrow:
        """
        Load an escrow row under ``SELECT ... FOR UPDATE``.

        Serializes all mutations of one escrow; a no-op lock on SQLite.

        Raises:
            EscrowNotFoundError: unknown escrow.
        """
        escrow = self.session.execute(
            select(Escrow)
            .where(Escrow.escrow_id == escrow_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if escrow is None:
            raise EscrowNotFoundError(escrow_id)
        return escrow

    def _check_contractor(self, contractor: str) -> None:
        if not self._policy.require_verified_contractor:
            return
        facts = self._contractors.get_contractor(contractor)
        if facts is None:
            raise ContractorNotEligibleError(contractor, "not registered")
        if not facts.is_verified:
            raise ContractorNotEligibleError(contractor, "not verified")
        if facts.rating < self._policy.min_contractor_rating:
            raise ContractorNotEligibleError(
                contractor,
                f"rating {facts.rating} below {self._policy.min_contractor_rating}",
            )

    def create_escrow(
        self,
        caller: str,
        escrow_id: str,
        project_id: str,
        contractor: str,
        total_amount: int,
    ) -> EscrowInfo:
        """
        Open a new ACTIVE escrow funded by ``caller``.

        Args:
            caller: Principal creating the escrow; becomes its client.
            escrow_id: Opaque, globally unique escrow key.
            project_id: Reference to the external project record.
            contractor: Principal receiving released payments.
            total_amount: Agreed fund amount, an integer within 0..MAX_AMOUNT.

        Returns:
            The created EscrowInfo (released_amount == 0).

        Raises:
            EscrowAlreadyExistsError: escrow_id is taken.
            InvalidIdentifierError: escrow_id or project_id is too long.
            InvalidAmountError: total_amount is outside 0..MAX_AMOUNT.
            InvalidPrincipalError: caller or contractor is empty or too long.
            ContractorNotEligibleError: contractor gate refused.
        """
        if self._selector.get_escrow(escrow_id) is not None:
            raise EscrowAlreadyExistsError(escrow_id)
        transitions.validate_identifier("escrow_id", escrow_id)
        transitions.validate_identifier("project_id", project_id)
        transitions.validate_amount("total_amount", total_amount)
        transitions.validate_principal("client", caller)
        transitions.validate_principal("contractor", contractor)
        self._check_contractor(contractor)

        escrow = Escrow(
            escrow_id=escrow_id,
            project_id=project_id,
            client=caller,
            contractor=contractor,
            total_amount=total_amount,
            released_amount=0,
            status=EscrowStatus.ACTIVE.value,
            created_by=caller,
        )
        self.session.add(escrow)
        self.session.flush()

        if self._auditor is not None:
            self._auditor.record_escrow_created(
                escrow_id, caller, project_id, contractor, total_amount
            )
        logger.info(
            "escrow_created",
            extra={
                "escrow_id": escrow_id,
                "project_id": project_id,
                "client": caller,
                "contractor": contractor,
                "total_amount": total_amount,
            },
        )
        return escrow_info(escrow)

    def get_escrow(self, escrow_id: str) -> EscrowInfo | None:
        """Pure read; no authorization."""
        return self._selector.get_escrow(escrow_id)

    def _set_status(
        self,
        escrow: Escrow,
        caller: str,
        new_status: str,
        action: AuditAction,
    ) -> EscrowInfo:
        previous = escrow.status
        escrow.status = new_status
        escrow.updated_by = caller
        self.session.flush()

        if self._auditor is not None:
            self._auditor.record_escrow_status_change(
                escrow.escrow_id, caller, action, previous, new_status
            )
        logger.info(
            action.value,
            extra={
                "escrow_id": escrow.escrow_id,
                "from_status": previous,
                "to_status": new_status,
            },
        )
        return escrow_info(escrow)

    def close_escrow(self, caller: str, escrow_id: str) -> EscrowInfo:
        """
        ACTIVE -> CLOSED.  Client or admin only.

        Raises:
            EscrowNotFoundError, UnauthorizedError, EscrowNotActiveError.
        """
        escrow = self.lock_escrow(escrow_id)
        info = escrow_info(escrow)
        if not authorization.can_manage_funds(caller, info, self._auth.current_admin()):
            raise UnauthorizedError(caller, "close_escrow", escrow_id)
        target = transitions.require_escrow_status("close_escrow", info)
        return self._set_status(escrow, caller, target.value, AuditAction.ESCROW_CLOSED)

    def dispute_escrow(self, caller: str, escrow_id: str) -> EscrowInfo:
        """
        ACTIVE -> DISPUTED.  Client or contractor only; the admin may not.

        Raises:
            EscrowNotFoundError, UnauthorizedError, EscrowNotActiveError.
        """
        escrow = self.lock_escrow(escrow_id)
        info = escrow_info(escrow)
        if not authorization.can_raise_dispute(caller, info):
            raise UnauthorizedError(caller, "dispute_escrow", escrow_id)
        target = transitions.require_escrow_status("dispute_escrow", info)
        return self._set_status(escrow, caller, target.value, AuditAction.ESCROW_DISPUTED)

    def resolve_dispute(
        self,
        caller: str,
        escrow_id: str,
        new_status: str | EscrowStatus,
    ) -> EscrowInfo:
        """
        DISPUTED -> ``new_status``.  Admin only.

        With the default policy ``new_status`` must be ``active`` or
        ``closed``.

        Raises:
            EscrowNotFoundError, UnauthorizedError, EscrowNotDisputedError,
            InvalidResolutionStatusError.
        """
        escrow = self.lock_escrow(escrow_id)
        if not self._auth.is_admin(caller):
            raise UnauthorizedError(caller, "resolve_dispute", escrow_id)
        transitions.require_escrow_status("resolve_dispute", escrow_info(escrow))
        target = transitions.resolution_target(
            escrow_id, new_status, self._policy.restrict_resolution_status
        )
        return self._set_status(escrow, caller, target, AuditAction.DISPUTE_RESOLVED)
