"""
AuthorizationService -- the admin principal cell and role predicates.

Responsibility:
    Holds the one piece of process-wide state the escrow ledger needs:
    the current admin principal.  Answers the role predicates every
    other service consults.

Architecture position:
    Kernel > Services.  Leaf service: consumed by EscrowRegistry and
    PaymentLedger.

Invariants enforced:
    - One admin at a time, stored in a single-row table.
    - The admin changes only through ``transfer_admin``, and only when the
      caller is the current admin.

Failure modes:
    - AdminAlreadyInitializedError when initializing to a different deployer.
    - UnauthorizedError when a non-admin attempts a transfer.
    - InvalidPrincipalError when the deployer or new admin is empty or
      longer than MAX_PRINCIPAL_LENGTH.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from escrow_kernel.domain import authorization, transitions
from escrow_kernel.exceptions import AdminAlreadyInitializedError, UnauthorizedError
from escrow_kernel.logging_config import get_logger
from escrow_kernel.models.admin import ADMIN_SLOT, AdminPrincipal
from escrow_kernel.selectors.escrow_selector import EscrowSelector
from escrow_kernel.services.auditor_service import AuditorService
from escrow_kernel.services.base import BaseService

logger = get_logger("services.authorization")


class AuthorizationService(BaseService):
    """
    Authorization context for escrow operations.

    Usage:
        auth = AuthorizationService(session)
        auth.initialize("deployer")
        auth.is_admin("deployer")        # True
        auth.transfer_admin("deployer", "ops-team")
    """

    def __init__(self, session: Session, auditor: AuditorService | None = None):
        super().__init__(session)
        self._auditor = auditor
        self._selector = EscrowSelector(session)

    def _cell(self, for_update: bool = False) -> AdminPrincipal | None:
        stmt = select(AdminPrincipal).where(AdminPrincipal.slot == ADMIN_SLOT)
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def initialize(self, deployer: str) -> str:
        """
        Record the deployer as the first admin.

        Idempotent for the same deployer.

        Raises:
            AdminAlreadyInitializedError: a different admin is already set.
            InvalidPrincipalError: ``deployer`` is empty or too long.
        """
        transitions.validate_principal("deployer", deployer)
        cell = self._cell(for_update=True)
        if cell is not None:
            if cell.principal != deployer:
                raise AdminAlreadyInitializedError(cell.principal)
            return cell.principal

        self.session.add(
            AdminPrincipal(slot=ADMIN_SLOT, principal=deployer, created_by=deployer)
        )
        self.session.flush()
        if self._auditor is not None:
            self._auditor.record_admin_initialized(deployer)
        logger.info("admin_initialized", extra={"admin": deployer})
        return deployer

    def current_admin(self) -> str | None:
        cell = self._cell()
        return cell.principal if cell else None

    def is_admin(self, caller: str) -> bool:
        return authorization.is_admin(caller, self.current_admin())

    def is_escrow_client(self, caller: str, escrow_id: str) -> bool:
        return authorization.is_escrow_client(caller, self._selector.get_escrow(escrow_id))

    def is_escrow_contractor(self, caller: str, escrow_id: str) -> bool:
        return authorization.is_escrow_contractor(
            caller, self._selector.get_escrow(escrow_id)
        )

    def transfer_admin(self, caller: str, new_admin: str) -> str:
        """
        Hand admin rights to ``new_admin``.

        Raises:
            UnauthorizedError: caller is not the current admin (or no admin
                has been initialized).
            InvalidPrincipalError: ``new_admin`` is empty or too long.
        """
        cell = self._cell(for_update=True)
        if cell is None or cell.principal != caller:
            raise UnauthorizedError(caller, "transfer_admin")
        transitions.validate_principal("new_admin", new_admin)

        previous = cell.principal
        cell.principal = new_admin
        cell.updated_by = caller
        self.session.flush()
        if self._auditor is not None:
            self._auditor.record_admin_transferred(previous, new_admin)
        logger.info(
            "admin_transferred",
            extra={"previous_admin": previous, "new_admin": new_admin},
        )
        return new_admin
