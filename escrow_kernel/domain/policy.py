"""
LedgerPolicy -- kernel-side view of the configurable hardening toggles.

Responsibility:
    Carries the decisions the kernel makes differently depending on
    deployment: whether duplicate payment ids are rejected, whether
    dispute resolution is restricted to known statuses, and which
    collaborator gates guard escrow creation and payment release.

Architecture position:
    Kernel > Domain -- pure.  Built from ``escrow_config`` by
    ``escrow_config.bridges.build_ledger_policy``; the kernel never
    imports the config package.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class LedgerPolicy:
    """Hardening toggles.  Defaults are the hardened behaviour."""

    reject_duplicate_payments: bool = True
    restrict_resolution_status: bool = True
    require_verified_milestone: bool = False
    require_passed_inspection: bool = False
    require_verified_contractor: bool = False
    min_contractor_rating: int = 0

    @classmethod
    def literal(cls) -> "LedgerPolicy":
        """The reference behaviour: overwrite duplicates, any resolved status."""
        return cls(reject_duplicate_payments=False, restrict_resolution_status=False)


DEFAULT_POLICY = LedgerPolicy()
