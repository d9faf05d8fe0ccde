"""
Config -> Kernel Bridges.

Converts ``EscrowPolicyConfig`` into kernel-compatible inputs.  Lives in
escrow_config (the producer) because the kernel must never import
escrow_config.

Usage:
    from escrow_config import get_active_config
    from escrow_config.bridges import build_ledger_policy

    policy = build_ledger_policy(get_active_config())
    machine = EscrowStateMachine(session, policy=policy)
"""

from __future__ import annotations

from escrow_config.schema import EscrowPolicyConfig
from escrow_kernel.domain.policy import LedgerPolicy


def build_ledger_policy(config: EscrowPolicyConfig) -> LedgerPolicy:
    """Build the kernel's LedgerPolicy from a loaded configuration set."""
    return LedgerPolicy(
        reject_duplicate_payments=config.reject_duplicate_payments,
        restrict_resolution_status=config.restrict_resolution_status,
        require_verified_milestone=config.gates.require_verified_milestone,
        require_passed_inspection=config.gates.require_passed_inspection,
        require_verified_contractor=config.gates.require_verified_contractor,
        min_contractor_rating=config.gates.min_contractor_rating,
    )
