"""
EscrowPolicyConfig schema.

The human-authored, reviewable source artifact for escrow hardening
toggles.  YAML sets are parsed into this type by the loader and turned
into the kernel's ``LedgerPolicy`` by ``escrow_config.bridges``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields


@dataclass(frozen=True)
class CollaboratorGates:
    """Which external registries must be consulted before funds move."""

    require_verified_milestone: bool = False
    require_passed_inspection: bool = False
    require_verified_contractor: bool = False
    min_contractor_rating: int = 0


@dataclass(frozen=True)
class EscrowPolicyConfig:
    """One loaded configuration set."""

    config_id: str
    version: int
    reject_duplicate_payments: bool = True
    restrict_resolution_status: bool = True
    gates: CollaboratorGates = field(default_factory=CollaboratorGates)
    checksum: str = ""

    @property
    def any_gate_enabled(self) -> bool:
        return (
            self.gates.require_verified_milestone
            or self.gates.require_passed_inspection
            or self.gates.require_verified_contractor
        )


POLICY_KEYS = frozenset(
    {"reject_duplicate_payments", "restrict_resolution_status"}
)
GATE_KEYS = frozenset(f.name for f in fields(CollaboratorGates))
