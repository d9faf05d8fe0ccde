"""
External collaborator contracts.

Responsibility:
    Read-only views of the sibling registries (milestone tracker,
    inspection log, contractor registry) that the escrow kernel may
    consult before releasing funds or opening an escrow.  The kernel
    never writes to them and never implements them.

Architecture position:
    Kernel > Domain -- protocols and fact DTOs only, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class MilestoneFacts:
    """What the milestone tracker knows about one milestone."""

    completed: bool
    verified: bool
    payment_percentage: int


@dataclass(frozen=True)
class InspectionFacts:
    """What the inspection log knows about one inspection."""

    status: str
    passed: bool


@dataclass(frozen=True)
class ContractorFacts:
    """What the contractor registry knows about one contractor."""

    is_verified: bool
    rating: int


@runtime_checkable
class MilestoneVerification(Protocol):
    def get_milestone(self, project_id: str, milestone_id: str) -> MilestoneFacts | None:
        ...


@runtime_checkable
class InspectionLog(Protocol):
    def get_inspection(self, project_id: str, inspection_id: str) -> InspectionFacts | None:
        ...


@runtime_checkable
class ContractorRegistry(Protocol):
    def get_contractor(self, contractor_id: str) -> ContractorFacts | None:
        ...
