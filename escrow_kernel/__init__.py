"""
Escrow Kernel

A deterministic escrow and payment ledger with:
- Per-escrow linearizable, all-or-nothing operations
- Multi-party authorization (client, contractor, admin)
- Dispute / resolution protocol
- Monotonic release markers
- Full auditability via hash chain
"""

__version__ = "0.1.0"
