"""Database layer for the escrow kernel."""
