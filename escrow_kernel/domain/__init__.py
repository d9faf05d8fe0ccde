"""Pure functional core of the escrow kernel (no I/O)."""
