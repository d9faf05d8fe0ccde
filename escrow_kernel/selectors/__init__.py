"""Read-only query selectors for the escrow kernel."""
