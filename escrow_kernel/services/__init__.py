"""Imperative shell: services that mutate escrow state within the caller's transaction."""
