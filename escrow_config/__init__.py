"""
escrow_config -- single public entrypoint for escrow ledger configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``EscrowPolicyConfig``.

Architecture position:
    Configuration -- sits above ``escrow_kernel``.  The kernel MUST NEVER
    import from ``escrow_config``; ``escrow_config.bridges`` translates
    the loaded config into a kernel ``LedgerPolicy``.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- unknown keys or wrongly typed values.

Audit relevance:
    Every successful ``get_active_config()`` call emits an
    ``ESCROW_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying each deployment to the exact toggles it ran under.
"""

from __future__ import annotations

import logging
from pathlib import Path

from escrow_config.loader import load_config_file
from escrow_config.schema import CollaboratorGates, EscrowPolicyConfig

_logger = logging.getLogger("escrow_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> EscrowPolicyConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration file.  Defaults to
            escrow_config/sets/default.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    config = load_config_file(path)

    _logger.info(
        "ESCROW_CONFIG_TRACE",
        extra={
            "trace_type": "ESCROW_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "reject_duplicate_payments": config.reject_duplicate_payments,
            "restrict_resolution_status": config.restrict_resolution_status,
            "gates_enabled": config.any_gate_enabled,
        },
    )
    return config


__all__ = ["CollaboratorGates", "EscrowPolicyConfig", "get_active_config"]
