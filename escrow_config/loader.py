"""
Configuration Loader (``escrow_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``EscrowPolicyConfig``.  The single public entry point for runtime
config is ``escrow_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown keys are rejected; a misspelled toggle never silently falls
  back to its default.
* Booleans must be YAML booleans and ``min_contractor_rating`` a
  non-negative integer.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id`` or ``version``  -> ``KeyError`` propagates.
* Unknown keys or wrong types  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from escrow_config.schema import (
    GATE_KEYS,
    POLICY_KEYS,
    CollaboratorGates,
    EscrowPolicyConfig,
)

_TOP_LEVEL_KEYS = frozenset({"config_id", "version", "policy", "gates"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _reject_unknown(section: str, data: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown {section} keys: {', '.join(unknown)}")


def _parse_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean, got {value!r}")
    return value


def parse_gates(data: dict[str, Any] | None) -> CollaboratorGates:
    """Parse the ``gates`` section; absent keys keep their defaults."""
    data = data or {}
    _reject_unknown("gates", data, GATE_KEYS)
    rating = data.get("min_contractor_rating", 0)
    if isinstance(rating, bool) or not isinstance(rating, int) or rating < 0:
        raise ValueError(
            f"min_contractor_rating must be a non-negative integer, got {rating!r}"
        )
    return CollaboratorGates(
        require_verified_milestone=_parse_bool(
            "require_verified_milestone", data.get("require_verified_milestone", False)
        ),
        require_passed_inspection=_parse_bool(
            "require_passed_inspection", data.get("require_passed_inspection", False)
        ),
        require_verified_contractor=_parse_bool(
            "require_verified_contractor", data.get("require_verified_contractor", False)
        ),
        min_contractor_rating=rating,
    )


def parse_config(data: dict[str, Any]) -> EscrowPolicyConfig:
    """
    Parse a whole configuration document.

    Raises:
        KeyError: ``config_id`` or ``version`` missing.
        ValueError: unknown keys or wrongly typed values.
    """
    _reject_unknown("top-level", data, _TOP_LEVEL_KEYS)
    policy = data.get("policy") or {}
    _reject_unknown("policy", policy, POLICY_KEYS)

    version = data["version"]
    if isinstance(version, bool) or not isinstance(version, int):
        raise ValueError(f"version must be an integer, got {version!r}")

    return EscrowPolicyConfig(
        config_id=str(data["config_id"]),
        version=version,
        reject_duplicate_payments=_parse_bool(
            "reject_duplicate_payments", policy.get("reject_duplicate_payments", True)
        ),
        restrict_resolution_status=_parse_bool(
            "restrict_resolution_status", policy.get("restrict_resolution_status", True)
        ),
        gates=parse_gates(data.get("gates")),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> EscrowPolicyConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
