"""
inventory_config -- single public entrypoint for runtime settings.

Responsibility:
    Provides ``get_active_settings()``, which loads a named settings
    profile from ``inventory_config/sets/<profile>.yaml`` and returns a
    frozen ``LedgerSettings``.

Architecture position:
    Configuration sits above ``inventory_kernel`` and below
    ``inventory_batch`` / ``inventory_services`` / scripts.  The kernel
    MUST NEVER import from ``inventory_config``; the builders in
    ``inventory_config.bridges`` pass the parsed values (ttl, exclusive
    claim kinds) into kernel constructors.

Failure modes:
    - ``FileNotFoundError`` -- no settings file for the requested profile.
    - ``ValueError`` -- malformed value; the message names the key.
"""

from __future__ import annotations

import logging
from pathlib import Path

from inventory_config.bridges import build_claim_registry, build_ledger, build_request_service
from inventory_config.loader import load_settings, parse_duration
from inventory_config.schema import LedgerSettings

_logger = logging.getLogger("inventory_kernel.config")

# Default settings profiles directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_settings(
    profile: str = "default",
    config_dir: Path | None = None,
) -> LedgerSettings:
    """Load the settings profile ``profile``.

    Args:
        profile: Profile name; the file ``<profile>.yaml`` is loaded.
        config_dir: Override path to the profiles directory.  Defaults to
            inventory_config/sets/.

    Raises:
        FileNotFoundError: If no such profile exists.
        ValueError: If a value is malformed.
    """
    sets_dir = Path(config_dir) if config_dir is not None else _DEFAULT_CONFIG_DIR
    path = sets_dir / f"{profile}.yaml"
    if not path.is_file():
        available = sorted(p.stem for p in sets_dir.glob("*.yaml")) if sets_dir.is_dir() else []
        raise FileNotFoundError(
            f"No settings profile {profile!r} in {sets_dir} (available: {available})"
        )

    settings = load_settings(path)
    _logger.info(
        "INVENTORY_CONFIG_TRACE",
        extra={
            "profile": settings.profile,
            "ttl_seconds": settings.ttl.total_seconds(),
            "tick_interval_seconds": settings.tick_interval_seconds,
            "exclusive_claim_kinds": sorted(k.value for k in settings.exclusive_claim_kinds),
            "store": "sql" if settings.database_url else "memory",
        },
    )
    return settings


__all__ = [
    "LedgerSettings",
    "build_claim_registry",
    "build_ledger",
    "build_request_service",
    "get_active_settings",
    "load_settings",
    "parse_duration",
]
