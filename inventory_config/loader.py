"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads a YAML settings file and parses it into a frozen
``LedgerSettings``.  Runtime callers go through
``inventory_config.get_active_settings()``.

Invariants enforced
-------------------
* Every parse error raises ``ValueError`` naming the offending key; no
  silent defaults for malformed values.
* ``ttl`` and ``tick_interval`` must be strictly positive.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml

from inventory_kernel.domain.claim import ClaimKind

from inventory_config.schema import LedgerSettings

_KNOWN_KEYS = frozenset({
    "ttl",
    "tick_interval",
    "exclusive_claim_kinds",
    "database_url",
    "log_level",
})

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)?\s*$")

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_duration(value: Any, key: str) -> timedelta:
    """
    Parse a duration from YAML.

    Accepts an integer or float number of seconds, or a string with an
    optional ``ms``/``s``/``m``/``h``/``d`` suffix (``"30s"``, ``"7d"``).
    The result must be positive.

    Raises:
        ValueError: naming ``key`` when the value is malformed or not
            positive.
    """
    if isinstance(value, timedelta):
        seconds = value.total_seconds()
    elif isinstance(value, bool):
        raise ValueError(f"{key}: expected a duration, got {value!r}")
    elif isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        match = _DURATION_RE.match(value)
        if match is None:
            raise ValueError(f"{key}: cannot parse duration {value!r}")
        amount, unit = match.groups()
        seconds = float(amount) * _UNIT_SECONDS[unit or "s"]
    else:
        raise ValueError(f"{key}: expected a duration, got {value!r}")

    if seconds <= 0:
        raise ValueError(f"{key}: must be positive, got {value!r}")
    return timedelta(seconds=seconds)


def parse_claim_kinds(value: Any, key: str) -> frozenset[ClaimKind]:
    """Parse a list of claim kind names."""
    if value is None:
        return frozenset()
    if isinstance(value, str) or not isinstance(value, (list, tuple, set)):
        raise ValueError(f"{key}: expected a list of claim kinds, got {value!r}")
    kinds = set()
    for item in value:
        try:
            kinds.add(ClaimKind(str(item).strip().lower()))
        except ValueError:
            valid = ", ".join(k.value for k in ClaimKind)
            raise ValueError(f"{key}: unknown claim kind {item!r} (expected one of {valid})") from None
    return frozenset(kinds)


def parse_log_level(value: Any, key: str) -> str:
    level = str(value).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"{key}: unknown log level {value!r}")
    return level


def parse_settings(data: dict[str, Any], profile: str = "default") -> LedgerSettings:
    """
    Parse ``LedgerSettings`` from a dict.

    Missing keys keep their ``LedgerSettings`` defaults; unknown keys are
    rejected so typos do not pass silently.
    """
    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ValueError(f"unknown configuration keys: {', '.join(unknown)}")

    defaults = LedgerSettings()
    database_url = data.get("database_url", defaults.database_url)
    if database_url is not None and not isinstance(database_url, str):
        raise ValueError(f"database_url: expected a string, got {database_url!r}")

    return LedgerSettings(
        ttl=parse_duration(data["ttl"], "ttl") if "ttl" in data else defaults.ttl,
        tick_interval=(
            parse_duration(data["tick_interval"], "tick_interval")
            if "tick_interval" in data else defaults.tick_interval
        ),
        exclusive_claim_kinds=(
            parse_claim_kinds(data["exclusive_claim_kinds"], "exclusive_claim_kinds")
            if "exclusive_claim_kinds" in data else defaults.exclusive_claim_kinds
        ),
        database_url=database_url or None,
        log_level=(
            parse_log_level(data["log_level"], "log_level")
            if "log_level" in data else defaults.log_level
        ),
        profile=profile,
    )


def load_settings(path: Path) -> LedgerSettings:
    """Load and parse a settings file; the profile name is the file stem."""
    path = Path(path)
    return parse_settings(load_yaml_file(path), profile=path.stem)
