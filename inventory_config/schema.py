"""
Configuration schema (``inventory_config.schema``).

Frozen dataclasses describing the runtime configuration surface.  Parsing
lives in ``inventory_config.loader``; nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

from inventory_kernel.domain.claim import ClaimKind


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the ledger, the request service and the scheduler.

    ``ttl`` is the lifetime of a pending acquisition request before it is
    auto-declined; ``tick_interval`` is the scheduler polling granularity.
    ``database_url`` of None selects the in-memory store.
    """

    ttl: timedelta = timedelta(days=7)
    tick_interval: timedelta = timedelta(seconds=60)
    exclusive_claim_kinds: frozenset[ClaimKind] = field(
        default_factory=lambda: frozenset({ClaimKind.REPAIR})
    )
    database_url: str | None = None
    log_level: str = "INFO"
    profile: str = "default"

    @property
    def tick_interval_seconds(self) -> float:
        return self.tick_interval.total_seconds()
