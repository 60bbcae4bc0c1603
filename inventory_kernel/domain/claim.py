"""
Asset and claim domain types (``inventory_kernel.domain.claim``).

Responsibility
--------------
Pure value objects for the quantity ledger: the asset counters, the claim
record, and the closed claim lifecycle state machine.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``models/``, ``services/`` or outer layers.

Lifecycle
---------
``CLAIM_TRANSITIONS`` defines the only valid state changes::

    open --> completed
    open --> cancelled

Consumption claims are born ``completed`` and never move.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class AssetKind(str, Enum):
    """Whether units are used up or come back."""

    CONSUMABLE = "consumable"
    NON_CONSUMABLE = "non_consumable"


class ClaimKind(str, Enum):
    """The consumer workflow that holds a claim."""

    REPAIR = "repair"
    MAINTENANCE = "maintenance"
    EVENT_ALLOCATION = "event_allocation"
    BORROW = "borrow"
    CONSUMPTION = "consumption"


class ClaimState(str, Enum):
    """Claim lifecycle states."""

    OPEN = "open"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


CLAIM_TRANSITIONS: dict[ClaimState, frozenset[ClaimState]] = {
    ClaimState.OPEN: frozenset({
        ClaimState.COMPLETED,
        ClaimState.CANCELLED,
    }),
    ClaimState.COMPLETED: frozenset(),
    ClaimState.CANCELLED: frozenset(),
}

TERMINAL_CLAIM_STATES: frozenset[ClaimState] = frozenset({
    ClaimState.COMPLETED,
    ClaimState.CANCELLED,
})

# Kinds whose quantity comes back to the pool when the claim closes.
RESTORING_CLAIM_KINDS: frozenset[ClaimKind] = frozenset({
    ClaimKind.REPAIR,
    ClaimKind.MAINTENANCE,
    ClaimKind.EVENT_ALLOCATION,
    ClaimKind.BORROW,
})


@dataclass(frozen=True)
class Asset:
    """Ledger view of one catalog asset.

    ``available`` is owned by the ledger.  ``total_quantity`` only changes
    through consumption (down) and restocking (up).
    """

    asset_id: UUID
    name: str
    kind: AssetKind
    total_quantity: int
    available: int
    borrowing_enabled: bool = False

    @property
    def claimed(self) -> int:
        """Units currently held by open claims."""
        return self.total_quantity - self.available


@dataclass(frozen=True)
class Claim:
    """Immutable snapshot of a reservation against an asset.

    ``reference`` links the claim to the record that opened it
    (``issue:<id>``, ``event:<id>``, ``borrowing:<id>``).
    ``consumed_quantity`` is the number of units permanently removed when
    the claim closed; ``returned_quantity`` is the number that went back to
    ``available``.
    """

    claim_id: UUID
    asset_id: UUID
    kind: ClaimKind
    quantity: int
    state: ClaimState
    opened_at: datetime
    closed_at: datetime | None = None
    reference: str | None = None
    consumed_quantity: int = 0
    returned_quantity: int = 0

    @property
    def is_open(self) -> bool:
        return self.state == ClaimState.OPEN

    @property
    def is_cancellable(self) -> bool:
        return self.kind in RESTORING_CLAIM_KINDS
