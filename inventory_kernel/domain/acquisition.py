"""
Acquisition request domain types (``inventory_kernel.domain.acquisition``).

Responsibility
--------------
Pure value objects for requests to obtain *new* stock, and the closed
request lifecycle state machine.  Acquisition requests never touch the
quantity ledger.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Lifecycle
---------
``REQUEST_TRANSITIONS`` defines the only valid state changes::

    pending  --> approved | declined        (compare-and-swap, one winner)
    approved --> archived
    declined --> archived
    archived --> approved | declined        (restore to the prior state)

Deleting is only allowed from ``archived`` and removes the record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID


class RequestState(str, Enum):
    """Acquisition request lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"
    ARCHIVED = "archived"


REQUEST_TRANSITIONS: dict[RequestState, frozenset[RequestState]] = {
    RequestState.PENDING: frozenset({
        RequestState.APPROVED,
        RequestState.DECLINED,
    }),
    RequestState.APPROVED: frozenset({RequestState.ARCHIVED}),
    RequestState.DECLINED: frozenset({RequestState.ARCHIVED}),
    RequestState.ARCHIVED: frozenset({
        RequestState.APPROVED,
        RequestState.DECLINED,
    }),
}

# States a pending request resolves into.
RESOLVED_REQUEST_STATES: frozenset[RequestState] = frozenset({
    RequestState.APPROVED,
    RequestState.DECLINED,
})


def compute_deadline(created_at: datetime, ttl: timedelta) -> datetime:
    """Instant after which a still-pending request is auto-declined."""
    return created_at + ttl


@dataclass(frozen=True)
class AcquisitionRequest:
    """Immutable snapshot of a request for new stock.

    ``deadline`` is fixed at creation, so changing the configured TTL
    never moves existing deadlines.  ``archived_from`` remembers the
    terminal state to restore.
    """

    request_id: UUID
    asset_name: str
    quantity: int
    requested_by: str
    created_at: datetime
    deadline: datetime
    state: RequestState = RequestState.PENDING
    auto_declined: bool = False
    resolved_at: datetime | None = None
    archived_at: datetime | None = None
    archived_from: RequestState | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == RequestState.PENDING

    def is_expired(self, now: datetime) -> bool:
        """Pending and at or past its deadline."""
        return self.is_pending and now >= self.deadline
