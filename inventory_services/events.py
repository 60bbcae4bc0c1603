"""
Event allocation workflow (``inventory_services.events``).

Allocating assets to an event claims every requested asset or none of
them.  When the event ends each allocation is completed; for consumable
assets the operator reports how many units came back and the rest is
consumed.
"""

from __future__ import annotations

from typing import Mapping
from uuid import UUID

from inventory_kernel.domain.claim import Claim, ClaimKind
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.quantity_ledger import QuantityLedger

from inventory_services.completion import cancel_idempotently, complete_idempotently

logger = get_logger("workflows.events")

EVENT_REFERENCE_PREFIX = "event"


class EventAllocationWorkflow:
    def __init__(self, ledger: QuantityLedger):
        self._ledger = ledger

    def allocate(self, event_id: str, items: Mapping[UUID, int]) -> dict[UUID, UUID]:
        """Claim every asset in ``items`` for the event.

        Returns ``{asset_id: claim_id}``.  If any asset cannot be claimed,
        nothing stays allocated and the original error is raised.
        """
        reference = f"{EVENT_REFERENCE_PREFIX}:{event_id}"
        pairs = list(items.items())
        claim_ids = self._ledger.claim_many(pairs, ClaimKind.EVENT_ALLOCATION, reference)
        allocation = {asset_id: claim_id for (asset_id, _), claim_id in zip(pairs, claim_ids)}
        logger.info(
            "event_allocated",
            extra={"event_id": event_id, "assets": len(allocation)},
        )
        return allocation

    def adjust_allocation(self, claim_id: UUID, new_quantity: int) -> Claim:
        return self._ledger.adjust_quantity_change(claim_id, new_quantity)

    def complete_event(
        self,
        claim_ids: list[UUID],
        returned: Mapping[UUID, int] | None = None,
    ) -> list[Claim]:
        """Close every allocation of the event.

        ``returned`` maps claim ids to the number of units that came back;
        claims not listed are returned in full.  Safe to call again after a
        partial failure.
        """
        returned = returned or {}
        closed = []
        for claim_id in claim_ids:
            if claim_id in returned:
                quantity = returned[claim_id]
                closed.append(complete_idempotently(
                    self._ledger,
                    claim_id,
                    lambda cid, q=quantity: self._ledger.complete_with_return(cid, q),
                ))
            else:
                closed.append(complete_idempotently(self._ledger, claim_id))
        logger.info(
            "event_completed",
            extra={
                "claims": len(closed),
                "consumed": sum(c.consumed_quantity for c in closed),
            },
        )
        return closed

    def cancel_event(self, claim_ids: list[UUID]) -> list[Claim]:
        return [cancel_idempotently(self._ledger, claim_id) for claim_id in claim_ids]
