"""
Borrowing workflow (``inventory_services.borrowing``).

Approving a borrowing request claims every requested asset or none of
them; assets must have borrowing enabled.  Returning the items releases
the claims and is safe to repeat.
"""

from __future__ import annotations

from typing import Mapping
from uuid import UUID

from inventory_kernel.domain.claim import Claim, ClaimKind
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.quantity_ledger import QuantityLedger

from inventory_services.completion import complete_idempotently

logger = get_logger("workflows.borrowing")

BORROWING_REFERENCE_PREFIX = "borrowing"


class BorrowingWorkflow:
    def __init__(self, ledger: QuantityLedger):
        self._ledger = ledger

    def approve(self, borrowing_id: str, items: Mapping[UUID, int]) -> dict[UUID, UUID]:
        """Claim the borrowed assets; returns ``{asset_id: claim_id}``.

        Raises ClaimKindNotAllowedError for an asset without borrowing
        enabled, InsufficientQuantityError when stock is short.  Either way
        no claim of this request stays open.
        """
        reference = f"{BORROWING_REFERENCE_PREFIX}:{borrowing_id}"
        pairs = list(items.items())
        claim_ids = self._ledger.claim_many(pairs, ClaimKind.BORROW, reference)
        logger.info(
            "borrowing_approved",
            extra={"borrowing_id": borrowing_id, "assets": len(pairs)},
        )
        return {asset_id: claim_id for (asset_id, _), claim_id in zip(pairs, claim_ids)}

    def return_borrowed(self, claim_ids: list[UUID]) -> list[Claim]:
        returned = [complete_idempotently(self._ledger, claim_id) for claim_id in claim_ids]
        logger.info("borrowing_returned", extra={"claims": len(returned)})
        return returned
