"""
Consumption workflow (``inventory_services.consumption``).

Records units used up from consumable stock.  Consumption is
irreversible: the units leave ``total_quantity`` as well as
``available``, and the claim is born completed.
"""

from __future__ import annotations

from uuid import UUID

from inventory_kernel.domain.claim import Claim
from inventory_kernel.services.quantity_ledger import QuantityLedger


class ConsumptionWorkflow:
    def __init__(self, ledger: QuantityLedger):
        self._ledger = ledger

    def record_usage(
        self,
        asset_id: UUID,
        quantity: int,
        reference: str | None = None,
    ) -> Claim:
        """Raises ClaimKindNotAllowedError for non-consumable assets."""
        claim_id = self._ledger.consume(asset_id, quantity, reference)
        return self._ledger.get_claim(claim_id)
