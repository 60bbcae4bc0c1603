"""
Maintenance workflow (``inventory_services.maintenance``).

Scheduled maintenance holds units through a Maintenance claim.  Operators
may edit the quantity while the maintenance is in progress; only the
difference moves through the ledger.
"""

from __future__ import annotations

from uuid import UUID

from inventory_kernel.domain.claim import Claim, ClaimKind
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.quantity_ledger import QuantityLedger

from inventory_services.completion import cancel_idempotently, complete_idempotently

logger = get_logger("workflows.maintenance")


class MaintenanceWorkflow:
    def __init__(self, ledger: QuantityLedger):
        self._ledger = ledger

    def schedule(
        self,
        asset_id: UUID,
        quantity: int,
        reference: str | None = None,
    ) -> UUID:
        return self._ledger.claim(asset_id, quantity, ClaimKind.MAINTENANCE, reference)

    def change_quantity(self, claim_id: UUID, new_quantity: int) -> Claim:
        """Raises ExceedsAvailableError when growth exceeds ``available``."""
        return self._ledger.adjust_quantity_change(claim_id, new_quantity)

    def complete_maintenance(self, claim_id: UUID) -> Claim:
        claim = complete_idempotently(self._ledger, claim_id)
        logger.info(
            "maintenance_completed",
            extra={"claim_id": str(claim_id), "quantity": claim.quantity},
        )
        return claim

    def cancel_maintenance(self, claim_id: UUID) -> Claim:
        return cancel_idempotently(self._ledger, claim_id)
