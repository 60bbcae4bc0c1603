"""
Collaborator interfaces (``inventory_kernel.domain.ports``).

The kernel talks to persistence and to dependent views only through these
protocols.  Implementations live in ``inventory_kernel.storage`` and
``inventory_kernel.services.notifications``; outer layers may supply
their own.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Protocol, Sequence
from uuid import UUID

from inventory_kernel.domain.acquisition import AcquisitionRequest, RequestState
from inventory_kernel.domain.claim import Asset, Claim, ClaimState


class InventoryStore(Protocol):
    """Persistence adapter.

    Every single-record call is atomic on its own.  ``transaction()``
    groups calls made by the current thread into one all-or-nothing unit;
    the ledger uses it so the asset counter and the claim commit together.
    """

    def transaction(self) -> AbstractContextManager[None]:
        """Group writes of the current thread; roll all back on error."""
        ...

    def load_asset(self, asset_id: UUID, *, for_update: bool = False) -> Asset:
        """Raises AssetNotFoundError."""
        ...

    def save_asset(self, asset: Asset) -> None:
        ...

    def load_claim(self, claim_id: UUID) -> Claim:
        """Raises ClaimNotFoundError."""
        ...

    def save_claim(self, claim: Claim) -> None:
        ...

    def list_claims(
        self,
        asset_id: UUID,
        state: ClaimState | None = None,
    ) -> Sequence[Claim]:
        ...

    def load_request(self, request_id: UUID) -> AcquisitionRequest:
        """Raises RequestNotFoundError."""
        ...

    def save_request(self, request: AcquisitionRequest) -> None:
        ...

    def compare_and_swap_request(
        self,
        request: AcquisitionRequest,
        expected_state: RequestState,
    ) -> bool:
        """Store ``request`` only if the stored state is still ``expected_state``."""
        ...

    def list_requests(
        self,
        state: RequestState | None = None,
        *,
        due_at: datetime | None = None,
    ) -> Sequence[AcquisitionRequest]:
        """Newest first.  ``due_at`` keeps only deadlines at or before it."""
        ...

    def delete_request(
        self,
        request_id: UUID,
        expected_state: RequestState | None = None,
    ) -> bool:
        """Remove the record; with ``expected_state``, only if still in it.

        Returns False when the stored state differs.  Raises
        RequestNotFoundError.
        """
        ...


class NotificationSink(Protocol):
    """Receives every successful transition.

    Delivery is at-least-once; implementations must tolerate duplicates.
    """

    def on_claim_state_changed(self, claim: Claim) -> None:
        ...

    def on_request_state_changed(self, request: AcquisitionRequest) -> None:
        ...
