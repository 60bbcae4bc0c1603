"""
InMemoryInventoryStore -- dict-backed persistence adapter.

Responsibility:
    Implements ``InventoryStore`` for tests, demos and single-process
    deployments without a database.

Architecture position:
    Kernel > Storage.  May import from domain/ and exceptions only.

Guarantees:
    - Every single-record read or write is atomic under an internal lock.
    - ``transaction()`` keeps a per-thread undo journal.  If the block
      raises, every record it touched is restored to its prior value
      (or removed if it did not exist), then the error propagates.
    - ``compare_and_swap_request`` checks and writes under the same lock.

Non-goals:
    - No isolation between concurrent transactions: callers serialize
      conflicting writers themselves (the ledger holds a per-asset lock).
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator
from uuid import UUID

from inventory_kernel.domain.acquisition import AcquisitionRequest, RequestState
from inventory_kernel.domain.claim import Asset, Claim, ClaimState
from inventory_kernel.exceptions import (
    AssetNotFoundError,
    ClaimNotFoundError,
    RequestNotFoundError,
)
from inventory_kernel.logging_config import get_logger

logger = get_logger("storage.memory")

_MISSING = object()


class InMemoryInventoryStore:
    """Thread-safe in-process implementation of ``InventoryStore``."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._assets: dict[UUID, Asset] = {}
        self._claims: dict[UUID, Claim] = {}
        self._requests: dict[UUID, AcquisitionRequest] = {}
        self._local = threading.local()

    # -------------------------------------------------------------------------
    # Unit of work
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes of the current thread; nested calls join the outer one."""
        if getattr(self._local, "journal", None) is not None:
            yield
            return

        self._local.journal = []
        try:
            yield
        except BaseException:
            self._rollback(self._local.journal)
            raise
        finally:
            self._local.journal = None

    def _remember(self, table: dict, key: UUID) -> None:
        journal = getattr(self._local, "journal", None)
        if journal is None:
            return
        if any(t is table and k == key for t, k, _ in journal):
            return
        journal.append((table, key, table.get(key, _MISSING)))

    def _rollback(self, journal: list[tuple[dict, UUID, Any]]) -> None:
        with self._lock:
            for table, key, previous in reversed(journal):
                if previous is _MISSING:
                    table.pop(key, None)
                else:
                    table[key] = previous
        logger.debug("memory_transaction_rolled_back", extra={"records": len(journal)})

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def load_asset(self, asset_id: UUID, *, for_update: bool = False) -> Asset:
        with self._lock:
            asset = self._assets.get(asset_id)
        if asset is None:
            raise AssetNotFoundError(str(asset_id))
        return asset

    def save_asset(self, asset: Asset) -> None:
        with self._lock:
            self._remember(self._assets, asset.asset_id)
            self._assets[asset.asset_id] = asset

    # -------------------------------------------------------------------------
    # Claims
    # -------------------------------------------------------------------------

    def load_claim(self, claim_id: UUID) -> Claim:
        with self._lock:
            claim = self._claims.get(claim_id)
        if claim is None:
            raise ClaimNotFoundError(str(claim_id))
        return claim

    def save_claim(self, claim: Claim) -> None:
        with self._lock:
            self._remember(self._claims, claim.claim_id)
            self._claims[claim.claim_id] = claim

    def list_claims(
        self,
        asset_id: UUID,
        state: ClaimState | None = None,
    ) -> list[Claim]:
        with self._lock:
            claims = [
                c for c in self._claims.values()
                if c.asset_id == asset_id and (state is None or c.state == state)
            ]
        return sorted(claims, key=lambda c: c.opened_at)

    # -------------------------------------------------------------------------
    # Acquisition requests
    # -------------------------------------------------------------------------

    def load_request(self, request_id: UUID) -> AcquisitionRequest:
        with self._lock:
            request = self._requests.get(request_id)
        if request is None:
            raise RequestNotFoundError(str(request_id))
        return request

    def save_request(self, request: AcquisitionRequest) -> None:
        with self._lock:
            self._remember(self._requests, request.request_id)
            self._requests[request.request_id] = request

    def compare_and_swap_request(
        self,
        request: AcquisitionRequest,
        expected_state: RequestState,
    ) -> bool:
        with self._lock:
            current = self._requests.get(request.request_id)
            if current is None:
                raise RequestNotFoundError(str(request.request_id))
            if current.state != expected_state:
                return False
            self._remember(self._requests, request.request_id)
            self._requests[request.request_id] = request
            return True

    def list_requests(
        self,
        state: RequestState | None = None,
        *,
        due_at: datetime | None = None,
    ) -> list[AcquisitionRequest]:
        with self._lock:
            requests = [
                r for r in self._requests.values()
                if (state is None or r.state == state)
                and (due_at is None or r.deadline <= due_at)
            ]
        return sorted(requests, key=lambda r: r.created_at, reverse=True)

    def delete_request(
        self,
        request_id: UUID,
        expected_state: RequestState | None = None,
    ) -> bool:
        with self._lock:
            current = self._requests.get(request_id)
            if current is None:
                raise RequestNotFoundError(str(request_id))
            if expected_state is not None and current.state != expected_state:
                return False
            self._remember(self._requests, request_id)
            del self._requests[request_id]
            return True
