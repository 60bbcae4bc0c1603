"""
ClaimRegistry -- index of open claims per asset.

Responsibility:
    Keeps the non-owning index ``asset_id -> {open claims}`` that
    completion and cancellation flows use to find claims, and that the
    ledger consults to reject conflicting new claims.

Architecture position:
    Kernel > Services.  Reads through ``InventoryStore``; never writes.
    Only ``QuantityLedger`` updates the index, and only after the ledger's
    unit of work has committed.

Invariants enforced:
    - The index holds open claims only.  A claim leaves the index as soon
      as it is completed or cancelled.
    - The index for an asset is hydrated lazily from the store the first
      time it is read, so a fresh registry agrees with persisted state.

Conflict rule:
    A new claim conflicts when
    (a) its kind is exclusive (default: repair) and an open claim of the
        same kind exists for the asset, or
    (b) it carries a ``reference`` and an open claim with the same
        (asset, kind, reference) exists.

Non-goals:
    - No cross-process coherence.  Deployments running several ledger
      processes against one database call ``invalidate()`` or use a
      fresh registry per unit of work.
"""

from __future__ import annotations

import threading
from typing import Iterable
from uuid import UUID

from inventory_kernel.domain.claim import Claim, ClaimKind, ClaimState
from inventory_kernel.domain.ports import InventoryStore
from inventory_kernel.exceptions import ConflictingClaimError
from inventory_kernel.logging_config import get_logger

logger = get_logger("services.claim_registry")

DEFAULT_EXCLUSIVE_CLAIM_KINDS: frozenset[ClaimKind] = frozenset({ClaimKind.REPAIR})


class ClaimRegistry:
    """In-process index of open claims, keyed by asset."""

    def __init__(
        self,
        store: InventoryStore,
        exclusive_kinds: Iterable[ClaimKind] = DEFAULT_EXCLUSIVE_CLAIM_KINDS,
    ):
        self._store = store
        self._exclusive_kinds = frozenset(ClaimKind(k) for k in exclusive_kinds)
        self._lock = threading.RLock()
        self._index: dict[UUID, dict[UUID, Claim]] = {}

    @property
    def exclusive_kinds(self) -> frozenset[ClaimKind]:
        return self._exclusive_kinds

    def _entries(self, asset_id: UUID) -> dict[UUID, Claim]:
        with self._lock:
            entries = self._index.get(asset_id)
            if entries is None:
                entries = {
                    c.claim_id: c
                    for c in self._store.list_claims(asset_id, ClaimState.OPEN)
                }
                self._index[asset_id] = entries
                logger.debug(
                    "registry_hydrated",
                    extra={"asset_id": str(asset_id), "open_claims": len(entries)},
                )
            return entries

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def open_claims_for(self, asset_id: UUID) -> frozenset[Claim]:
        """Snapshot of the open claims against ``asset_id``."""
        with self._lock:
            return frozenset(self._entries(asset_id).values())

    def find_open(
        self,
        asset_id: UUID,
        kind: ClaimKind,
        reference: str | None = None,
    ) -> Claim | None:
        """Oldest open claim of ``kind`` (and ``reference``, if given)."""
        matches = [
            c for c in self.open_claims_for(asset_id)
            if c.kind == kind and (reference is None or c.reference == reference)
        ]
        if not matches:
            return None
        return min(matches, key=lambda c: c.opened_at)

    def claims_for(
        self,
        asset_id: UUID,
        state: ClaimState | None = None,
    ) -> list[Claim]:
        """Claim history for an asset, oldest first (read from the store)."""
        return list(self._store.list_claims(asset_id, state))

    def check_conflict(
        self,
        asset_id: UUID,
        kind: ClaimKind,
        reference: str | None = None,
    ) -> None:
        """Raise ConflictingClaimError if a new claim would collide."""
        for existing in sorted(self.open_claims_for(asset_id), key=lambda c: c.opened_at):
            if existing.kind != kind:
                continue
            if kind in self._exclusive_kinds or (
                reference is not None and existing.reference == reference
            ):
                raise ConflictingClaimError(
                    str(asset_id), kind.value, str(existing.claim_id),
                )

    # -------------------------------------------------------------------------
    # Index maintenance (ledger only)
    # -------------------------------------------------------------------------

    def record(self, claim: Claim) -> None:
        """Apply the committed state of ``claim`` to the index."""
        with self._lock:
            entries = self._index.get(claim.asset_id)
            if entries is None:
                # Not hydrated yet: the next read loads it from the store.
                return
            if claim.is_open:
                entries[claim.claim_id] = claim
            else:
                entries.pop(claim.claim_id, None)

    def invalidate(self, asset_id: UUID | None = None) -> None:
        """Drop cached entries so the next read reloads from the store."""
        with self._lock:
            if asset_id is None:
                self._index.clear()
            else:
                self._index.pop(asset_id, None)
