"""
QuantityLedger -- the single writer of every asset's ``available`` counter.

Responsibility:
    Every quantity mutation in the system (repair, maintenance, event
    allocation, borrowing, consumption, restocking) goes through this
    service.  It validates the request against the pure quantity rules,
    persists the new asset counters and the claim as one unit of work,
    updates the claim registry, and notifies dependent views.

Architecture position:
    Kernel > Services -- imperative shell around
    ``inventory_kernel.domain.quantity``.

Invariants enforced:
    - Conservation: for every asset,
      ``total_quantity - available == sum(open claim quantities)`` at every
      committed point, and ``0 <= available <= total_quantity``.
    - Per-asset linearizability: claim, release, cancel, adjust and return
      on one asset run under that asset's lock (plus ``SELECT ... FOR
      UPDATE`` on SQL stores).  Different assets never block each other.
    - All or nothing: the asset counters and the claim are written in one
      ``store.transaction()``; any failure rolls both back.
    - No double release: a second release of the same claim raises
      ClaimAlreadyClosedError and leaves ``available`` untouched.

Failure modes:
    - InvalidQuantityError, InsufficientQuantityError, ExceedsAvailableError.
    - ClaimNotFoundError, ClaimAlreadyClosedError, NotCancellableError,
      ConflictingClaimError, ClaimKindNotAllowedError.
    - AssetNotFoundError, AssetAlreadyExistsError.
    - LedgerStorageError: the store failed mid-operation.  Nothing was
      applied; the caller may retry.

Audit relevance:
    Every committed mutation is logged at INFO with the asset counters
    before and after.
"""

from __future__ import annotations

import threading
from typing import Callable, Sequence
from uuid import UUID, uuid4

from inventory_kernel.domain.claim import (
    Asset,
    AssetKind,
    Claim,
    ClaimKind,
    ClaimState,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.ports import InventoryStore, NotificationSink
from inventory_kernel.domain.quantity import (
    cancel_claim,
    conservation_holds,
    open_claim,
    receive_stock,
    release_claim,
    resize_claim,
    return_claim,
)
from inventory_kernel.exceptions import (
    AssetAlreadyExistsError,
    AssetNotFoundError,
    ClaimAlreadyClosedError,
    InvalidQuantityError,
    InventoryKernelError,
    LedgerStorageError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.claim_registry import ClaimRegistry
from inventory_kernel.services.notifications import (
    NullNotificationSink,
    deliver_claim,
)

logger = get_logger("services.quantity_ledger")

# asset -> (new asset, new or updated claim)
_Mutation = Callable[[Asset], tuple[Asset, Claim | None]]


class AssetLocks:
    """One mutex per asset, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[UUID, threading.Lock] = {}

    def for_asset(self, asset_id: UUID) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(asset_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[asset_id] = lock
            return lock


class QuantityLedger:
    """
    Atomic claim/release operations over asset quantities.

    Contract:
        Callers never touch ``Asset.available`` directly; they open claims
        and close them through this service.

    Usage:
        ledger = QuantityLedger(store)
        claim_id = ledger.claim(asset_id, 4, ClaimKind.REPAIR)
        ledger.release(claim_id)
    """

    def __init__(
        self,
        store: InventoryStore,
        registry: ClaimRegistry | None = None,
        notifier: NotificationSink | None = None,
        clock: Clock | None = None,
    ):
        self._store = store
        self._registry = registry or ClaimRegistry(store)
        self._notifier = notifier or NullNotificationSink()
        self._clock = clock or SystemClock()
        self._locks = AssetLocks()

    @property
    def registry(self) -> ClaimRegistry:
        return self._registry

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    def register_asset(
        self,
        name: str,
        kind: AssetKind,
        total_quantity: int,
        *,
        borrowing_enabled: bool = False,
        asset_id: UUID | None = None,
    ) -> Asset:
        """Create an asset with every unit available."""
        if (
            isinstance(total_quantity, bool)
            or not isinstance(total_quantity, int)
            or total_quantity < 0
        ):
            raise InvalidQuantityError(total_quantity, "must not be negative")

        asset = Asset(
            asset_id=asset_id or uuid4(),
            name=name,
            kind=AssetKind(kind),
            total_quantity=total_quantity,
            available=total_quantity,
            borrowing_enabled=borrowing_enabled,
        )
        with self._locks.for_asset(asset.asset_id):
            try:
                with self._store.transaction():
                    try:
                        self._store.load_asset(asset.asset_id)
                    except AssetNotFoundError:
                        pass
                    else:
                        raise AssetAlreadyExistsError(str(asset.asset_id))
                    self._store.save_asset(asset)
            except InventoryKernelError:
                raise
            except Exception as exc:
                raise self._storage_failure(
                    "register_asset", exc, asset_id=asset.asset_id,
                ) from exc

        logger.info(
            "asset_registered",
            extra={
                "asset_id": str(asset.asset_id),
                "kind": asset.kind.value,
                "total_quantity": asset.total_quantity,
                "borrowing_enabled": asset.borrowing_enabled,
            },
        )
        return asset

    def add_stock(self, asset_id: UUID, quantity: int) -> Asset:
        """Receive ``quantity`` new units (e.g. after an approved acquisition)."""
        asset, _ = self._mutate(
            asset_id,
            "add_stock",
            lambda current: (receive_stock(current, quantity), None),
        )
        return asset

    def get_asset(self, asset_id: UUID) -> Asset:
        return self._store.load_asset(asset_id)

    def get_claim(self, claim_id: UUID) -> Claim:
        return self._store.load_claim(claim_id)

    def verify(self, asset_id: UUID) -> bool:
        """Check the conservation equation for one asset against the store."""
        with self._locks.for_asset(asset_id):
            asset = self._store.load_asset(asset_id)
            open_claims = self._store.list_claims(asset_id, ClaimState.OPEN)
        holds = conservation_holds(asset, open_claims)
        if not holds:
            logger.error(
                "conservation_violated",
                extra={
                    "asset_id": str(asset_id),
                    "total_quantity": asset.total_quantity,
                    "available": asset.available,
                    "held": sum(c.quantity for c in open_claims),
                },
            )
        return holds

    # -------------------------------------------------------------------------
    # Claims
    # -------------------------------------------------------------------------

    def claim(
        self,
        asset_id: UUID,
        quantity: int,
        kind: ClaimKind,
        reference: str | None = None,
    ) -> UUID:
        """Reserve units of an asset and return the new claim id.

        Consumption claims are created already completed and lower
        ``total_quantity`` permanently.

        Raises:
            InvalidQuantityError: quantity <= 0.
            InsufficientQuantityError: quantity > available; nothing changes.
            ConflictingClaimError: see ``ClaimRegistry.check_conflict``.
            ClaimKindNotAllowedError: kind not permitted for the asset.
        """
        kind = ClaimKind(kind)
        claim_id = uuid4()

        def mutation(asset: Asset) -> tuple[Asset, Claim | None]:
            self._registry.check_conflict(asset.asset_id, kind, reference)
            return open_claim(
                asset,
                claim_id=claim_id,
                kind=kind,
                quantity=quantity,
                now=self._clock.now(),
                reference=reference,
            )

        self._mutate(asset_id, "claim", mutation)
        return claim_id

    def consume(
        self,
        asset_id: UUID,
        quantity: int,
        reference: str | None = None,
    ) -> UUID:
        """Permanently remove ``quantity`` units of a consumable asset."""
        return self.claim(asset_id, quantity, ClaimKind.CONSUMPTION, reference)

    def claim_many(
        self,
        items: Sequence[tuple[UUID, int]],
        kind: ClaimKind,
        reference: str | None = None,
    ) -> list[UUID]:
        """Claim several assets all-or-nothing.

        If any claim fails, the claims already opened by this call are
        cancelled and the original error is re-raised.  Claims whose
        cancellation also failed are attached to that error as
        ``orphaned_claim_ids`` so the caller can cancel them later.
        """
        opened: list[UUID] = []
        try:
            for asset_id, quantity in items:
                opened.append(self.claim(asset_id, quantity, kind, reference))
        except InventoryKernelError as exc:
            orphaned = self._compensate(opened)
            exc.orphaned_claim_ids = tuple(orphaned)
            logger.info(
                "claim_batch_compensated",
                extra={
                    "kind": ClaimKind(kind).value,
                    "cancelled": len(opened) - len(orphaned),
                },
            )
            if orphaned:
                logger.error(
                    "claim_batch_compensation_failed",
                    extra={
                        "kind": ClaimKind(kind).value,
                        "orphaned_claim_ids": [str(c) for c in orphaned],
                    },
                )
            raise
        return opened

    def _compensate(self, opened: list[UUID]) -> list[UUID]:
        """Cancel ``opened`` newest first; return the ids left open."""
        orphaned: list[UUID] = []
        for claim_id in reversed(opened):
            try:
                self.cancel(claim_id)
            except ClaimAlreadyClosedError:
                continue
            except InventoryKernelError:
                orphaned.append(claim_id)
        return orphaned

    def release(self, claim_id: UUID) -> Claim:
        """Complete an open claim and return its units to ``available``.

        Raises:
            ClaimNotFoundError, ClaimAlreadyClosedError.
        """
        return self._close(claim_id, "release", release_claim)

    def cancel(self, claim_id: UUID) -> Claim:
        """Cancel an open claim; same quantity effect as ``release``.

        Raises:
            ClaimNotFoundError, NotCancellableError (consumption),
            ClaimAlreadyClosedError.
        """
        return self._close(claim_id, "cancel", cancel_claim)

    def complete_with_return(self, claim_id: UUID, returned_quantity: int) -> Claim:
        """Complete an event allocation, consuming the units not returned."""
        return self._close(
            claim_id,
            "complete_with_return",
            lambda asset, claim, now: return_claim(asset, claim, returned_quantity, now),
        )

    def adjust_quantity_change(self, claim_id: UUID, new_quantity: int) -> Claim:
        """Change the quantity of an open claim; only the delta moves.

        Raises:
            ClaimNotFoundError, ClaimAlreadyClosedError, InvalidQuantityError,
            ExceedsAvailableError (growth larger than ``available``).
        """
        asset_id = self._claim_asset(claim_id, "adjust_quantity_change")

        def mutation(asset: Asset) -> tuple[Asset, Claim | None]:
            claim = self._store.load_claim(claim_id)
            return resize_claim(asset, claim, new_quantity)

        _, claim = self._mutate(asset_id, "adjust_quantity_change", mutation)
        return claim

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _close(self, claim_id: UUID, operation: str, rule: Callable) -> Claim:
        asset_id = self._claim_asset(claim_id, operation)

        def mutation(asset: Asset) -> tuple[Asset, Claim | None]:
            claim = self._store.load_claim(claim_id)
            return rule(asset, claim, self._clock.now())

        _, claim = self._mutate(asset_id, operation, mutation)
        return claim

    def _mutate(
        self,
        asset_id: UUID,
        operation: str,
        mutation: _Mutation,
    ) -> tuple[Asset, Claim | None]:
        """Run ``mutation`` under the asset lock as one unit of work."""
        with LogContext.bind(asset_id=asset_id):
            with self._locks.for_asset(asset_id):
                try:
                    with self._store.transaction():
                        before = self._store.load_asset(asset_id, for_update=True)
                        after, claim = mutation(before)
                        self._store.save_asset(after)
                        if claim is not None:
                            self._store.save_claim(claim)
                except InventoryKernelError as exc:
                    logger.info(
                        "ledger_operation_rejected",
                        extra={
                            "operation": operation,
                            "error_code": exc.code,
                            "reason": str(exc),
                        },
                    )
                    raise
                except Exception as exc:
                    raise self._storage_failure(operation, exc, asset_id=asset_id) from exc

                if claim is not None:
                    self._registry.record(claim)

            self._log_committed(operation, before, after, claim)

        if claim is not None:
            deliver_claim(self._notifier, claim)
        return after, claim

    def _claim_asset(self, claim_id: UUID, operation: str) -> UUID:
        # asset_id never changes, so it is safe to read before locking.
        try:
            return self._store.load_claim(claim_id).asset_id
        except InventoryKernelError:
            raise
        except Exception as exc:
            raise self._storage_failure(operation, exc, claim_id=claim_id) from exc

    def _storage_failure(
        self,
        operation: str,
        exc: Exception,
        *,
        asset_id: UUID | None = None,
        claim_id: UUID | None = None,
    ) -> LedgerStorageError:
        asset = str(asset_id) if asset_id is not None else None
        claim = str(claim_id) if claim_id is not None else None
        logger.error(
            "ledger_storage_failure",
            extra={"operation": operation, "asset_id": asset, "claim_id": claim},
            exc_info=True,
        )
        return LedgerStorageError(
            operation, asset, f"{type(exc).__name__}: {exc}", claim_id=claim,
        )

    @staticmethod
    def _log_committed(
        operation: str,
        before: Asset,
        after: Asset,
        claim: Claim | None,
    ) -> None:
        event = {
            "claim": "claim_opened",
            "release": "claim_released",
            "cancel": "claim_cancelled",
            "complete_with_return": "claim_returned",
            "adjust_quantity_change": "claim_adjusted",
            "add_stock": "stock_added",
        }.get(operation, operation)
        extra: dict = {
            "available_before": before.available,
            "available_after": after.available,
            "total_before": before.total_quantity,
            "total_after": after.total_quantity,
        }
        if claim is not None:
            extra.update({
                "claim_id": str(claim.claim_id),
                "kind": claim.kind.value,
                "quantity": claim.quantity,
                "state": claim.state.value,
            })
        logger.info(event, extra=extra)
