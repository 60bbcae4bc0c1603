"""
inventory_kernel.services.acquisition_service -- Acquisition request lifecycle.

Responsibility:
    Manages requests for *new* stock: creation with a fixed deadline,
    manual approval and decline, auto-decline on expiry, archiving,
    restoring and deleting.  Requests never touch the quantity ledger.

Architecture position:
    Kernel > Services.  May import from domain/, exceptions, logging_config
    and services/notifications.

Invariants enforced:
    - Lifecycle state machine (``REQUEST_TRANSITIONS``) checked before
      every write.
    - Exactly-once resolution: pending -> approved/declined is a
      compare-and-swap on ``state``.  Of any number of racing callers
      (operators, the expiry scheduler) exactly one wins; every loser gets
      AlreadyResolvedError and nothing is written or notified for it.
    - ``auto_declined`` is true only when the scheduler performed the
      decline.
    - ``deadline = created_at + ttl`` is fixed at creation.

Failure modes:
    - RequestNotFoundError if request_id not found.
    - AlreadyResolvedError when approving/declining a request that is no
      longer pending.
    - InvalidStateError on archive from pending, or restore/delete of a
      request that is not archived.
    - InvalidQuantityError on create with quantity <= 0.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from uuid import UUID, uuid4

from inventory_kernel.domain.acquisition import (
    REQUEST_TRANSITIONS,
    RESOLVED_REQUEST_STATES,
    AcquisitionRequest,
    RequestState,
    compute_deadline,
)
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.ports import InventoryStore, NotificationSink
from inventory_kernel.domain.quantity import validate_quantity
from inventory_kernel.exceptions import (
    AlreadyResolvedError,
    InvalidStateError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.notifications import (
    NullNotificationSink,
    deliver_request,
)

logger = get_logger("services.acquisition")

DEFAULT_REQUEST_TTL = timedelta(days=7)


class AcquisitionRequestService:
    """Pending -> approved/declined -> archived workflow for new stock."""

    def __init__(
        self,
        store: InventoryStore,
        notifier: NotificationSink | None = None,
        clock: Clock | None = None,
        ttl: timedelta = DEFAULT_REQUEST_TTL,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._store = store
        self._notifier = notifier or NullNotificationSink()
        self._clock = clock or SystemClock()
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @property
    def clock(self) -> Clock:
        return self._clock

    # -------------------------------------------------------------------------
    # Creation and queries
    # -------------------------------------------------------------------------

    def create(self, asset_name: str, quantity: int, requested_by: str) -> UUID:
        """Open a pending request and return its id."""
        if not asset_name or not asset_name.strip():
            raise ValueError("asset_name must not be empty")
        validate_quantity(quantity)

        now = self._clock.now()
        request = AcquisitionRequest(
            request_id=uuid4(),
            asset_name=asset_name.strip(),
            quantity=quantity,
            requested_by=requested_by,
            created_at=now,
            deadline=compute_deadline(now, self._ttl),
        )
        self._store.save_request(request)

        logger.info(
            "request_created",
            extra={
                "request_id": str(request.request_id),
                "asset_name": request.asset_name,
                "quantity": quantity,
                "requested_by": requested_by,
                "deadline": request.deadline,
            },
        )
        deliver_request(self._notifier, request)
        return request.request_id

    def get(self, request_id: UUID) -> AcquisitionRequest:
        return self._store.load_request(request_id)

    def list_requests(self, state: RequestState | None = None) -> list[AcquisitionRequest]:
        """Requests in ``state`` (all when None), newest first."""
        return list(self._store.list_requests(state))

    def due_for_expiry(self, now: datetime | None = None) -> list[AcquisitionRequest]:
        """Pending requests whose deadline is at or before ``now``."""
        now = now or self._clock.now()
        return list(self._store.list_requests(RequestState.PENDING, due_at=now))

    # -------------------------------------------------------------------------
    # Resolution (compare-and-swap)
    # -------------------------------------------------------------------------

    def approve(self, request_id: UUID) -> AcquisitionRequest:
        """Raises AlreadyResolvedError if the request is no longer pending."""
        return self._resolve(request_id, RequestState.APPROVED, auto=False)

    def decline(self, request_id: UUID) -> AcquisitionRequest:
        """Manual decline; ``auto_declined`` stays false."""
        return self._resolve(request_id, RequestState.DECLINED, auto=False)

    def auto_decline(self, request_id: UUID) -> AcquisitionRequest:
        """Scheduler-driven decline; sets ``auto_declined``."""
        return self._resolve(request_id, RequestState.DECLINED, auto=True)

    def _resolve(
        self,
        request_id: UUID,
        target: RequestState,
        *,
        auto: bool,
    ) -> AcquisitionRequest:
        with LogContext.bind(request_id=request_id):
            current = self._store.load_request(request_id)
            if not current.is_pending:
                raise AlreadyResolvedError(str(request_id), current.state.value)

            resolved = replace(
                current,
                state=target,
                auto_declined=auto,
                resolved_at=self._clock.now(),
            )
            if not self._store.compare_and_swap_request(resolved, RequestState.PENDING):
                latest = self._store.load_request(request_id)
                raise AlreadyResolvedError(str(request_id), latest.state.value)

            if auto:
                event = "request_auto_declined"
            elif target == RequestState.APPROVED:
                event = "request_approved"
            else:
                event = "request_declined"
            logger.info(
                event,
                extra={
                    "request_id": str(request_id),
                    "deadline": resolved.deadline,
                    "resolved_at": resolved.resolved_at,
                },
            )

        deliver_request(self._notifier, resolved)
        return resolved

    # -------------------------------------------------------------------------
    # Archive / restore / delete
    # -------------------------------------------------------------------------

    def archive(self, request_id: UUID) -> AcquisitionRequest:
        """Move an approved or declined request to the archive."""
        current = self._store.load_request(request_id)
        if current.state not in RESOLVED_REQUEST_STATES:
            raise InvalidStateError(str(request_id), current.state.value, "archive")

        archived = replace(
            current,
            state=RequestState.ARCHIVED,
            archived_at=self._clock.now(),
            archived_from=current.state,
        )
        return self._move(current, archived, "archive", "request_archived")

    def restore(self, request_id: UUID) -> AcquisitionRequest:
        """Bring an archived request back to the state it was archived from."""
        current = self._store.load_request(request_id)
        if current.state != RequestState.ARCHIVED or current.archived_from is None:
            raise InvalidStateError(str(request_id), current.state.value, "restore")

        restored = replace(
            current,
            state=current.archived_from,
            archived_at=None,
            archived_from=None,
        )
        return self._move(current, restored, "restore", "request_restored")

    def delete(self, request_id: UUID) -> None:
        """Permanently remove an archived request."""
        current = self._store.load_request(request_id)
        if current.state != RequestState.ARCHIVED:
            raise InvalidStateError(str(request_id), current.state.value, "delete")
        if not self._store.delete_request(request_id, RequestState.ARCHIVED):
            latest = self._store.load_request(request_id)
            raise InvalidStateError(str(request_id), latest.state.value, "delete")
        logger.info("request_deleted", extra={"request_id": str(request_id)})

    def _move(
        self,
        current: AcquisitionRequest,
        updated: AcquisitionRequest,
        action: str,
        event: str,
    ) -> AcquisitionRequest:
        if updated.state not in REQUEST_TRANSITIONS[current.state]:
            raise InvalidStateError(
                str(current.request_id), current.state.value, action,
            )
        if not self._store.compare_and_swap_request(updated, current.state):
            latest = self._store.load_request(current.request_id)
            raise InvalidStateError(
                str(current.request_id), latest.state.value, action,
            )
        logger.info(
            event,
            extra={
                "request_id": str(current.request_id),
                "from_state": current.state.value,
                "to_state": updated.state.value,
            },
        )
        deliver_request(self._notifier, updated)
        return updated
