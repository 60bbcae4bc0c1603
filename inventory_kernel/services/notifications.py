"""
Notification sinks -- fan-out of committed transitions to dependent views.

Responsibility:
    Implementations of ``NotificationSink`` and the delivery helpers the
    ledger and the request service call after every committed transition.

Architecture position:
    Kernel > Services.  Depends on domain/ and logging_config only.

Guarantees:
    - Delivery happens after commit.  A failing sink is logged as
      ``notification_delivery_failed`` and never undoes the transition.
    - ``FanOutNotificationSink`` delivers to every child even when an
      earlier child raises.

Non-goals:
    - No retry or outbox.  Delivery is at-least-once from the caller's
      point of view; consumers tolerate duplicates.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from inventory_kernel.domain.acquisition import AcquisitionRequest
from inventory_kernel.domain.claim import Claim
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.ports import NotificationSink
from inventory_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.notifications")


def deliver_claim(sink: NotificationSink, claim: Claim) -> None:
    """Hand a committed claim transition to ``sink``; log and absorb failures."""
    try:
        sink.on_claim_state_changed(claim)
    except Exception:
        logger.warning(
            "notification_delivery_failed",
            extra={
                "subject": "claim",
                "claim_id": str(claim.claim_id),
                "state": claim.state.value,
            },
            exc_info=True,
        )


def deliver_request(sink: NotificationSink, request: AcquisitionRequest) -> None:
    """Hand a committed request transition to ``sink``; log and absorb failures."""
    try:
        sink.on_request_state_changed(request)
    except Exception:
        logger.warning(
            "notification_delivery_failed",
            extra={
                "subject": "request",
                "request_id": str(request.request_id),
                "state": request.state.value,
            },
            exc_info=True,
        )


class NullNotificationSink:
    """Discards every notification."""

    def on_claim_state_changed(self, claim: Claim) -> None:
        return None

    def on_request_state_changed(self, request: AcquisitionRequest) -> None:
        return None


class LoggingNotificationSink:
    """Emits one INFO record per transition."""

    def on_claim_state_changed(self, claim: Claim) -> None:
        logger.info(
            "claim_state_changed",
            extra={
                "claim_id": str(claim.claim_id),
                "asset_id": str(claim.asset_id),
                "kind": claim.kind.value,
                "state": claim.state.value,
                "quantity": claim.quantity,
            },
        )

    def on_request_state_changed(self, request: AcquisitionRequest) -> None:
        logger.info(
            "request_state_changed",
            extra={
                "request_id": str(request.request_id),
                "state": request.state.value,
                "auto_declined": request.auto_declined,
            },
        )


class FanOutNotificationSink:
    """Delivers to several sinks; one failing child does not starve the rest."""

    def __init__(self, sinks: Sequence[NotificationSink]):
        self._sinks = tuple(sinks)

    def on_claim_state_changed(self, claim: Claim) -> None:
        for sink in self._sinks:
            deliver_claim(sink, claim)

    def on_request_state_changed(self, request: AcquisitionRequest) -> None:
        for sink in self._sinks:
            deliver_request(sink, request)


@dataclass(frozen=True)
class ActivityEntry:
    """One line of the activity log."""

    recorded_at: datetime
    subject: str  # "claim" or "request"
    subject_id: UUID
    state: str
    actor_id: str | None = None
    asset_id: UUID | None = None
    kind: str | None = None
    quantity: int | None = None
    reference: str | None = None
    auto_declined: bool = False


class ActivityLogSink:
    """
    Records every transition as an ``ActivityEntry``.

    The actor is taken from ``LogContext`` (``actor_id``) at delivery time,
    so callers bind it once around the operation.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._entries: list[ActivityEntry] = []

    def on_claim_state_changed(self, claim: Claim) -> None:
        self._append(ActivityEntry(
            recorded_at=self._clock.now(),
            subject="claim",
            subject_id=claim.claim_id,
            state=claim.state.value,
            actor_id=LogContext.get_all().get("actor_id"),
            asset_id=claim.asset_id,
            kind=claim.kind.value,
            quantity=claim.quantity,
            reference=claim.reference,
        ))

    def on_request_state_changed(self, request: AcquisitionRequest) -> None:
        self._append(ActivityEntry(
            recorded_at=self._clock.now(),
            subject="request",
            subject_id=request.request_id,
            state=request.state.value,
            actor_id=LogContext.get_all().get("actor_id"),
            quantity=request.quantity,
            auto_declined=request.auto_declined,
        ))

    def _append(self, entry: ActivityEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> tuple[ActivityEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def entries_for_asset(self, asset_id: UUID) -> list[ActivityEntry]:
        return [e for e in self.entries if e.asset_id == asset_id]

    def entries_for_request(self, request_id: UUID) -> list[ActivityEntry]:
        return [
            e for e in self.entries
            if e.subject == "request" and e.subject_id == request_id
        ]
