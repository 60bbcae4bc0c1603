"""
ExpiryScheduler -- In-process polling scheduler for request expiry.

Contract:
    Polls pending acquisition requests every ``tick_interval``, evaluates
    ``is_due()`` (pure) against the injected clock, and auto-declines every
    due request through ``AcquisitionRequestService.auto_decline``.

Architecture: inventory_batch/services.  Uses inventory_batch.domain.expiry
    for pure evaluation and the kernel request service for the transition.

Invariants enforced:
    - All timestamps come from the injected Clock.
    - Auto-decline is the same compare-and-swap a manual decision uses, so a
      request that an operator resolved first is left alone
      (``auto_decline_lost_race`` at DEBUG, never an error).
    - A tick never raises; failures are logged and the loop continues.
    - Graceful shutdown: the stop signal is checked between requests.
"""

from __future__ import annotations

import threading
from datetime import timedelta
from uuid import UUID

from inventory_kernel.domain.clock import Clock
from inventory_kernel.exceptions import AlreadyResolvedError, RequestNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.acquisition_service import AcquisitionRequestService

from inventory_batch.domain.expiry import select_due

logger = get_logger("batch.expiry_scheduler")


class ExpiryScheduler:
    """Background auto-decline of expired acquisition requests.

    Contract:
        - ``tick()`` declines every due request and returns their ids.
        - ``start()`` / ``stop()`` for background thread operation.
        - Worst-case auto-decline latency is one ``tick_interval``.

    Non-goals:
        - NOT a distributed scheduler (no leader election).  Several
          instances are safe, only wasteful: the CAS lets one win.
    """

    def __init__(
        self,
        service: AcquisitionRequestService,
        clock: Clock | None = None,
        tick_interval: timedelta | float = 60,
    ):
        if isinstance(tick_interval, timedelta):
            tick_interval = tick_interval.total_seconds()
        if tick_interval <= 0:
            raise ValueError(f"tick_interval must be positive, got {tick_interval}")
        self._service = service
        self._clock = clock or service.clock
        self._tick_interval = float(tick_interval)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def tick_interval(self) -> float:
        return self._tick_interval

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> list[UUID]:
        """Auto-decline due requests (public for testing).

        Returns the ids this tick declined.  Requests lost to a concurrent
        manual decision are not included.
        """
        try:
            return self._expire_due(honor_stop=False)
        except Exception:
            logger.exception("scheduler_tick_failed")
            return []

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="expiry-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the scheduler to finish.

        Args:
            timeout: Max seconds to wait for the thread to finish.
        """
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background polling loop. Exits when stop_event is set."""
        while not self._stop_event.is_set():
            try:
                self._expire_due(honor_stop=True)
            except Exception:
                logger.exception("scheduler_tick_failed")
            self._stop_event.wait(timeout=self._tick_interval)

    def _expire_due(self, *, honor_stop: bool) -> list[UUID]:
        now = self._clock.now()
        due = select_due(self._service.due_for_expiry(now), now)

        declined: list[UUID] = []
        for request in due:
            if honor_stop and self._stop_event.is_set():
                break
            try:
                self._service.auto_decline(request.request_id)
            except AlreadyResolvedError as exc:
                logger.debug(
                    "auto_decline_lost_race",
                    extra={
                        "request_id": str(request.request_id),
                        "current_state": exc.current_state,
                    },
                )
                continue
            except RequestNotFoundError:
                logger.debug(
                    "auto_decline_request_gone",
                    extra={"request_id": str(request.request_id)},
                )
                continue
            except Exception:
                logger.exception(
                    "auto_decline_failed",
                    extra={"request_id": str(request.request_id)},
                )
                continue
            declined.append(request.request_id)

        if due:
            logger.info(
                "scheduler_tick_completed",
                extra={"due": len(due), "declined": len(declined)},
            )
        return declined
