"""
Pure expiry evaluation.

Contract:
    ``is_due(request, as_of)`` and ``select_due()`` are PURE -- no I/O, no
    side effects.  The scheduler supplies the current time from its
    injected Clock.

Architecture: inventory_batch/domain.  ZERO I/O.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from inventory_kernel.domain.acquisition import AcquisitionRequest


def is_due(request: AcquisitionRequest, as_of: datetime) -> bool:
    """True when ``request`` is still pending and ``as_of >= deadline``."""
    return request.is_expired(as_of)


def select_due(
    requests: Iterable[AcquisitionRequest],
    as_of: datetime,
) -> list[AcquisitionRequest]:
    """Due requests, oldest deadline first."""
    return sorted(
        (r for r in requests if is_due(r, as_of)),
        key=lambda r: (r.deadline, r.created_at),
    )
