"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic.
"""

from inventory_kernel.domain.acquisition import (
    REQUEST_TRANSITIONS,
    RESOLVED_REQUEST_STATES,
    AcquisitionRequest,
    RequestState,
    compute_deadline,
)
from inventory_kernel.domain.claim import (
    CLAIM_TRANSITIONS,
    RESTORING_CLAIM_KINDS,
    TERMINAL_CLAIM_STATES,
    Asset,
    AssetKind,
    Claim,
    ClaimKind,
    ClaimState,
)
from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.ports import InventoryStore, NotificationSink

__all__ = [
    "AcquisitionRequest",
    "Asset",
    "AssetKind",
    "CLAIM_TRANSITIONS",
    "Claim",
    "ClaimKind",
    "ClaimState",
    "Clock",
    "DeterministicClock",
    "InventoryStore",
    "NotificationSink",
    "REQUEST_TRANSITIONS",
    "RESOLVED_REQUEST_STATES",
    "RESTORING_CLAIM_KINDS",
    "RequestState",
    "SystemClock",
    "TERMINAL_CLAIM_STATES",
    "compute_deadline",
]
