"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.acquisition_service import (
    DEFAULT_REQUEST_TTL,
    AcquisitionRequestService,
)
from inventory_kernel.services.claim_registry import (
    DEFAULT_EXCLUSIVE_CLAIM_KINDS,
    ClaimRegistry,
)
from inventory_kernel.services.notifications import (
    ActivityEntry,
    ActivityLogSink,
    FanOutNotificationSink,
    LoggingNotificationSink,
    NullNotificationSink,
)
from inventory_kernel.services.quantity_ledger import AssetLocks, QuantityLedger

__all__ = [
    "AcquisitionRequestService",
    "ActivityEntry",
    "ActivityLogSink",
    "AssetLocks",
    "ClaimRegistry",
    "DEFAULT_EXCLUSIVE_CLAIM_KINDS",
    "DEFAULT_REQUEST_TTL",
    "FanOutNotificationSink",
    "LoggingNotificationSink",
    "NullNotificationSink",
    "QuantityLedger",
]
