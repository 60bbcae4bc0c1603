"""
inventory_services -- consumer workflows that drive the quantity ledger.

Repair, maintenance, event allocation, borrowing and consumption each
open and close claims through ``QuantityLedger``; none of them touches an
asset counter directly.
"""

from inventory_services.borrowing import BorrowingWorkflow
from inventory_services.completion import cancel_idempotently, complete_idempotently
from inventory_services.consumption import ConsumptionWorkflow
from inventory_services.events import EventAllocationWorkflow
from inventory_services.maintenance import MaintenanceWorkflow
from inventory_services.repair import (
    InMemoryIssueStatusStore,
    IssueStatus,
    IssueStatusPort,
    RepairWorkflow,
)

__all__ = [
    "BorrowingWorkflow",
    "ConsumptionWorkflow",
    "EventAllocationWorkflow",
    "InMemoryIssueStatusStore",
    "IssueStatus",
    "IssueStatusPort",
    "MaintenanceWorkflow",
    "RepairWorkflow",
    "cancel_idempotently",
    "complete_idempotently",
]
