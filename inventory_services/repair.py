"""
Repair workflow (``inventory_services.repair``).

Sends units of an asset to repair by opening a Repair claim, optionally
linked to the issue that reported the fault.  The issue moves
``pending -> in_repair`` when the claim opens, ``in_repair -> resolved``
when the repair completes, and back to ``pending`` if the repair is
cancelled.

Sending, completion and cancellation are individually retryable: if the
issue update fails after the ledger step committed, calling the same
method again skips the ledger step and retries only the issue update.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Protocol
from uuid import UUID

from inventory_kernel.domain.claim import Claim, ClaimKind
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.services.quantity_ledger import QuantityLedger

from inventory_services.completion import (
    cancel_idempotently,
    complete_idempotently,
    parse_reference,
)

logger = get_logger("workflows.repair")

ISSUE_REFERENCE_PREFIX = "issue"


class IssueStatus(str, Enum):
    """Lifecycle of a reported asset issue."""

    PENDING = "pending"
    IN_REPAIR = "in_repair"
    RESOLVED = "resolved"


ISSUE_TRANSITIONS: dict[IssueStatus, frozenset[IssueStatus]] = {
    IssueStatus.PENDING: frozenset({IssueStatus.IN_REPAIR, IssueStatus.RESOLVED}),
    IssueStatus.IN_REPAIR: frozenset({IssueStatus.RESOLVED, IssueStatus.PENDING}),
    IssueStatus.RESOLVED: frozenset(),
}


class IssueStatusPort(Protocol):
    """Where issue records live (outside this package)."""

    def get_status(self, issue_id: str) -> IssueStatus:
        ...

    def set_status(self, issue_id: str, status: IssueStatus) -> None:
        ...


class InMemoryIssueStatusStore:
    """Dict-backed ``IssueStatusPort``; unknown issues start pending."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._statuses: dict[str, IssueStatus] = {}

    def get_status(self, issue_id: str) -> IssueStatus:
        with self._lock:
            return self._statuses.get(issue_id, IssueStatus.PENDING)

    def set_status(self, issue_id: str, status: IssueStatus) -> None:
        with self._lock:
            self._statuses[issue_id] = IssueStatus(status)


class RepairWorkflow:
    """Repair claims, kept in step with the linked issue."""

    def __init__(self, ledger: QuantityLedger, issues: IssueStatusPort):
        self._ledger = ledger
        self._issues = issues

    def send_to_repair(
        self,
        asset_id: UUID,
        quantity: int,
        issue_id: str | None = None,
    ) -> UUID:
        """Open a Repair claim and mark the issue ``in_repair``.

        With an issue, an open Repair claim already carrying that issue's
        reference is reused, so a call that failed on the issue update can
        be repeated without claiming the units twice.
        """
        if not issue_id:
            return self._ledger.claim(asset_id, quantity, ClaimKind.REPAIR)

        reference = f"{ISSUE_REFERENCE_PREFIX}:{issue_id}"
        existing = self._ledger.registry.find_open(asset_id, ClaimKind.REPAIR, reference)
        if existing is None:
            claim_id = self._ledger.claim(asset_id, quantity, ClaimKind.REPAIR, reference)
        else:
            claim_id = existing.claim_id
            logger.info(
                "repair_claim_reused",
                extra={"claim_id": str(claim_id), "issue_id": issue_id},
            )
        self._move_issue(issue_id, IssueStatus.IN_REPAIR)
        return claim_id

    def complete_repair(self, claim_id: UUID) -> Claim:
        """Return the units and resolve the linked issue."""
        with LogContext.bind(claim_id=claim_id):
            claim = complete_idempotently(self._ledger, claim_id)
            issue_id = parse_reference(claim.reference, ISSUE_REFERENCE_PREFIX)
            if issue_id:
                self._move_issue(issue_id, IssueStatus.RESOLVED)
            logger.info("repair_completed", extra={"issue_id": issue_id})
        return claim

    def cancel_repair(self, claim_id: UUID) -> Claim:
        """Return the units and put the linked issue back to ``pending``."""
        with LogContext.bind(claim_id=claim_id):
            claim = cancel_idempotently(self._ledger, claim_id)
            issue_id = parse_reference(claim.reference, ISSUE_REFERENCE_PREFIX)
            if issue_id:
                self._move_issue(issue_id, IssueStatus.PENDING)
            logger.info("repair_cancelled", extra={"issue_id": issue_id})
        return claim

    def _move_issue(self, issue_id: str, target: IssueStatus) -> None:
        current = self._issues.get_status(issue_id)
        if current == target:
            return
        if target not in ISSUE_TRANSITIONS[current]:
            logger.warning(
                "issue_transition_skipped",
                extra={
                    "issue_id": issue_id,
                    "from_status": current.value,
                    "to_status": target.value,
                },
            )
            return
        self._issues.set_status(issue_id, target)
        logger.info(
            "issue_status_changed",
            extra={
                "issue_id": issue_id,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
