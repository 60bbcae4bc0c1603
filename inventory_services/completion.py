"""
Idempotent claim completion for consumer workflows.

A completion handler touches two records: the claim (through the ledger)
and a related record (issue, event, borrowing).  The two updates are not
one transaction, so the handler must be safe to repeat after a partial
failure.  ``complete_idempotently`` makes the ledger half repeatable:
a claim that is already *completed* counts as done, without crediting
its quantity a second time.
"""

from __future__ import annotations

from typing import Callable
from uuid import UUID

from inventory_kernel.domain.claim import Claim, ClaimState
from inventory_kernel.exceptions import ClaimAlreadyClosedError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.quantity_ledger import QuantityLedger

logger = get_logger("workflows.completion")


def complete_idempotently(
    ledger: QuantityLedger,
    claim_id: UUID,
    complete: Callable[[UUID], Claim] | None = None,
) -> Claim:
    """Complete ``claim_id``, or return it unchanged if already completed.

    ``complete`` defaults to ``ledger.release``.  A cancelled claim is not
    treated as completed: ClaimAlreadyClosedError propagates.
    """
    complete = complete or ledger.release
    try:
        return complete(claim_id)
    except ClaimAlreadyClosedError:
        claim = ledger.get_claim(claim_id)
        if claim.state != ClaimState.COMPLETED:
            raise
        logger.debug(
            "claim_already_completed",
            extra={"claim_id": str(claim_id), "kind": claim.kind.value},
        )
        return claim


def cancel_idempotently(ledger: QuantityLedger, claim_id: UUID) -> Claim:
    """Cancel ``claim_id``, or return it unchanged if already cancelled."""
    try:
        return ledger.cancel(claim_id)
    except ClaimAlreadyClosedError:
        claim = ledger.get_claim(claim_id)
        if claim.state != ClaimState.CANCELLED:
            raise
        logger.debug(
            "claim_already_cancelled",
            extra={"claim_id": str(claim_id), "kind": claim.kind.value},
        )
        return claim


def parse_reference(reference: str | None, prefix: str) -> str | None:
    """``"issue:42"`` -> ``"42"`` for prefix ``"issue"``; None otherwise."""
    if not reference:
        return None
    head, sep, tail = reference.partition(":")
    if not sep or head != prefix or not tail:
        return None
    return tail
