"""
Quantity arithmetic (``inventory_kernel.domain.quantity``).

Responsibility
--------------
Pure functions that compute the next ``(Asset, Claim)`` pair for every
ledger mutation: opening a claim, closing it (release, cancel, partial
return), resizing it, and receiving stock.  Each function validates its
inputs and either raises a typed error or returns the new snapshots.
Nothing is persisted here.

Architecture position
---------------------
**Kernel domain layer** -- pure functional core, ZERO I/O.  The
``QuantityLedger`` service calls these under the per-asset lock and
persists the results as one unit of work.

Conservation
------------
For every asset, at every committed point::

    total_quantity - available == sum(quantity of open claims)

Consumption lowers ``total_quantity`` and ``available`` together, so the
equation keeps holding after units are destroyed.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable
from uuid import UUID

from inventory_kernel.domain.claim import (
    CLAIM_TRANSITIONS,
    Asset,
    AssetKind,
    Claim,
    ClaimKind,
    ClaimState,
)
from inventory_kernel.exceptions import (
    ClaimAlreadyClosedError,
    ClaimKindNotAllowedError,
    ExceedsAvailableError,
    InsufficientQuantityError,
    InvalidQuantityError,
    NotCancellableError,
)


def validate_quantity(quantity: int) -> None:
    """Reject non-positive and non-integer quantities."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError(quantity)


def check_kind_allowed(asset: Asset, kind: ClaimKind) -> None:
    """Borrowing needs opt-in; only consumable stock can be consumed."""
    if kind == ClaimKind.BORROW and not asset.borrowing_enabled:
        raise ClaimKindNotAllowedError(
            str(asset.asset_id), kind.value, "borrowing is not enabled for this asset",
        )
    if kind == ClaimKind.CONSUMPTION and asset.kind != AssetKind.CONSUMABLE:
        raise ClaimKindNotAllowedError(
            str(asset.asset_id), kind.value, "only consumable assets can be consumed",
        )


def open_claim(
    asset: Asset,
    *,
    claim_id: UUID,
    kind: ClaimKind,
    quantity: int,
    now: datetime,
    reference: str | None = None,
) -> tuple[Asset, Claim]:
    """Reserve ``quantity`` units of ``asset``.

    Consumption claims are created already completed: the units leave
    ``available`` and ``total_quantity`` for good.

    Raises:
        InvalidQuantityError: quantity <= 0.
        ClaimKindNotAllowedError: kind not permitted for the asset.
        InsufficientQuantityError: quantity > available.  ``asset`` is
            untouched.
    """
    validate_quantity(quantity)
    check_kind_allowed(asset, kind)
    if quantity > asset.available:
        raise InsufficientQuantityError(str(asset.asset_id), asset.available, quantity)

    if kind == ClaimKind.CONSUMPTION:
        new_asset = replace(
            asset,
            available=asset.available - quantity,
            total_quantity=asset.total_quantity - quantity,
        )
        claim = Claim(
            claim_id=claim_id,
            asset_id=asset.asset_id,
            kind=kind,
            quantity=quantity,
            state=ClaimState.COMPLETED,
            opened_at=now,
            closed_at=now,
            reference=reference,
            consumed_quantity=quantity,
        )
        return new_asset, claim

    new_asset = replace(asset, available=asset.available - quantity)
    claim = Claim(
        claim_id=claim_id,
        asset_id=asset.asset_id,
        kind=kind,
        quantity=quantity,
        state=ClaimState.OPEN,
        opened_at=now,
        reference=reference,
    )
    return new_asset, claim


def _require_open(claim: Claim, target: ClaimState) -> None:
    if target not in CLAIM_TRANSITIONS[claim.state]:
        raise ClaimAlreadyClosedError(str(claim.claim_id), claim.state.value)


def release_claim(asset: Asset, claim: Claim, now: datetime) -> tuple[Asset, Claim]:
    """Complete an open claim and give its whole quantity back."""
    _require_open(claim, ClaimState.COMPLETED)
    return _close(asset, claim, ClaimState.COMPLETED, claim.quantity, now)


def cancel_claim(asset: Asset, claim: Claim, now: datetime) -> tuple[Asset, Claim]:
    """Cancel an open claim; same quantity effect as a release."""
    if not claim.is_cancellable:
        raise NotCancellableError(str(claim.claim_id), claim.kind.value)
    _require_open(claim, ClaimState.CANCELLED)
    return _close(asset, claim, ClaimState.CANCELLED, claim.quantity, now)


def return_claim(
    asset: Asset,
    claim: Claim,
    returned_quantity: int,
    now: datetime,
) -> tuple[Asset, Claim]:
    """Complete an event allocation, keeping only part of the units.

    Units not returned are consumed.  Non-consumable assets always come
    back in full.

    Raises:
        ClaimKindNotAllowedError: claim is not an event allocation.
        InvalidQuantityError: returned quantity outside ``0..quantity``, or
            a partial return of a non-consumable asset.
    """
    _require_open(claim, ClaimState.COMPLETED)
    if claim.kind != ClaimKind.EVENT_ALLOCATION:
        raise ClaimKindNotAllowedError(
            str(asset.asset_id), claim.kind.value,
            "partial returns apply to event allocations only",
        )
    if isinstance(returned_quantity, bool) or not isinstance(returned_quantity, int):
        raise InvalidQuantityError(returned_quantity, "must be an integer")
    if returned_quantity < 0 or returned_quantity > claim.quantity:
        raise InvalidQuantityError(
            returned_quantity, f"must be between 0 and {claim.quantity}",
        )
    if asset.kind != AssetKind.CONSUMABLE and returned_quantity != claim.quantity:
        raise InvalidQuantityError(
            returned_quantity, "non-consumable assets must be returned in full",
        )
    return _close(asset, claim, ClaimState.COMPLETED, returned_quantity, now)


def _close(
    asset: Asset,
    claim: Claim,
    state: ClaimState,
    returned: int,
    now: datetime,
) -> tuple[Asset, Claim]:
    consumed = claim.quantity - returned
    new_asset = replace(
        asset,
        available=asset.available + returned,
        total_quantity=asset.total_quantity - consumed,
    )
    new_claim = replace(
        claim,
        state=state,
        closed_at=now,
        returned_quantity=returned,
        consumed_quantity=consumed,
    )
    return new_asset, new_claim


def resize_claim(asset: Asset, claim: Claim, new_quantity: int) -> tuple[Asset, Claim]:
    """Apply an operator edit of an open claim's quantity.

    Only the delta touches ``available``; shrinking always succeeds,
    growing needs the extra units to be available.

    Raises:
        ClaimAlreadyClosedError: claim is not open.
        InvalidQuantityError: new_quantity <= 0.
        ExceedsAvailableError: growth larger than ``available``.
    """
    if not claim.is_open:
        raise ClaimAlreadyClosedError(str(claim.claim_id), claim.state.value)
    validate_quantity(new_quantity)
    delta = new_quantity - claim.quantity
    if delta > asset.available:
        raise ExceedsAvailableError(
            str(claim.claim_id), claim.quantity, new_quantity, asset.available,
        )
    new_asset = replace(asset, available=asset.available - delta)
    return new_asset, replace(claim, quantity=new_quantity)


def receive_stock(asset: Asset, quantity: int) -> Asset:
    """Add newly acquired units to both counters."""
    validate_quantity(quantity)
    return replace(
        asset,
        total_quantity=asset.total_quantity + quantity,
        available=asset.available + quantity,
    )


def conservation_holds(asset: Asset, open_claims: Iterable[Claim]) -> bool:
    """True when the asset counters agree with its open claims."""
    held = sum(c.quantity for c in open_claims if c.is_open)
    return (
        0 <= asset.available <= asset.total_quantity
        and asset.total_quantity - asset.available == held
    )
