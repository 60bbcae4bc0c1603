"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every ledger and request operation can be rejected for a precise, local
reason.  Callers (HTTP handlers, workflows, the expiry scheduler) must be
able to react to that reason without parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - WRONG way to handle errors:
    try:
        ledger.claim(asset_id, 5, ClaimKind.BORROW)
    except Exception as e:
        if "available" in str(e):  # FRAGILE - message might change
            show_shortage()

Example - RIGHT way (what this module enables):
    try:
        ledger.claim(asset_id, 5, ClaimKind.BORROW)
    except InsufficientQuantityError as e:
        api_response(code=e.code, available=e.available, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from InventoryKernelError:

    InventoryKernelError (base)
    |
    +-- QuantityError
    |   +-- InvalidQuantityError
    |   +-- InsufficientQuantityError
    |   +-- ExceedsAvailableError
    |
    +-- AssetError
    |   +-- AssetNotFoundError
    |   +-- AssetAlreadyExistsError
    |
    +-- ClaimError
    |   +-- ClaimNotFoundError
    |   +-- ClaimAlreadyClosedError
    |   +-- NotCancellableError
    |   +-- ConflictingClaimError
    |   +-- ClaimKindNotAllowedError
    |
    +-- RequestError
    |   +-- RequestNotFoundError
    |   +-- InvalidStateError
    |   +-- AlreadyResolvedError
    |
    +-- StorageError
        +-- LedgerStorageError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                     | When Raised
-----------|--------------------------|---------------------------------------------
Quantity   | INVALID_QUANTITY         | Quantity <= 0
           | INSUFFICIENT_QUANTITY    | Claim exceeds available units
           | EXCEEDS_AVAILABLE        | Quantity edit grows beyond available units
-----------|--------------------------|---------------------------------------------
Asset      | ASSET_NOT_FOUND          | Asset ID doesn't exist
           | ASSET_ALREADY_EXISTS     | Asset ID registered twice
-----------|--------------------------|---------------------------------------------
Claim      | CLAIM_NOT_FOUND          | Claim ID doesn't exist
           | CLAIM_ALREADY_CLOSED     | Release/cancel/edit of a closed claim
           | NOT_CANCELLABLE          | Cancel of a consumption claim
           | CONFLICTING_CLAIM        | Open claim already blocks this one
           | CLAIM_KIND_NOT_ALLOWED   | Kind not permitted for this asset
-----------|--------------------------|---------------------------------------------
Request    | REQUEST_NOT_FOUND        | Acquisition request ID doesn't exist
           | INVALID_STATE            | Illegal request transition
           | ALREADY_RESOLVED         | Lost the pending -> terminal race (no-op)
-----------|--------------------------|---------------------------------------------
Storage    | LEDGER_STORAGE_FAILURE   | Persistence failed; unit of work rolled back

===============================================================================
HANDLING PATTERNS
===============================================================================

1. REJECT WITH A SPECIFIC REASON (never clamp):

    except InsufficientQuantityError as e:
        return {"error": e.code, "available": e.available, "requested": e.requested}

2. RACE LOSERS ARE NO-OPS:

    try:
        requests.approve(request_id)
    except AlreadyResolvedError as e:
        # Someone (possibly the expiry scheduler) resolved it first.
        show_current_state(e.current_state)

3. STORAGE FAILURES ARE RETRYABLE:

    except LedgerStorageError:
        retry_later()   # nothing was applied
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Quantity-related exceptions


class QuantityError(InventoryKernelError):
    """Base exception for quantity arithmetic violations."""

    code: str = "QUANTITY_ERROR"


class InvalidQuantityError(QuantityError):
    """Quantity must be a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: int, reason: str = "must be greater than zero"):
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Invalid quantity {quantity}: {reason}")


class InsufficientQuantityError(QuantityError):
    """Requested more units than are currently available."""

    code: str = "INSUFFICIENT_QUANTITY"

    def __init__(self, asset_id: str, available: int, requested: int):
        self.asset_id = asset_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"only {available} units available, {requested} requested"
        )


class ExceedsAvailableError(QuantityError):
    """Growing an open claim would take more units than are available."""

    code: str = "EXCEEDS_AVAILABLE"

    def __init__(
        self,
        claim_id: str,
        old_quantity: int,
        new_quantity: int,
        available: int,
    ):
        self.claim_id = claim_id
        self.old_quantity = old_quantity
        self.new_quantity = new_quantity
        self.available = available
        super().__init__(
            f"Cannot change claim {claim_id} from {old_quantity} to "
            f"{new_quantity}: only {available} units available, "
            f"{new_quantity - old_quantity} more requested"
        )


# Asset-related exceptions


class AssetError(InventoryKernelError):
    """Base exception for asset-related errors."""

    code: str = "ASSET_ERROR"


class AssetNotFoundError(AssetError):
    """Asset with given ID was not found."""

    code: str = "ASSET_NOT_FOUND"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset not found: {asset_id}")


class AssetAlreadyExistsError(AssetError):
    """Asset with given ID is already registered."""

    code: str = "ASSET_ALREADY_EXISTS"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"Asset already exists: {asset_id}")


# Claim-related exceptions


class ClaimError(InventoryKernelError):
    """Base exception for claim lifecycle errors."""

    code: str = "CLAIM_ERROR"


class ClaimNotFoundError(ClaimError):
    """Claim with given ID was not found."""

    code: str = "CLAIM_NOT_FOUND"

    def __init__(self, claim_id: str):
        self.claim_id = claim_id
        super().__init__(f"Claim not found: {claim_id}")


class ClaimAlreadyClosedError(ClaimError):
    """
    Claim is no longer open.

    Raised on the second release of a claim, which makes completion
    idempotent: the quantity is restored exactly once.
    """

    code: str = "CLAIM_ALREADY_CLOSED"

    def __init__(self, claim_id: str, state: str):
        self.claim_id = claim_id
        self.state = state
        super().__init__(f"Claim {claim_id} is already closed (state={state})")


class NotCancellableError(ClaimError):
    """Consumption claims are irreversible and cannot be cancelled."""

    code: str = "NOT_CANCELLABLE"

    def __init__(self, claim_id: str, kind: str):
        self.claim_id = claim_id
        self.kind = kind
        super().__init__(f"Claim {claim_id} of kind '{kind}' cannot be cancelled")


class ConflictingClaimError(ClaimError):
    """An open claim on the same asset blocks the new one."""

    code: str = "CONFLICTING_CLAIM"

    def __init__(self, asset_id: str, kind: str, existing_claim_id: str):
        self.asset_id = asset_id
        self.kind = kind
        self.existing_claim_id = existing_claim_id
        super().__init__(
            f"Asset {asset_id} already has an open '{kind}' claim "
            f"({existing_claim_id})"
        )


class ClaimKindNotAllowedError(ClaimError):
    """The claim kind is not permitted for this asset."""

    code: str = "CLAIM_KIND_NOT_ALLOWED"

    def __init__(self, asset_id: str, kind: str, reason: str):
        self.asset_id = asset_id
        self.kind = kind
        self.reason = reason
        super().__init__(f"Cannot open '{kind}' claim on asset {asset_id}: {reason}")


# Acquisition request exceptions


class RequestError(InventoryKernelError):
    """Base exception for acquisition request errors."""

    code: str = "REQUEST_ERROR"


class RequestNotFoundError(RequestError):
    """Acquisition request with given ID was not found."""

    code: str = "REQUEST_NOT_FOUND"

    def __init__(self, request_id: str):
        self.request_id = request_id
        super().__init__(f"Acquisition request not found: {request_id}")


class InvalidStateError(RequestError):
    """The requested transition is not legal from the current state."""

    code: str = "INVALID_STATE"

    def __init__(self, request_id: str, current_state: str, action: str):
        self.request_id = request_id
        self.current_state = current_state
        self.action = action
        super().__init__(
            f"Cannot {action} request {request_id} in state '{current_state}'"
        )


class AlreadyResolvedError(RequestError):
    """
    Request left the pending state before this caller could resolve it.

    This is the losing side of the pending -> terminal compare-and-swap.
    Nothing was changed; callers treat it as a no-op signal rather than a
    business failure.
    """

    code: str = "ALREADY_RESOLVED"

    def __init__(self, request_id: str, current_state: str):
        self.request_id = request_id
        self.current_state = current_state
        super().__init__(
            f"Request {request_id} is already resolved (state={current_state})"
        )


# Storage exceptions


class StorageError(InventoryKernelError):
    """Base exception for persistence failures."""

    code: str = "STORAGE_ERROR"


class LedgerStorageError(StorageError):
    """
    Persistence failed during a ledger mutation.

    The whole unit of work (asset counter and claim) was rolled back, so the
    operation may be retried safely.
    """

    code: str = "LEDGER_STORAGE_FAILURE"

    def __init__(
        self,
        operation: str,
        asset_id: str | None,
        reason: str,
        claim_id: str | None = None,
    ):
        self.operation = operation
        self.asset_id = asset_id
        self.claim_id = claim_id
        self.reason = reason
        target = f"asset {asset_id}" if asset_id is not None else f"claim {claim_id}"
        super().__init__(
            f"Ledger {operation} on {target} failed and was rolled back: {reason}"
        )
