"""Pure expiry evaluation (no I/O)."""

from inventory_batch.domain.expiry import is_due, select_due

__all__ = ["is_due", "select_due"]
