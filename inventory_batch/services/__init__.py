"""Batch runtime services."""

from inventory_batch.services.scheduler import ExpiryScheduler

__all__ = ["ExpiryScheduler"]
