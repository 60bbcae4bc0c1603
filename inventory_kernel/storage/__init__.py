"""Persistence adapters implementing ``InventoryStore``."""

from inventory_kernel.storage.memory import InMemoryInventoryStore
from inventory_kernel.storage.sql import SqlAlchemyInventoryStore

__all__ = ["InMemoryInventoryStore", "SqlAlchemyInventoryStore"]
