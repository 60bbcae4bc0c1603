"""
Config → Kernel Bridges.

Functions that turn ``LedgerSettings`` into configured kernel services.
These live in inventory_config (the producer) because the kernel must
NEVER import inventory_config.

Usage:
    from inventory_config.bridges import build_ledger, build_request_service

    settings = get_active_settings(...)
    ledger = build_ledger(store, settings)
    requests = build_request_service(store, settings)
"""

from __future__ import annotations

from inventory_config.schema import LedgerSettings
from inventory_kernel.domain.clock import Clock
from inventory_kernel.domain.ports import InventoryStore, NotificationSink
from inventory_kernel.services.acquisition_service import AcquisitionRequestService
from inventory_kernel.services.claim_registry import ClaimRegistry
from inventory_kernel.services.quantity_ledger import QuantityLedger


def build_claim_registry(store: InventoryStore, settings: LedgerSettings) -> ClaimRegistry:
    """Registry enforcing the profile's exclusive claim kinds."""
    return ClaimRegistry(store, exclusive_kinds=settings.exclusive_claim_kinds)


def build_ledger(
    store: InventoryStore,
    settings: LedgerSettings,
    notifier: NotificationSink | None = None,
    clock: Clock | None = None,
) -> QuantityLedger:
    """QuantityLedger over ``store`` with a settings-driven registry."""
    return QuantityLedger(
        store,
        registry=build_claim_registry(store, settings),
        notifier=notifier,
        clock=clock,
    )


def build_request_service(
    store: InventoryStore,
    settings: LedgerSettings,
    notifier: NotificationSink | None = None,
    clock: Clock | None = None,
) -> AcquisitionRequestService:
    """Request service whose new requests live for ``settings.ttl``."""
    return AcquisitionRequestService(store, notifier, clock, ttl=settings.ttl)
