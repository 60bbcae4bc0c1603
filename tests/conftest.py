"""
Pytest fixtures for the inventory claim ledger test suite.

Provides:
- Structured logging configured for the whole session, plus a
  ``captured_logs`` fixture returning parsed JSON records
- A deterministic clock
- In-memory store, ledger, registry and acquisition request service
- A recording notification sink
- SQLAlchemy-backed store on in-memory SQLite (``sql_store``)
"""

import json
import logging
import threading
from datetime import timedelta
from io import StringIO

import pytest

from inventory_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from inventory_kernel.domain.claim import AssetKind
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.services.acquisition_service import AcquisitionRequestService
from inventory_kernel.services.claim_registry import ClaimRegistry
from inventory_kernel.services.quantity_ledger import QuantityLedger
from inventory_kernel.storage import InMemoryInventoryStore, SqlAlchemyInventoryStore

TEST_TTL = timedelta(seconds=30)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.claim(...)
            logs = captured_logs()
            assert any(r["message"] == "claim_opened" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Core fixtures
# =============================================================================


class RecordingSink:
    """NotificationSink that keeps every delivery, in order."""

    def __init__(self):
        self._lock = threading.Lock()
        self.claims = []
        self.requests = []

    def on_claim_state_changed(self, claim):
        with self._lock:
            self.claims.append(claim)

    def on_request_state_changed(self, request):
        with self._lock:
            self.requests.append(request)

    def requests_for(self, request_id):
        return [r for r in self.requests if r.request_id == request_id]

    def claims_for(self, claim_id):
        return [c for c in self.claims if c.claim_id == claim_id]


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def store() -> InMemoryInventoryStore:
    return InMemoryInventoryStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def registry(store) -> ClaimRegistry:
    return ClaimRegistry(store)


@pytest.fixture
def ledger(store, registry, sink, deterministic_clock) -> QuantityLedger:
    return QuantityLedger(store, registry, sink, deterministic_clock)


@pytest.fixture
def request_service(store, sink, deterministic_clock) -> AcquisitionRequestService:
    return AcquisitionRequestService(store, sink, deterministic_clock, ttl=TEST_TTL)


@pytest.fixture
def make_asset(ledger):
    """Factory: register an asset and return its id."""

    def _make(
        total: int = 10,
        kind: AssetKind = AssetKind.NON_CONSUMABLE,
        borrowing_enabled: bool = True,
        name: str = "Projector",
    ):
        return ledger.register_asset(
            name, kind, total, borrowing_enabled=borrowing_enabled,
        ).asset_id

    return _make


# =============================================================================
# SQL fixtures
# =============================================================================


@pytest.fixture
def sql_store():
    """SqlAlchemyInventoryStore on a fresh in-memory SQLite database."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield SqlAlchemyInventoryStore(get_session_factory())
    drop_tables()
    reset_engine()
