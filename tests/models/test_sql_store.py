"""
Tests for SqlAlchemyInventoryStore and the kernel ORM models.

Uses in-memory SQLite with the real ORM models; single-threaded.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from inventory_kernel.db.engine import get_session_factory, session_scope
from inventory_kernel.domain.acquisition import AcquisitionRequest, RequestState
from inventory_kernel.domain.claim import Asset, AssetKind, ClaimKind, ClaimState
from inventory_kernel.exceptions import (
    AlreadyResolvedError,
    AssetNotFoundError,
    ClaimAlreadyClosedError,
    LedgerStorageError,
    RequestNotFoundError,
)
from inventory_kernel.models import AssetModel
from inventory_kernel.services.acquisition_service import AcquisitionRequestService
from inventory_kernel.services.quantity_ledger import QuantityLedger
from inventory_kernel.storage import SqlAlchemyInventoryStore

pytestmark = pytest.mark.sql


@pytest.fixture
def sql_ledger(sql_store, sink, deterministic_clock):
    return QuantityLedger(sql_store, notifier=sink, clock=deterministic_clock)


@pytest.fixture
def sql_requests(sql_store, sink, deterministic_clock):
    return AcquisitionRequestService(
        sql_store, sink, deterministic_clock, ttl=timedelta(seconds=30),
    )


class TestAssetsAndClaims:
    def test_round_trip(self, sql_store):
        asset = Asset(uuid4(), "Speaker", AssetKind.NON_CONSUMABLE, 4, 4, True)
        sql_store.save_asset(asset)
        assert sql_store.load_asset(asset.asset_id) == asset

        with pytest.raises(AssetNotFoundError):
            sql_store.load_asset(uuid4())

    def test_ledger_scenarios(self, sql_ledger):
        asset_id = sql_ledger.register_asset("Speaker", AssetKind.NON_CONSUMABLE, 10).asset_id
        sql_ledger.claim(asset_id, 4, ClaimKind.REPAIR)
        sql_ledger.claim(asset_id, 6, ClaimKind.EVENT_ALLOCATION)
        assert sql_ledger.get_asset(asset_id).available == 0
        assert sql_ledger.verify(asset_id)

        stock_id = sql_ledger.register_asset("Tape", AssetKind.CONSUMABLE, 10).asset_id
        consumed = sql_ledger.consume(stock_id, 3)
        stock = sql_ledger.get_asset(stock_id)
        assert (stock.available, stock.total_quantity) == (7, 7)
        assert sql_ledger.get_claim(consumed).consumed_quantity == 3

    def test_adjust_and_release(self, sql_ledger):
        asset_id = sql_ledger.register_asset("Ladder", AssetKind.NON_CONSUMABLE, 5).asset_id
        claim_id = sql_ledger.claim(asset_id, 2, ClaimKind.MAINTENANCE)
        sql_ledger.adjust_quantity_change(claim_id, 4)
        assert sql_ledger.get_asset(asset_id).available == 1

        released = sql_ledger.release(claim_id)
        assert released.state == ClaimState.COMPLETED
        assert released.closed_at.tzinfo is not None
        assert sql_ledger.get_asset(asset_id).available == 5
        with pytest.raises(ClaimAlreadyClosedError):
            sql_ledger.release(claim_id)

    def test_list_claims_by_state(self, sql_ledger, sql_store, deterministic_clock):
        asset_id = sql_ledger.register_asset("Ladder", AssetKind.NON_CONSUMABLE, 5).asset_id
        first = sql_ledger.claim(asset_id, 1, ClaimKind.MAINTENANCE)
        deterministic_clock.advance(1)
        second = sql_ledger.claim(asset_id, 1, ClaimKind.BORROW)
        sql_ledger.cancel(second)

        assert [c.claim_id for c in sql_store.list_claims(asset_id)] == [first, second]
        assert [c.claim_id for c in sql_store.list_claims(asset_id, ClaimState.OPEN)] == [first]

    def test_check_constraint_blocks_negative_available(self, sql_store):
        asset = Asset(uuid4(), "Speaker", AssetKind.NON_CONSUMABLE, 4, 4)
        sql_store.save_asset(asset)
        with pytest.raises(IntegrityError):
            with session_scope(get_session_factory()) as session:
                session.get(AssetModel, asset.asset_id).available = -1


class _FailingSqlStore(SqlAlchemyInventoryStore):
    def save_claim(self, claim):
        raise IntegrityError("INSERT", {}, Exception("simulated"))


class TestTransactionRollback:
    def test_counter_rolls_back_with_failed_claim(self, sql_store, deterministic_clock):
        ledger = QuantityLedger(sql_store, clock=deterministic_clock)
        asset_id = ledger.register_asset("Speaker", AssetKind.NON_CONSUMABLE, 10).asset_id

        failing = QuantityLedger(_FailingSqlStore(get_session_factory()), clock=deterministic_clock)
        with pytest.raises(LedgerStorageError):
            failing.claim(asset_id, 3, ClaimKind.REPAIR)

        assert sql_store.load_asset(asset_id).available == 10
        assert ledger.verify(asset_id)


class TestRequests:
    def test_round_trip_keeps_utc(self, sql_store):
        created = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        request = AcquisitionRequest(
            request_id=uuid4(),
            asset_name="Chairs",
            quantity=3,
            requested_by="ops",
            created_at=created,
            deadline=created + timedelta(days=7),
        )
        sql_store.save_request(request)
        loaded = sql_store.load_request(request.request_id)
        assert loaded == request
        assert loaded.deadline.tzinfo is not None

    def test_compare_and_swap(self, sql_store, sql_requests):
        request_id = sql_requests.create("Chairs", 1, "ops")
        pending = sql_store.load_request(request_id)

        approved = replace(pending, state=RequestState.APPROVED)
        declined = replace(pending, state=RequestState.DECLINED)
        assert sql_store.compare_and_swap_request(approved, RequestState.PENDING) is True
        assert sql_store.compare_and_swap_request(declined, RequestState.PENDING) is False
        assert sql_store.load_request(request_id).state == RequestState.APPROVED

        with pytest.raises(RequestNotFoundError):
            sql_store.compare_and_swap_request(replace(pending, request_id=uuid4()), RequestState.PENDING)

    def test_delete_is_conditional_on_state(self, sql_store, sql_requests):
        request_id = sql_requests.create("Chairs", 1, "ops")
        sql_requests.approve(request_id)

        assert sql_store.delete_request(request_id, RequestState.ARCHIVED) is False
        assert sql_store.load_request(request_id).state == RequestState.APPROVED

        sql_requests.archive(request_id)
        assert sql_store.delete_request(request_id, RequestState.ARCHIVED) is True
        with pytest.raises(RequestNotFoundError):
            sql_store.delete_request(request_id, RequestState.ARCHIVED)

    def test_lifecycle_and_due_filter(self, sql_requests, deterministic_clock):
        first = sql_requests.create("Chairs", 1, "ops")
        deterministic_clock.advance(20)
        second = sql_requests.create("Tables", 1, "ops")
        deterministic_clock.advance(15)

        assert [r.request_id for r in sql_requests.due_for_expiry()] == [first]
        assert sql_requests.auto_decline(first).auto_declined is True
        with pytest.raises(AlreadyResolvedError):
            sql_requests.approve(first)

        sql_requests.approve(second)
        newest_first = [r.request_id for r in sql_requests.list_requests()]
        assert newest_first == [second, first]

        sql_requests.archive(first)
        assert sql_requests.restore(first).state == RequestState.DECLINED
        sql_requests.archive(first)
        sql_requests.delete(first)
        with pytest.raises(RequestNotFoundError):
            sql_requests.get(first)
