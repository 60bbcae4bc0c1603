"""Tests for the claim and request state machines and the clock."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from inventory_kernel.domain.acquisition import (
    REQUEST_TRANSITIONS,
    AcquisitionRequest,
    RequestState,
    compute_deadline,
)
from inventory_kernel.domain.claim import (
    CLAIM_TRANSITIONS,
    RESTORING_CLAIM_KINDS,
    TERMINAL_CLAIM_STATES,
    ClaimKind,
    ClaimState,
)
from inventory_kernel.domain.clock import DeterministicClock


class TestClaimTransitions:
    def test_open_goes_to_completed_or_cancelled(self):
        assert CLAIM_TRANSITIONS[ClaimState.OPEN] == {
            ClaimState.COMPLETED, ClaimState.CANCELLED,
        }

    @pytest.mark.parametrize("state", sorted(TERMINAL_CLAIM_STATES))
    def test_terminal_states_have_no_exits(self, state):
        assert CLAIM_TRANSITIONS[state] == frozenset()

    def test_consumption_is_not_restoring(self):
        assert ClaimKind.CONSUMPTION not in RESTORING_CLAIM_KINDS
        assert len(RESTORING_CLAIM_KINDS) == 4


class TestRequestTransitions:
    def test_pending_resolves_to_approved_or_declined(self):
        assert REQUEST_TRANSITIONS[RequestState.PENDING] == {
            RequestState.APPROVED, RequestState.DECLINED,
        }

    def test_archive_only_from_terminal(self):
        sources = {s for s, targets in REQUEST_TRANSITIONS.items() if RequestState.ARCHIVED in targets}
        assert sources == {RequestState.APPROVED, RequestState.DECLINED}

    def test_nothing_returns_to_pending(self):
        assert all(RequestState.PENDING not in t for t in REQUEST_TRANSITIONS.values())

    def test_expiry_boundary(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        request = AcquisitionRequest(
            request_id=uuid4(),
            asset_name="Chairs",
            quantity=20,
            requested_by="ops",
            created_at=created,
            deadline=compute_deadline(created, timedelta(seconds=30)),
        )
        assert not request.is_expired(created + timedelta(seconds=29))
        assert request.is_expired(created + timedelta(seconds=30))


class TestDeterministicClock:
    def test_advance(self):
        clock = DeterministicClock()
        start = clock.now()
        assert clock.advance(31) == start + timedelta(seconds=31)
        assert clock.advance(timedelta(milliseconds=100)) == start + timedelta(seconds=31.1)

    def test_cannot_go_backwards(self):
        with pytest.raises(ValueError):
            DeterministicClock().advance(-1)
