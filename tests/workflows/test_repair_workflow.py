"""
Tests for RepairWorkflow: repair claims kept in step with issue status.
"""

import pytest

from inventory_kernel.domain.claim import ClaimKind, ClaimState
from inventory_kernel.exceptions import ClaimAlreadyClosedError, ConflictingClaimError
from inventory_services import InMemoryIssueStatusStore, IssueStatus, RepairWorkflow


class _FlakyIssueStore(InMemoryIssueStatusStore):
    """Fails the first write of ``fail_on``."""

    def __init__(self, fail_on: IssueStatus):
        super().__init__()
        self._fail_on = fail_on
        self.failures = 0

    def set_status(self, issue_id, status):
        if status == self._fail_on and self.failures == 0:
            self.failures += 1
            raise RuntimeError("issue tracker unavailable")
        super().set_status(issue_id, status)


@pytest.fixture
def issues():
    return InMemoryIssueStatusStore()


@pytest.fixture
def repairs(ledger, issues):
    return RepairWorkflow(ledger, issues)


class TestRepairLifecycle:
    def test_send_and_complete(self, repairs, issues, ledger, make_asset):
        asset_id = make_asset(total=5)
        claim_id = repairs.send_to_repair(asset_id, 2, issue_id="17")

        assert issues.get_status("17") == IssueStatus.IN_REPAIR
        assert ledger.get_claim(claim_id).reference == "issue:17"
        assert ledger.get_asset(asset_id).available == 3

        claim = repairs.complete_repair(claim_id)
        assert claim.state == ClaimState.COMPLETED
        assert issues.get_status("17") == IssueStatus.RESOLVED
        assert ledger.get_asset(asset_id).available == 5

    def test_cancel_puts_issue_back_to_pending(self, repairs, issues, ledger, make_asset):
        asset_id = make_asset(total=5)
        claim_id = repairs.send_to_repair(asset_id, 5, issue_id="8")

        claim = repairs.cancel_repair(claim_id)
        assert claim.state == ClaimState.CANCELLED
        assert issues.get_status("8") == IssueStatus.PENDING
        assert ledger.get_asset(asset_id).available == 5

    def test_without_issue(self, repairs, ledger, make_asset):
        asset_id = make_asset(total=3)
        claim_id = repairs.send_to_repair(asset_id, 1)
        assert ledger.get_claim(claim_id).reference is None
        assert repairs.complete_repair(claim_id).state == ClaimState.COMPLETED

    def test_second_repair_on_same_asset_conflicts(self, repairs, make_asset):
        asset_id = make_asset(total=5)
        repairs.send_to_repair(asset_id, 1, issue_id="1")
        with pytest.raises(ConflictingClaimError):
            repairs.send_to_repair(asset_id, 1, issue_id="2")

    def test_resolved_issue_is_not_reopened(self, repairs, issues, make_asset, captured_logs):
        asset_id = make_asset(total=5)
        issues.set_status("99", IssueStatus.RESOLVED)
        claim_id = repairs.send_to_repair(asset_id, 1, issue_id="99")

        assert issues.get_status("99") == IssueStatus.RESOLVED
        skipped = [r for r in captured_logs() if r["message"] == "issue_transition_skipped"]
        assert skipped and skipped[0]["to_status"] == "in_repair"
        repairs.complete_repair(claim_id)


class TestRetryAfterPartialFailure:
    def test_send_retry_reuses_open_claim(self, ledger, make_asset):
        issues = _FlakyIssueStore(fail_on=IssueStatus.IN_REPAIR)
        repairs = RepairWorkflow(ledger, issues)
        asset_id = make_asset(total=10)

        with pytest.raises(RuntimeError):
            repairs.send_to_repair(asset_id, 3, issue_id="42")
        orphan = ledger.registry.find_open(asset_id, ClaimKind.REPAIR, "issue:42")
        assert orphan is not None
        assert issues.get_status("42") == IssueStatus.PENDING

        claim_id = repairs.send_to_repair(asset_id, 3, issue_id="42")
        assert claim_id == orphan.claim_id
        assert ledger.get_asset(asset_id).available == 7
        assert issues.get_status("42") == IssueStatus.IN_REPAIR
        assert ledger.verify(asset_id)

    def test_complete_retry_does_not_double_credit(self, ledger, make_asset):
        issues = _FlakyIssueStore(fail_on=IssueStatus.RESOLVED)
        repairs = RepairWorkflow(ledger, issues)
        asset_id = make_asset(total=10)
        claim_id = repairs.send_to_repair(asset_id, 4, issue_id="5")

        with pytest.raises(RuntimeError):
            repairs.complete_repair(claim_id)
        assert ledger.get_asset(asset_id).available == 10
        assert issues.get_status("5") == IssueStatus.IN_REPAIR

        repairs.complete_repair(claim_id)
        assert ledger.get_asset(asset_id).available == 10
        assert issues.get_status("5") == IssueStatus.RESOLVED
        assert ledger.verify(asset_id)

    def test_completing_a_cancelled_repair_still_fails(self, repairs, make_asset):
        asset_id = make_asset(total=2)
        claim_id = repairs.send_to_repair(asset_id, 1)
        repairs.cancel_repair(claim_id)
        with pytest.raises(ClaimAlreadyClosedError):
            repairs.complete_repair(claim_id)
