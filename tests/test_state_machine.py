"""Tests for the parcel sale state machine."""

from __future__ import annotations

import pytest

from landregistry.core.errors import InvalidPrice, InvalidTransition
from landregistry.core.types import ParcelStatus
from landregistry.lifecycle.models import LedgerOperation, OperationKind, SaleEvent
from landregistry.lifecycle.state_machine import TRANSITIONS, AssetStateMachine

from tests.conftest import BUYER, OTHER_BUYER, OWNER, PRICE_5000_MINOR, make_record


_ALL_PAIRS = [(status, event) for status in ParcelStatus for event in SaleEvent]
_EFFECTIVE = {ParcelStatus.APPROVED: ParcelStatus.ACTIVE}
_UNLISTED_PAIRS = [
    (status, event)
    for status, event in _ALL_PAIRS
    if (_EFFECTIVE.get(status, status), event) not in TRANSITIONS
]


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


class TestTransitionTable:
    def test_table_is_the_documented_one(self):
        assert TRANSITIONS == {
            (ParcelStatus.ACTIVE, SaleEvent.LIST): ParcelStatus.FOR_SALE,
            (ParcelStatus.FOR_SALE, SaleEvent.BUYER_COMMITS): ParcelStatus.PENDING_APPROVAL,
            (ParcelStatus.PENDING_APPROVAL, SaleEvent.OWNER_APPROVES): ParcelStatus.APPROVED,
            (ParcelStatus.FOR_SALE, SaleEvent.CANCEL): ParcelStatus.ACTIVE,
            (ParcelStatus.PENDING_APPROVAL, SaleEvent.CANCEL): ParcelStatus.ACTIVE,
        }

    @pytest.mark.parametrize("status,event", _UNLISTED_PAIRS)
    def test_unlisted_pairs_fail_and_leave_state(
        self, machine: AssetStateMachine, status: ParcelStatus, event: SaleEvent
    ):
        record = make_record(status)
        before = record.model_dump()
        with pytest.raises(InvalidTransition) as exc_info:
            machine.transition(
                record,
                event,
                OWNER,
                price_minor_unit=PRICE_5000_MINOR,
                funds_minor_unit=record.price_minor_unit,
            )
        assert exc_info.value.event == event
        assert record.model_dump() == before

    def test_allowed_events(self, machine: AssetStateMachine):
        assert machine.allowed_events(make_record(ParcelStatus.ACTIVE)) == [SaleEvent.LIST]
        assert set(machine.allowed_events(make_record(ParcelStatus.PENDING_APPROVAL))) == {
            SaleEvent.OWNER_APPROVES,
            SaleEvent.CANCEL,
        }
        assert machine.allowed_events(make_record(ParcelStatus.APPROVED)) == [SaleEvent.LIST]


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


class TestList:
    def test_owner_lists_active_parcel(self, machine: AssetStateMachine):
        plan = machine.list(make_record(), OWNER, "5000")
        assert plan.to_status == ParcelStatus.FOR_SALE
        assert plan.operation.kind == OperationKind.LIST
        assert plan.operation.price_minor_unit == PRICE_5000_MINOR
        assert plan.next_record.price_minor_unit == PRICE_5000_MINOR
        assert plan.next_record.pending_buyer is None
        assert plan.next_record.invariant_violations() == []

    def test_owner_address_is_case_insensitive(self, machine: AssetStateMachine):
        plan = machine.list(make_record(), OWNER.lower(), "5000")
        assert plan.to_status == ParcelStatus.FOR_SALE

    def test_non_owner_cannot_list(self, machine: AssetStateMachine):
        with pytest.raises(InvalidTransition, match="only the owner"):
            machine.list(make_record(), BUYER, "5000")

    def test_invalid_price_raised_before_transition(self, machine: AssetStateMachine):
        with pytest.raises(InvalidPrice):
            machine.list(make_record(), OWNER, "0")

    def test_zero_minor_price_rejected(self, machine: AssetStateMachine):
        with pytest.raises(InvalidTransition, match="positive price"):
            machine.transition(make_record(), SaleEvent.LIST, OWNER, price_minor_unit=0)

    def test_new_owner_relists_approved_parcel(self, machine: AssetStateMachine):
        record = make_record(ParcelStatus.APPROVED, owner=BUYER)
        plan = machine.list(record, BUYER, "6000")
        assert plan.from_status == ParcelStatus.APPROVED
        assert plan.to_status == ParcelStatus.FOR_SALE

    def test_previous_owner_cannot_relist(self, machine: AssetStateMachine):
        record = make_record(ParcelStatus.APPROVED, owner=BUYER)
        with pytest.raises(InvalidTransition):
            machine.list(record, OWNER, "6000")


# ---------------------------------------------------------------------------
# buyer_commits
# ---------------------------------------------------------------------------


class TestBuyerCommits:
    def test_exact_funds_move_to_pending(self, machine: AssetStateMachine):
        plan = machine.buyer_commits(make_record(ParcelStatus.FOR_SALE), BUYER, PRICE_5000_MINOR)
        assert plan.to_status == ParcelStatus.PENDING_APPROVAL
        assert plan.next_record.pending_buyer == BUYER
        assert plan.operation.kind == OperationKind.BUYER_COMMIT
        assert plan.operation.value_minor_unit == PRICE_5000_MINOR
        assert plan.next_record.invariant_violations() == []

    @pytest.mark.parametrize("funds", [0, PRICE_5000_MINOR - 1, PRICE_5000_MINOR + 1])
    def test_wrong_funds_rejected(self, machine: AssetStateMachine, funds: int):
        with pytest.raises(InvalidTransition, match="do not match"):
            machine.buyer_commits(make_record(ParcelStatus.FOR_SALE), BUYER, funds)

    def test_owner_cannot_buy(self, machine: AssetStateMachine):
        with pytest.raises(InvalidTransition, match="own parcel"):
            machine.buyer_commits(make_record(ParcelStatus.FOR_SALE), OWNER, PRICE_5000_MINOR)

    def test_second_buyer_rejected(self, machine: AssetStateMachine):
        pending = make_record(ParcelStatus.PENDING_APPROVAL, pending_buyer=BUYER)
        with pytest.raises(InvalidTransition):
            machine.buyer_commits(pending, OTHER_BUYER, PRICE_5000_MINOR)

    def test_commit_with_pending_buyer_already_set(self, machine: AssetStateMachine):
        record = make_record(ParcelStatus.FOR_SALE).model_copy(update={"pending_buyer": BUYER})
        with pytest.raises(InvalidTransition, match="already committed"):
            machine.buyer_commits(record, OTHER_BUYER, PRICE_5000_MINOR)


# ---------------------------------------------------------------------------
# owner_approves / cancel
# ---------------------------------------------------------------------------


class TestApproveAndCancel:
    def test_approval_moves_ownership_and_resets_listing(
        self, machine: AssetStateMachine
    ):
        plan = machine.owner_approves(make_record(ParcelStatus.PENDING_APPROVAL), OWNER, BUYER)
        assert plan.to_status == ParcelStatus.APPROVED
        assert plan.operation.kind == OperationKind.TRANSFER_OWNERSHIP
        assert plan.operation.buyer == BUYER
        assert plan.next_record.owner == BUYER
        assert plan.next_record.price_minor_unit == 0
        assert plan.next_record.pending_buyer is None
        assert plan.next_record.invariant_violations() == []

    def test_only_owner_approves(self, machine: AssetStateMachine):
        with pytest.raises(InvalidTransition, match="only the owner"):
            machine.owner_approves(make_record(ParcelStatus.PENDING_APPROVAL), BUYER)

    def test_named_buyer_must_match(self, machine: AssetStateMachine):
        with pytest.raises(InvalidTransition, match="not the pending buyer"):
            machine.owner_approves(
                make_record(ParcelStatus.PENDING_APPROVAL), OWNER, OTHER_BUYER
            )

    @pytest.mark.parametrize("status", [ParcelStatus.FOR_SALE, ParcelStatus.PENDING_APPROVAL])
    def test_owner_cancels(self, machine: AssetStateMachine, status: ParcelStatus):
        plan = machine.cancel(make_record(status), OWNER)
        assert plan.to_status == ParcelStatus.ACTIVE
        assert plan.next_record.price_minor_unit == 0
        assert plan.next_record.pending_buyer is None

    def test_buyer_cannot_cancel(self, machine: AssetStateMachine):
        with pytest.raises(InvalidTransition):
            machine.cancel(make_record(ParcelStatus.PENDING_APPROVAL), BUYER)


class TestPlanOperation:
    def test_replays_submitted_operation(self, machine: AssetStateMachine):
        op = LedgerOperation(
            kind=OperationKind.LIST, caller=OWNER, land_id=7, price_minor_unit=10
        )
        plan = machine.plan_operation(make_record(), op)
        assert plan.next_record.price_minor_unit == 10

    def test_register_on_existing_parcel_rejected(self, machine: AssetStateMachine):
        op = LedgerOperation(
            kind=OperationKind.REGISTER, caller=OWNER, metadata_cid="m", document_cid="d"
        )
        with pytest.raises(InvalidTransition, match="already registered"):
            machine.plan_operation(make_record(), op)
