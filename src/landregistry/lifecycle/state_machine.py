"""Sale state machine for registered parcels.

The machine validates an event against a parcel record and computes the
ledger call to issue plus the record the ledger should hold afterwards.
It never commits anything itself: the ledger is the authority, and a
transition only happens once the ledger confirms the planned operation.

Transition table::

    Active           --list(price)----------> ForSale
    ForSale          --buyer_commits(funds)--> PendingApproval
    PendingApproval  --owner_approves-------> Approved
    ForSale          --cancel---------------> Active
    PendingApproval  --cancel---------------> Active

An Approved parcel has finished one sale cycle and is evaluated as the new
owner's Active parcel, so the only event it accepts is ``list``.
"""

from __future__ import annotations

from landregistry.core.errors import InvalidTransition
from landregistry.core.types import ParcelRecord, ParcelStatus
from landregistry.lifecycle.models import (
    EVENT_OPERATIONS,
    OPERATION_EVENTS,
    LedgerOperation,
    OperationKind,
    SaleEvent,
    TransitionPlan,
)
from landregistry.pricing.converter import Amount, PriceConverter

TRANSITIONS: dict[tuple[ParcelStatus, SaleEvent], ParcelStatus] = {
    (ParcelStatus.ACTIVE, SaleEvent.LIST): ParcelStatus.FOR_SALE,
    (ParcelStatus.FOR_SALE, SaleEvent.BUYER_COMMITS): ParcelStatus.PENDING_APPROVAL,
    (ParcelStatus.PENDING_APPROVAL, SaleEvent.OWNER_APPROVES): ParcelStatus.APPROVED,
    (ParcelStatus.FOR_SALE, SaleEvent.CANCEL): ParcelStatus.ACTIVE,
    (ParcelStatus.PENDING_APPROVAL, SaleEvent.CANCEL): ParcelStatus.ACTIVE,
}


class AssetStateMachine:
    """Validates and plans parcel sale transitions."""

    def __init__(self, converter: PriceConverter | None = None) -> None:
        self._converter = converter or PriceConverter()

    @property
    def converter(self) -> PriceConverter:
        return self._converter

    # -- events --------------------------------------------------------------

    def list(self, record: ParcelRecord, caller: str, price: Amount) -> TransitionPlan:
        """Plan listing a parcel for sale at a human-currency price.

        Raises:
            InvalidPrice: If the price cannot be converted.
            InvalidTransition: If the parcel is not Active or the caller is
                not the owner.
        """
        price_minor_unit = self._converter.to_minor_unit(price)
        return self.transition(
            record, SaleEvent.LIST, caller, price_minor_unit=price_minor_unit
        )

    def buyer_commits(
        self, record: ParcelRecord, caller: str, funds_minor_unit: int
    ) -> TransitionPlan:
        """Plan a buyer committing funds equal to the listed price."""
        return self.transition(
            record, SaleEvent.BUYER_COMMITS, caller, funds_minor_unit=funds_minor_unit
        )

    def owner_approves(
        self, record: ParcelRecord, caller: str, buyer: str | None = None
    ) -> TransitionPlan:
        """Plan the owner approving the committed buyer.

        Args:
            record: Current ledger record.
            caller: Address approving; must be the owner.
            buyer: Buyer the caller intends to approve. When given it must
                match the pending buyer on the record.
        """
        return self.transition(record, SaleEvent.OWNER_APPROVES, caller, buyer=buyer)

    def cancel(self, record: ParcelRecord, caller: str) -> TransitionPlan:
        return self.transition(record, SaleEvent.CANCEL, caller)

    # -- core ----------------------------------------------------------------

    def transition(
        self,
        record: ParcelRecord,
        event: SaleEvent,
        caller: str,
        *,
        price_minor_unit: int | None = None,
        funds_minor_unit: int | None = None,
        buyer: str | None = None,
    ) -> TransitionPlan:
        """Validate ``event`` against ``record`` and return the plan.

        The record passed in is never modified.

        Raises:
            InvalidTransition: If (state, event) is not in the table or a
                precondition fails.
        """
        state = self.effective_state(record)
        target = TRANSITIONS.get((state, event))

        def reject(reason: str) -> InvalidTransition:
            return InvalidTransition(record.land_id, record.status, event, reason)

        if target is None:
            raise reject("event not allowed in this state")

        operation = LedgerOperation(
            kind=EVENT_OPERATIONS[event], caller=caller, land_id=record.land_id
        )

        if event == SaleEvent.LIST:
            if not _same(caller, record.owner):
                raise reject("only the owner may list the parcel")
            if price_minor_unit is None or price_minor_unit <= 0:
                raise reject("listing requires a positive price")
            operation.price_minor_unit = price_minor_unit
            updates = {"price_minor_unit": price_minor_unit, "pending_buyer": None}

        elif event == SaleEvent.BUYER_COMMITS:
            if record.pending_buyer:
                raise reject(f"buyer {record.pending_buyer} has already committed")
            if _same(caller, record.owner):
                raise reject("the owner cannot buy their own parcel")
            if funds_minor_unit != record.price_minor_unit:
                raise reject(
                    f"funds {funds_minor_unit} do not match price {record.price_minor_unit}"
                )
            operation.value_minor_unit = funds_minor_unit
            updates = {"pending_buyer": caller}

        elif event == SaleEvent.OWNER_APPROVES:
            if not _same(caller, record.owner):
                raise reject("only the owner may approve the sale")
            if not record.pending_buyer:
                raise reject("no buyer has committed")
            if buyer is not None and not _same(buyer, record.pending_buyer):
                raise reject(f"{buyer} is not the pending buyer")
            operation.buyer = record.pending_buyer
            updates = {
                "owner": record.pending_buyer,
                "price_minor_unit": 0,
                "pending_buyer": None,
            }

        else:
            if not _same(caller, record.owner):
                raise reject("only the owner may cancel the listing")
            updates = {"price_minor_unit": 0, "pending_buyer": None}

        updates["status"] = target
        return TransitionPlan(
            land_id=record.land_id,
            event=event,
            from_status=record.status,
            to_status=target,
            operation=operation,
            next_record=record.model_copy(update=updates),
        )

    def plan_operation(
        self, record: ParcelRecord, operation: LedgerOperation
    ) -> TransitionPlan:
        """Re-validate a submitted ledger operation against ``record``."""
        if operation.kind == OperationKind.REGISTER:
            raise InvalidTransition(
                record.land_id, record.status, operation.kind, "parcel is already registered"
            )
        return self.transition(
            record,
            OPERATION_EVENTS[operation.kind],
            operation.caller,
            price_minor_unit=operation.price_minor_unit,
            funds_minor_unit=operation.value_minor_unit,
            buyer=operation.buyer,
        )

    @staticmethod
    def effective_state(record: ParcelRecord) -> ParcelStatus:
        if record.status == ParcelStatus.APPROVED:
            return ParcelStatus.ACTIVE
        return record.status

    def allowed_events(self, record: ParcelRecord) -> list[SaleEvent]:
        state = self.effective_state(record)
        return [event for (source, event) in TRANSITIONS if source == state]


def _same(a: str | None, b: str | None) -> bool:
    # Ledger addresses are case-insensitive hex.
    return a is not None and b is not None and a.lower() == b.lower()
