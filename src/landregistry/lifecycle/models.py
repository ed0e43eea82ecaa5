"""Sale lifecycle data models: events, ledger operations and plans."""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel

from landregistry.core.types import ParcelRecord, ParcelStatus


class SaleEvent(StrEnum):
    """Events accepted by the sale state machine."""

    LIST = "list"
    BUYER_COMMITS = "buyer_commits"
    OWNER_APPROVES = "owner_approves"
    CANCEL = "cancel"


class OperationKind(StrEnum):
    """Operations the ledger accepts through ``submit``."""

    REGISTER = "register"
    LIST = "list"
    BUYER_COMMIT = "buyer_commit"
    CANCEL = "cancel"
    TRANSFER_OWNERSHIP = "transfer_ownership"


# The owner's approval is carried by the ownership transfer itself.
EVENT_OPERATIONS: dict[SaleEvent, OperationKind] = {
    SaleEvent.LIST: OperationKind.LIST,
    SaleEvent.BUYER_COMMITS: OperationKind.BUYER_COMMIT,
    SaleEvent.OWNER_APPROVES: OperationKind.TRANSFER_OWNERSHIP,
    SaleEvent.CANCEL: OperationKind.CANCEL,
}
OPERATION_EVENTS: dict[OperationKind, SaleEvent] = {
    op: event for event, op in EVENT_OPERATIONS.items()
}


class LedgerOperation(BaseModel):
    """A call to issue against the ledger."""

    kind: OperationKind
    caller: str
    land_id: int | None = None
    price_minor_unit: int | None = None
    value_minor_unit: int | None = None
    buyer: str | None = None
    metadata_cid: str | None = None
    document_cid: str | None = None


class LedgerReceipt(BaseModel):
    """Ledger acknowledgement of a submitted operation."""

    tx_hash: str
    confirmed: bool
    land_id: int | None = None
    block_number: int | None = None
    reason: str | None = None


class TransitionPlan(BaseModel):
    """Validated intent: the call to issue and the state it should produce."""

    land_id: int
    event: SaleEvent
    from_status: ParcelStatus
    to_status: ParcelStatus
    operation: LedgerOperation
    next_record: ParcelRecord


class TransitionResult(BaseModel):
    """A plan together with the ledger receipt that confirmed it."""

    plan: TransitionPlan
    receipt: LedgerReceipt


class SaleInfo(BaseModel):
    """Current listing of a parcel."""

    land_id: int
    status: ParcelStatus
    price_minor_unit: int
    price_human: Decimal
    pending_buyer: str | None = None
