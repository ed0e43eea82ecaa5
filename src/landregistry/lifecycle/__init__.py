"""Parcel sale lifecycle: events, ledger operations and the state machine."""

from landregistry.lifecycle.models import (
    LedgerOperation,
    LedgerReceipt,
    OperationKind,
    SaleEvent,
    TransitionPlan,
)
from landregistry.lifecycle.state_machine import AssetStateMachine

__all__ = [
    "AssetStateMachine",
    "LedgerOperation",
    "LedgerReceipt",
    "OperationKind",
    "SaleEvent",
    "TransitionPlan",
]
