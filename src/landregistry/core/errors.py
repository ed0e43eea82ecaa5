"""Typed error taxonomy for the land registry core.

Local validation errors (InvalidPrice, InvalidTransition) are raised before
any ledger submission. LedgerCallFailure aborts the operation in progress.
AccessRegrantFailure is reserved for a transfer whose on-chain phase is
confirmed but whose document access was not moved; callers must be able to
tell it apart from a clean abort.
"""

from __future__ import annotations

from typing import Any


class LandRegistryError(Exception):
    """Base exception for all land registry errors."""

    code = "LAND_REGISTRY_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidPrice(LandRegistryError, ValueError):
    """Price is not a finite positive amount representable on the ledger."""

    code = "INVALID_PRICE"

    def __init__(self, value: Any, reason: str) -> None:
        super().__init__(f"Invalid price {value!r}: {reason}", {"value": str(value)})
        self.value = value
        self.reason = reason


class InvalidTransition(LandRegistryError, ValueError):
    """Event not allowed from the parcel's current state or by this caller."""

    code = "INVALID_TRANSITION"

    def __init__(self, land_id: int, status: str, event: str, reason: str) -> None:
        super().__init__(
            f"Parcel {land_id}: cannot {event} from {status}: {reason}",
            {"land_id": land_id, "status": str(status), "event": str(event)},
        )
        self.land_id = land_id
        self.status = status
        self.event = event
        self.reason = reason


class LedgerCallFailure(LandRegistryError):
    """A ledger read or submission failed, timed out, or was reverted."""

    code = "LEDGER_CALL_FAILURE"

    def __init__(self, operation: str, land_id: int | None, reason: str) -> None:
        target = f" on parcel {land_id}" if land_id is not None else ""
        super().__init__(
            f"Ledger {operation}{target} failed: {reason}",
            {"operation": operation, "land_id": land_id},
        )
        self.operation = operation
        self.land_id = land_id
        self.reason = reason


class AccessRegrantFailure(LandRegistryError):
    """Ownership moved on-chain but document access was not re-granted.

    The buyer is the ledger owner without the ability to decrypt the
    document. The error carries everything needed to retry the re-grant.
    """

    code = "ACCESS_REGRANT_FAILURE"
    retriable = True

    def __init__(
        self,
        land_id: int,
        buyer: str,
        seller: str,
        document_cid: str,
        saga_id: str,
        reason: str,
    ) -> None:
        super().__init__(
            f"Parcel {land_id} transferred to {buyer} but access to "
            f"{document_cid} was not re-granted: {reason}",
            {
                "land_id": land_id,
                "buyer": buyer,
                "seller": seller,
                "document_cid": document_cid,
                "saga_id": saga_id,
            },
        )
        self.land_id = land_id
        self.buyer = buyer
        self.seller = seller
        self.document_cid = document_cid
        self.saga_id = saga_id
        self.reason = reason


class TransferInProgress(LandRegistryError):
    """Another transfer for the same parcel is still running in this process."""

    code = "TRANSFER_IN_PROGRESS"

    def __init__(self, land_id: int) -> None:
        super().__init__(
            f"A transfer for parcel {land_id} is already in flight",
            {"land_id": land_id},
        )
        self.land_id = land_id


class ContentStoreError(LandRegistryError):
    """Content store rejected a request or the content is missing."""

    code = "CONTENT_STORE_ERROR"
