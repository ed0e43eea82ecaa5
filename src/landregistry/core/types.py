"""Core type definitions shared across all land registry modules."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class ParcelStatus(StrEnum):
    """Sale status of a parcel as recorded on the ledger."""

    ACTIVE = "Active"
    FOR_SALE = "ForSale"
    PENDING_APPROVAL = "PendingApproval"
    APPROVED = "Approved"

    @property
    def code(self) -> int:
        """Integer code the ledger stores for this status."""
        return _STATUS_CODES.index(self)

    @classmethod
    def from_code(cls, code: int) -> ParcelStatus:
        if not 0 <= code < len(_STATUS_CODES):
            raise ValueError(f"Unknown parcel status code {code!r}")
        return _STATUS_CODES[code]


_STATUS_CODES: list[ParcelStatus] = [
    ParcelStatus.ACTIVE,
    ParcelStatus.FOR_SALE,
    ParcelStatus.PENDING_APPROVAL,
    ParcelStatus.APPROVED,
]

LISTED_STATUSES = frozenset({ParcelStatus.FOR_SALE, ParcelStatus.PENDING_APPROVAL})


class ParcelRecord(BaseModel):
    """Authoritative on-chain state of a registered parcel."""

    land_id: int
    owner: str
    status: ParcelStatus = ParcelStatus.ACTIVE
    price_minor_unit: int = Field(default=0, ge=0)
    metadata_cid: str
    document_cid: str
    pending_buyer: str | None = None

    def invariant_violations(self) -> list[str]:
        """Return a description of every ledger invariant this record breaks."""
        problems: list[str] = []
        if self.status in LISTED_STATUSES and self.price_minor_unit <= 0:
            problems.append(f"{self.status} parcel must carry a positive price")
        if self.status not in LISTED_STATUSES and self.price_minor_unit != 0:
            problems.append(f"{self.status} parcel must not carry a price")
        if self.status == ParcelStatus.PENDING_APPROVAL and not self.pending_buyer:
            problems.append("PendingApproval parcel must name a pending buyer")
        if self.status != ParcelStatus.PENDING_APPROVAL and self.pending_buyer:
            problems.append(f"{self.status} parcel must not name a pending buyer")
        return problems


class ParcelMetadata(BaseModel):
    """Public descriptive document stored off-chain and addressed by CID.

    Wire keys are the camelCase names used by the registration front end;
    unknown keys are kept so that newer documents round-trip unchanged.
    """

    model_config = {
        "populate_by_name": True,
        "extra": "allow",
        "coerce_numbers_to_str": True,
    }

    title_number: str = Field(default="", alias="titleNumber")
    land_type: str = Field(default="", alias="landType")
    area: str = ""
    price_human: str = Field(default="", alias="priceRM")
    username: str = ""
    timestamp: str = ""
    document_cid: str = Field(default="", alias="geranCid")

    def to_document(self) -> dict:
        """Serialize with wire keys, ready for upload."""
        return self.model_dump(by_alias=True)
