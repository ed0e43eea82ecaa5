"""Assembled parcel views joining ledger state with off-chain metadata."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel

from landregistry.core.types import ParcelMetadata, ParcelStatus
from landregistry.metadata.models import ResolutionFailure

UNAVAILABLE = "unavailable"


class AssembledParcel(BaseModel):
    """A parcel as shown to callers.

    Ledger fields are always present. Descriptive fields come from the
    resolved metadata document and read as ``UNAVAILABLE`` when it could
    not be resolved.
    """

    land_id: int
    owner: str
    status: ParcelStatus
    price_minor_unit: int
    price_human: Decimal
    price_display: str
    pending_buyer: str | None = None
    metadata_cid: str
    document_cid: str
    document_url: str
    descriptive: ParcelMetadata | ResolutionFailure

    @property
    def metadata_available(self) -> bool:
        return isinstance(self.descriptive, ParcelMetadata)

    @property
    def title_number(self) -> str:
        return self._field("title_number")

    @property
    def land_type(self) -> str:
        return self._field("land_type")

    @property
    def area(self) -> str:
        return self._field("area")

    @property
    def registrant(self) -> str:
        return self._field("username")

    @property
    def registered_at(self) -> str:
        return self._field("timestamp")

    def _field(self, name: str) -> str:
        if isinstance(self.descriptive, ParcelMetadata):
            return getattr(self.descriptive, name)
        return UNAVAILABLE
