"""Protocol definitions for the external capabilities the core calls.

The ledger and the content store are independent systems reached over the
network. Components receive implementations of these protocols explicitly,
so tests can substitute in-memory doubles or mocks.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from pydantic import BaseModel

from landregistry.core.types import ParcelRecord
from landregistry.lifecycle.models import LedgerOperation, LedgerReceipt


class EncryptionGrant(BaseModel):
    """Owner identity used to encrypt an upload and bind its access."""

    address: str
    signature: str


class RegrantResult(BaseModel):
    """Outcome of moving document access between addresses."""

    success: bool
    error: str | None = None


@runtime_checkable
class LedgerClient(Protocol):
    """Protocol for the authoritative parcel ledger."""

    async def get_parcel(self, land_id: int) -> ParcelRecord: ...

    async def get_owned_parcel_ids(self, owner: str) -> Sequence[int]: ...

    async def get_all_parcel_ids(self) -> Sequence[int]: ...

    async def submit(self, operation: LedgerOperation) -> LedgerReceipt: ...


@runtime_checkable
class ContentStoreClient(Protocol):
    """Protocol for the content-addressed document store and its access control."""

    async def upload(
        self, data: bytes, *, encryption: EncryptionGrant | None = None
    ) -> str: ...

    async def fetch(self, cid: str, *, key: str | None = None) -> bytes: ...

    async def issue_access_challenge(self, address: str) -> str: ...

    async def regrant_access(
        self, cid: str, from_address: str, to_address: str, signature: str
    ) -> RegrantResult: ...

    async def fetch_encryption_key(
        self, cid: str, address: str, signature: str
    ) -> str: ...


@runtime_checkable
class Signer(Protocol):
    """Holder of an address that can sign access challenges."""

    @property
    def address(self) -> str: ...

    async def sign_message(self, message: str) -> str: ...
