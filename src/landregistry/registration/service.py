"""Parcel registration and title-document access."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Awaitable, TypeVar

from pydantic import BaseModel

from landregistry.clients.calls import call_ledger, submit_and_confirm
from landregistry.clients.protocols import (
    ContentStoreClient,
    EncryptionGrant,
    LedgerClient,
    Signer,
)
from landregistry.core.config import ContentStoreConfig, LedgerConfig
from landregistry.core.errors import ContentStoreError, LedgerCallFailure
from landregistry.core.types import ParcelMetadata
from landregistry.lifecycle.models import LedgerOperation, OperationKind
from landregistry.pricing.converter import Amount, PriceConverter

T = TypeVar("T")


class RegistrationResult(BaseModel):
    """Outcome of registering a new parcel."""

    land_id: int
    metadata_cid: str
    document_cid: str
    tx_hash: str
    metadata: ParcelMetadata


class ParcelRegistrar:
    """Registers parcels and opens their encrypted title documents.

    Registration uploads the title document encrypted for the owner, uploads
    the public metadata document that points to it, then records both CIDs
    on the ledger. The new parcel starts Active and unlisted.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        content_store: ContentStoreClient,
        converter: PriceConverter | None = None,
        ledger_config: LedgerConfig | None = None,
        content_config: ContentStoreConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._content = content_store
        self._converter = converter or PriceConverter()
        self._ledger_config = ledger_config or LedgerConfig()
        self._content_config = content_config or ContentStoreConfig()

    async def register(
        self,
        owner: Signer,
        *,
        title_number: str,
        land_type: str,
        area: str,
        username: str,
        document: bytes,
        price: Amount | None = None,
    ) -> RegistrationResult:
        """Register a parcel owned by ``owner``.

        ``price`` is the declared value in the human currency; it is
        validated and kept in the metadata but does not list the parcel.

        Raises:
            InvalidPrice: If a price is given and cannot be converted.
            ContentStoreError: If an upload fails.
            LedgerCallFailure: If the ledger does not confirm registration.
        """
        if price is not None:
            self._converter.to_minor_unit(price)

        challenge = await self._content_call(self._content.issue_access_challenge(owner.address))
        signature = await self._content_call(owner.sign_message(challenge))
        document_cid = await self._content_call(
            self._content.upload(
                document,
                encryption=EncryptionGrant(address=owner.address, signature=signature),
            )
        )

        metadata = ParcelMetadata(
            title_number=title_number,
            land_type=land_type,
            area=area,
            username=username,
            price_human="" if price is None else self._converter.format_amount(price),
            timestamp=datetime.now(timezone.utc).isoformat(),
            document_cid=document_cid,
        )
        payload = json.dumps(metadata.to_document()).encode("utf-8")
        metadata_cid = await self._content_call(self._content.upload(payload))

        receipt = await submit_and_confirm(
            self._ledger,
            LedgerOperation(
                kind=OperationKind.REGISTER,
                caller=owner.address,
                metadata_cid=metadata_cid,
                document_cid=document_cid,
            ),
            timeout=self._ledger_config.confirmation_timeout_seconds,
        )
        if receipt.land_id is None:
            raise LedgerCallFailure(
                OperationKind.REGISTER, None, "confirmed without assigning a parcel id"
            )
        return RegistrationResult(
            land_id=receipt.land_id,
            metadata_cid=metadata_cid,
            document_cid=document_cid,
            tx_hash=receipt.tx_hash,
            metadata=metadata,
        )

    async def open_document(self, land_id: int, signer: Signer) -> bytes:
        """Decrypt the title document of ``land_id`` for ``signer``.

        Raises:
            LedgerCallFailure: If the parcel cannot be read.
            ContentStoreError: If the signer holds no access or the fetch fails.
        """
        record = await call_ledger(
            self._ledger.get_parcel(land_id),
            operation="get_parcel",
            land_id=land_id,
            timeout=self._ledger_config.timeout_seconds,
        )
        challenge = await self._content_call(self._content.issue_access_challenge(signer.address))
        signature = await self._content_call(signer.sign_message(challenge))
        key = await self._content_call(
            self._content.fetch_encryption_key(record.document_cid, signer.address, signature)
        )
        if not key:
            raise ContentStoreError(
                f"Encryption key not found for {record.document_cid}",
                {"cid": record.document_cid},
            )
        return await self._content_call(self._content.fetch(record.document_cid, key=key))

    async def _content_call(self, call: Awaitable[T]) -> T:
        timeout = self._content_config.timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ContentStoreError(f"Content store call timed out after {timeout}s") from exc
