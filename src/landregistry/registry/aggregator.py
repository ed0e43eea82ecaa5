"""Registry aggregation: ledger records joined with resolved metadata."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from landregistry.clients.calls import call_ledger
from landregistry.clients.protocols import LedgerClient
from landregistry.core.config import LedgerConfig
from landregistry.core.types import ParcelMetadata, ParcelRecord
from landregistry.metadata.models import ResolutionFailure
from landregistry.metadata.resolver import MetadataResolver
from landregistry.pricing.converter import PriceConverter
from landregistry.registry.models import AssembledParcel

logger = logging.getLogger(__name__)


class RegistryAggregator:
    """Builds AssembledParcel views for owner-scoped or global listings.

    Each parcel is assembled in its own task: read the ledger record, then
    resolve its metadata CID. A metadata failure degrades that one parcel;
    it is never dropped from the result.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        resolver: MetadataResolver,
        converter: PriceConverter | None = None,
        config: LedgerConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._resolver = resolver
        self._converter = converter or PriceConverter()
        self._config = config or LedgerConfig()

    async def list_for_owner(self, owner: str) -> list[AssembledParcel]:
        ids = await call_ledger(
            self._ledger.get_owned_parcel_ids(owner),
            operation="get_owned_parcel_ids",
            land_id=None,
            timeout=self._config.timeout_seconds,
        )
        return await self._assemble_all(ids)

    async def list_all(self) -> list[AssembledParcel]:
        ids = await call_ledger(
            self._ledger.get_all_parcel_ids(),
            operation="get_all_parcel_ids",
            land_id=None,
            timeout=self._config.timeout_seconds,
        )
        return await self._assemble_all(ids)

    async def get(self, land_id: int) -> AssembledParcel:
        return await self._assemble(land_id)

    # -- internal ------------------------------------------------------------

    async def _assemble_all(self, ids: Sequence[int]) -> list[AssembledParcel]:
        # gather keeps input order regardless of completion order
        return list(await asyncio.gather(*(self._assemble(i) for i in ids)))

    async def _assemble(self, land_id: int) -> AssembledParcel:
        record = await call_ledger(
            self._ledger.get_parcel(land_id),
            operation="get_parcel",
            land_id=land_id,
            timeout=self._config.timeout_seconds,
        )
        descriptive = await self._resolver.resolve(record.metadata_cid)
        if isinstance(descriptive, ResolutionFailure):
            logger.warning(
                "Parcel %s metadata unavailable (%s): %s",
                land_id, record.metadata_cid, descriptive.reason,
            )
        return self._build(record, descriptive)

    def _build(
        self,
        record: ParcelRecord,
        descriptive: ParcelMetadata | ResolutionFailure,
    ) -> AssembledParcel:
        return AssembledParcel(
            land_id=record.land_id,
            owner=record.owner,
            status=record.status,
            price_minor_unit=record.price_minor_unit,
            price_human=self._converter.to_human(record.price_minor_unit),
            price_display=self._converter.format_human(record.price_minor_unit),
            pending_buyer=record.pending_buyer,
            metadata_cid=record.metadata_cid,
            document_cid=record.document_cid,
            document_url=self._resolver.gateway_url(record.document_cid),
            descriptive=descriptive,
        )
