"""Sale lifecycle service: plans transitions and has the ledger commit them."""

from __future__ import annotations

import logging

from landregistry.clients.calls import call_ledger, submit_and_confirm
from landregistry.clients.protocols import LedgerClient
from landregistry.core.config import LedgerConfig
from landregistry.core.types import ParcelRecord
from landregistry.lifecycle.models import SaleEvent, SaleInfo, TransitionPlan, TransitionResult
from landregistry.lifecycle.state_machine import AssetStateMachine
from landregistry.pricing.converter import Amount

logger = logging.getLogger(__name__)


class ParcelLifecycleService:
    """Runs list / commit / cancel against the ledger.

    Local validation (price, transition) happens before anything is
    submitted; a transition counts as done only once the ledger confirms it.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        machine: AssetStateMachine | None = None,
        config: LedgerConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._machine = machine or AssetStateMachine()
        self._config = config or LedgerConfig()

    async def list_for_sale(
        self, land_id: int, caller: str, price: Amount
    ) -> TransitionResult:
        price_minor_unit = self._machine.converter.to_minor_unit(price)
        record = await self._read(land_id)
        plan = self._machine.transition(
            record, SaleEvent.LIST, caller, price_minor_unit=price_minor_unit
        )
        return await self._commit(plan)

    async def commit_purchase(
        self, land_id: int, buyer: str, funds_minor_unit: int
    ) -> TransitionResult:
        record = await self._read(land_id)
        plan = self._machine.buyer_commits(record, buyer, funds_minor_unit)
        return await self._commit(plan)

    async def cancel_listing(self, land_id: int, caller: str) -> TransitionResult:
        record = await self._read(land_id)
        plan = self._machine.cancel(record, caller)
        return await self._commit(plan)

    async def sale_info(self, land_id: int) -> SaleInfo:
        record = await self._read(land_id)
        return SaleInfo(
            land_id=record.land_id,
            status=record.status,
            price_minor_unit=record.price_minor_unit,
            price_human=self._machine.converter.to_human(record.price_minor_unit),
            pending_buyer=record.pending_buyer,
        )

    # -- internal ------------------------------------------------------------

    async def _read(self, land_id: int) -> ParcelRecord:
        return await call_ledger(
            self._ledger.get_parcel(land_id),
            operation="get_parcel",
            land_id=land_id,
            timeout=self._config.timeout_seconds,
        )

    async def _commit(self, plan: TransitionPlan) -> TransitionResult:
        receipt = await submit_and_confirm(
            self._ledger,
            plan.operation,
            timeout=self._config.confirmation_timeout_seconds,
        )
        logger.info(
            "Parcel %s moved %s -> %s", plan.land_id, plan.from_status, plan.to_status
        )
        return TransitionResult(plan=plan, receipt=receipt)
