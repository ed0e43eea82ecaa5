"""Two-phase ownership transfer across the ledger and the content store.

Phase 1 moves ownership on the ledger and waits for confirmation. Phase 2
moves access to the encrypted title document from seller to buyer using a
challenge signed by the seller. The two systems share no transaction, so
the transfer is tracked as a saga:

- phase 1 fails   -> saga ``aborted``, LedgerCallFailure, content store untouched
- phase 2 fails   -> saga ``access_regrant_failed``, AccessRegrantFailure
- both succeed    -> saga ``completed``

When phase 1 fails without a confirmed rejection (a timeout, say), the
parcel is re-read: if the buyer already owns it, phase 2 runs as usual.

A saga left in ``access_regrant_failed`` is reconciled explicitly with
``reconcile``; nothing retries in the background.
"""

from __future__ import annotations

import asyncio
import logging

from landregistry.clients.calls import call_ledger, submit_and_confirm
from landregistry.clients.protocols import ContentStoreClient, LedgerClient, Signer
from landregistry.core.config import ContentStoreConfig, LedgerConfig
from landregistry.core.errors import (
    AccessRegrantFailure,
    LedgerCallFailure,
    TransferInProgress,
)
from landregistry.lifecycle.state_machine import AssetStateMachine
from landregistry.transfer.models import TransferPhase, TransferSaga

logger = logging.getLogger(__name__)


class SecureTransferCoordinator:
    """Runs ownership transfers and keeps their sagas inspectable.

    At most one transfer or reconciliation per parcel runs at a time within
    this process. Across processes the ledger's own atomicity prevents a
    double transfer.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        content_store: ContentStoreClient,
        machine: AssetStateMachine | None = None,
        ledger_config: LedgerConfig | None = None,
        content_config: ContentStoreConfig | None = None,
    ) -> None:
        self._ledger = ledger
        self._content = content_store
        self._machine = machine or AssetStateMachine()
        self._ledger_config = ledger_config or LedgerConfig()
        self._content_config = content_config or ContentStoreConfig()
        self._in_flight: set[int] = set()
        self._sagas: dict[int, TransferSaga] = {}

    # -- public API ----------------------------------------------------------

    async def transfer_ownership(
        self, land_id: int, buyer: str, signer: Signer
    ) -> TransferSaga:
        """Transfer ``land_id`` to ``buyer``, approved by the owner's ``signer``.

        Raises:
            TransferInProgress: If a transfer for ``land_id`` is running or
                an earlier one still awaits reconciliation.
            InvalidTransition: If the parcel is not awaiting approval of
                ``buyer`` by the signer. Nothing is submitted.
            LedgerCallFailure: If the on-chain phase fails and the parcel is
                still owned by the seller. No off-chain call is made and the
                seller keeps document access.
            AccessRegrantFailure: If ownership moved but document access
                did not. The saga stays available for ``reconcile``.
        """
        with self._guard(land_id):
            previous = self._sagas.get(land_id)
            if previous is not None and previous.needs_reconciliation:
                # The earlier transfer is unfinished until its access moves.
                raise TransferInProgress(land_id)
            record = await call_ledger(
                self._ledger.get_parcel(land_id),
                operation="get_parcel",
                land_id=land_id,
                timeout=self._ledger_config.timeout_seconds,
            )
            plan = self._machine.owner_approves(record, signer.address, buyer)

            saga = TransferSaga(
                land_id=land_id,
                seller=record.owner,
                buyer=plan.next_record.owner,
                document_cid=record.document_cid,
            )
            self._sagas[land_id] = saga
            logger.info(
                "Transfer %s of parcel %s to %s started", saga.saga_id, land_id, saga.buyer
            )

            try:
                receipt = await submit_and_confirm(
                    self._ledger,
                    plan.operation,
                    timeout=self._ledger_config.confirmation_timeout_seconds,
                )
                saga.tx_hash = receipt.tx_hash
            except LedgerCallFailure as exc:
                # A failed confirmation does not prove the ledger rejected it.
                if not await self._owned_by_buyer(saga):
                    saga.advance(TransferPhase.ABORTED, exc.reason)
                    logger.warning(
                        "Transfer %s aborted on-chain: %s", saga.saga_id, exc.reason
                    )
                    raise
                logger.warning(
                    "Transfer %s not confirmed (%s) but parcel %s is owned by %s",
                    saga.saga_id, exc.reason, land_id, saga.buyer,
                )

            saga.advance(TransferPhase.ON_CHAIN_CONFIRMED)
            await self._regrant(saga, signer)
            return saga

    async def reconcile(self, land_id: int, signer: Signer) -> TransferSaga:
        """Retry the off-chain phase of a transfer left inconsistent.

        ``signer`` must be the seller, who still holds document access.
        Re-granting is idempotent, so a repeated call after success is safe.

        Raises:
            KeyError: If no transfer awaits reconciliation for ``land_id``.
            AccessRegrantFailure: If the re-grant fails again.
        """
        saga = self._sagas.get(land_id)
        if saga is None or not saga.needs_reconciliation:
            raise KeyError(f"No transfer awaiting reconciliation for parcel {land_id}.")
        with self._guard(land_id):
            logger.info("Reconciling transfer %s of parcel %s", saga.saga_id, land_id)
            await self._regrant(saga, signer)
            return saga

    def get_saga(self, land_id: int) -> TransferSaga | None:
        """Latest saga for a parcel."""
        return self._sagas.get(land_id)

    @property
    def pending_reconciliations(self) -> list[TransferSaga]:
        """Sagas whose buyer owns the parcel but lacks document access."""
        return [s for s in self._sagas.values() if s.needs_reconciliation]

    def is_in_flight(self, land_id: int) -> bool:
        return land_id in self._in_flight

    # -- internal ------------------------------------------------------------

    def _guard(self, land_id: int) -> _InFlightGuard:
        return _InFlightGuard(self._in_flight, land_id)

    async def _owned_by_buyer(self, saga: TransferSaga) -> bool:
        """Re-read the parcel after an unconfirmed ownership transfer."""
        try:
            record = await call_ledger(
                self._ledger.get_parcel(saga.land_id),
                operation="get_parcel",
                land_id=saga.land_id,
                timeout=self._ledger_config.timeout_seconds,
            )
        except LedgerCallFailure as exc:
            logger.warning(
                "Could not re-read parcel %s after transfer %s: %s",
                saga.land_id, saga.saga_id, exc.reason,
            )
            return False
        return record.owner.lower() == saga.buyer.lower()

    async def _regrant(self, saga: TransferSaga, signer: Signer) -> None:
        saga.regrant_attempts += 1
        timeout = self._content_config.timeout_seconds
        try:
            challenge = await asyncio.wait_for(
                self._content.issue_access_challenge(saga.seller), timeout=timeout
            )
            signature = await asyncio.wait_for(signer.sign_message(challenge), timeout=timeout)
            result = await asyncio.wait_for(
                self._content.regrant_access(
                    saga.document_cid, saga.seller, saga.buyer, signature
                ),
                timeout=timeout,
            )
            reason = None if result.success else (result.error or "re-grant rejected")
        except asyncio.TimeoutError:
            reason = f"timed out after {timeout}s"
        except Exception as exc:
            reason = str(exc) or type(exc).__name__

        if reason is not None:
            saga.advance(TransferPhase.ACCESS_REGRANT_FAILED, reason)
            logger.error(
                "Parcel %s owned by %s on-chain but access to %s not re-granted: %s",
                saga.land_id, saga.buyer, saga.document_cid, reason,
            )
            raise AccessRegrantFailure(
                land_id=saga.land_id,
                buyer=saga.buyer,
                seller=saga.seller,
                document_cid=saga.document_cid,
                saga_id=saga.saga_id,
                reason=reason,
            )

        saga.advance(TransferPhase.COMPLETED)
        logger.info("Transfer %s of parcel %s completed", saga.saga_id, saga.land_id)


class _InFlightGuard:
    """Marks a parcel as in flight for the duration of a ``with`` block."""

    def __init__(self, in_flight: set[int], land_id: int) -> None:
        self._in_flight = in_flight
        self._land_id = land_id

    def __enter__(self) -> None:
        if self._land_id in self._in_flight:
            raise TransferInProgress(self._land_id)
        self._in_flight.add(self._land_id)

    def __exit__(self, *exc_info: object) -> None:
        self._in_flight.discard(self._land_id)
