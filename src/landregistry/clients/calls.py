"""Bounded calls to the ledger.

Every ledger call goes through these helpers so that it carries a timeout
and any failure reaches the caller as LedgerCallFailure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from landregistry.clients.protocols import LedgerClient
from landregistry.core.errors import LedgerCallFailure
from landregistry.lifecycle.models import LedgerOperation, LedgerReceipt

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_ledger(
    call: Awaitable[T],
    *,
    operation: str,
    land_id: int | None,
    timeout: float,
) -> T:
    """Await a ledger call, converting timeouts and errors to LedgerCallFailure."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except LedgerCallFailure:
        raise
    except asyncio.TimeoutError as exc:
        raise LedgerCallFailure(operation, land_id, f"timed out after {timeout}s") from exc
    except Exception as exc:
        raise LedgerCallFailure(operation, land_id, str(exc) or type(exc).__name__) from exc


async def submit_and_confirm(
    ledger: LedgerClient,
    operation: LedgerOperation,
    *,
    timeout: float,
) -> LedgerReceipt:
    """Submit an operation and wait until the ledger confirms it.

    Raises:
        LedgerCallFailure: If the submission fails, times out or is not
            confirmed (e.g. reverted).
    """
    receipt = await call_ledger(
        ledger.submit(operation),
        operation=operation.kind,
        land_id=operation.land_id,
        timeout=timeout,
    )
    if not receipt.confirmed:
        raise LedgerCallFailure(
            operation.kind, operation.land_id, receipt.reason or "not confirmed"
        )
    logger.info(
        "Ledger confirmed %s on parcel %s (tx %s)",
        operation.kind, receipt.land_id, receipt.tx_hash,
    )
    return receipt
