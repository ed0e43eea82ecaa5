"""Transfer saga state."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, Field


class TransferPhase(StrEnum):
    """Step a two-phase ownership transfer has reached."""

    PENDING = "pending"
    ON_CHAIN_CONFIRMED = "on_chain_confirmed"
    COMPLETED = "completed"
    ABORTED = "aborted"
    ACCESS_REGRANT_FAILED = "access_regrant_failed"


class TransferSaga(BaseModel):
    """Inspectable record of one ownership transfer.

    ``access_regrant_failed`` is the inconsistent state: the buyer owns the
    parcel on the ledger but cannot yet decrypt its document.
    """

    saga_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    land_id: int
    seller: str
    buyer: str
    document_cid: str
    phase: TransferPhase = TransferPhase.PENDING
    tx_hash: str | None = None
    error: str | None = None
    regrant_attempts: int = 0
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def needs_reconciliation(self) -> bool:
        return self.phase == TransferPhase.ACCESS_REGRANT_FAILED

    def advance(self, phase: TransferPhase, error: str | None = None) -> None:
        self.phase = phase
        self.error = error
        self.updated_at = datetime.now(timezone.utc)
