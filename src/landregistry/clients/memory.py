"""In-memory ledger, content store and signer for development and testing.

These honour the capability protocols closely enough to exercise the full
sale and transfer flow without a network. Signatures are keyed hashes, not
real wallet cryptography.
"""

from __future__ import annotations

import asyncio
import hashlib
import uuid
from typing import Sequence

from landregistry.clients.protocols import EncryptionGrant, RegrantResult
from landregistry.core.errors import ContentStoreError, InvalidTransition
from landregistry.core.types import ParcelRecord, ParcelStatus
from landregistry.lifecycle.models import LedgerOperation, LedgerReceipt, OperationKind
from landregistry.lifecycle.state_machine import AssetStateMachine


def mock_signature(address: str, message: str) -> str:
    """Signature an InMemorySigner for ``address`` produces over ``message``."""
    return hashlib.sha256(f"{address.lower()}|{message}".encode("utf-8")).hexdigest()


class InMemorySigner:
    """Signer whose signatures the InMemoryContentStore can verify."""

    def __init__(self, address: str) -> None:
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    async def sign_message(self, message: str) -> str:
        return mock_signature(self._address, message)


class InMemoryLedger:
    """Ledger double that re-validates operations like the on-chain contract.

    Invalid operations are not applied; they produce an unconfirmed receipt
    with the revert reason, as a reverted transaction would.
    """

    def __init__(self, machine: AssetStateMachine | None = None) -> None:
        self._machine = machine or AssetStateMachine()
        self._parcels: dict[int, ParcelRecord] = {}
        self._next_id = 1
        self._block = 0
        self._lock = asyncio.Lock()
        self.operations: list[LedgerOperation] = []

    def seed(self, record: ParcelRecord) -> None:
        """Insert a record directly, bypassing registration."""
        problems = record.invariant_violations()
        if problems:
            raise ValueError(f"Cannot seed parcel {record.land_id}: {'; '.join(problems)}")
        self._parcels[record.land_id] = record.model_copy()
        self._next_id = max(self._next_id, record.land_id + 1)

    async def get_parcel(self, land_id: int) -> ParcelRecord:
        if land_id not in self._parcels:
            raise KeyError(f"Parcel {land_id} not found.")
        return self._parcels[land_id].model_copy()

    async def get_owned_parcel_ids(self, owner: str) -> Sequence[int]:
        owner = owner.lower()
        return [pid for pid, rec in sorted(self._parcels.items()) if rec.owner.lower() == owner]

    async def get_all_parcel_ids(self) -> Sequence[int]:
        return sorted(self._parcels)

    async def submit(self, operation: LedgerOperation) -> LedgerReceipt:
        async with self._lock:
            self.operations.append(operation)
            self._block += 1
            tx_hash = self._tx_hash(operation)

            if operation.kind == OperationKind.REGISTER:
                if not operation.metadata_cid or not operation.document_cid:
                    return self._revert(tx_hash, None, "register requires both CIDs")
                land_id = self._next_id
                self._next_id += 1
                self._parcels[land_id] = ParcelRecord(
                    land_id=land_id,
                    owner=operation.caller,
                    status=ParcelStatus.ACTIVE,
                    metadata_cid=operation.metadata_cid,
                    document_cid=operation.document_cid,
                )
                return self._confirm(tx_hash, land_id)

            current = self._parcels.get(operation.land_id)  # type: ignore[arg-type]
            if current is None:
                return self._revert(tx_hash, operation.land_id, "unknown parcel")
            try:
                plan = self._machine.plan_operation(current, operation)
            except InvalidTransition as exc:
                return self._revert(tx_hash, operation.land_id, exc.reason)

            self._parcels[current.land_id] = plan.next_record
            return self._confirm(tx_hash, current.land_id)

    def _confirm(self, tx_hash: str, land_id: int) -> LedgerReceipt:
        return LedgerReceipt(
            tx_hash=tx_hash, confirmed=True, land_id=land_id, block_number=self._block
        )

    def _revert(self, tx_hash: str, land_id: int | None, reason: str) -> LedgerReceipt:
        return LedgerReceipt(
            tx_hash=tx_hash, confirmed=False, land_id=land_id, reason=reason
        )

    def _tx_hash(self, operation: LedgerOperation) -> str:
        payload = f"{self._block}:{operation.model_dump_json()}".encode("utf-8")
        return "0x" + hashlib.sha256(payload).hexdigest()


class InMemoryContentStore:
    """Content-addressed store with per-document access control.

    Encrypted uploads are readable only with the document key, which is
    released to addresses holding access after a signed challenge.
    """

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._keys: dict[str, str] = {}
        self._holders: dict[str, set[str]] = {}
        self._challenges: dict[str, str] = {}

    async def upload(
        self, data: bytes, *, encryption: EncryptionGrant | None = None
    ) -> str:
        digest = hashlib.sha256(data)
        if encryption is not None:
            self._verify(encryption.address, encryption.signature)
            digest.update(encryption.address.lower().encode("utf-8"))
        cid = f"sha256-{digest.hexdigest()}"
        self._blobs[cid] = data
        if encryption is not None:
            self._keys.setdefault(cid, uuid.uuid4().hex)
            self._holders.setdefault(cid, set()).add(encryption.address.lower())
        return cid

    async def fetch(self, cid: str, *, key: str | None = None) -> bytes:
        if cid not in self._blobs:
            raise ContentStoreError(f"Content {cid} not found", {"cid": cid})
        if cid in self._keys and key != self._keys[cid]:
            raise ContentStoreError(f"Content {cid} is encrypted", {"cid": cid})
        return self._blobs[cid]

    async def issue_access_challenge(self, address: str) -> str:
        challenge = f"Please sign this message to prove you own {address}: {uuid.uuid4()}"
        self._challenges[address.lower()] = challenge
        return challenge

    async def fetch_encryption_key(self, cid: str, address: str, signature: str) -> str:
        self._verify(address, signature)
        if address.lower() not in self._holders.get(cid, set()):
            raise ContentStoreError(
                f"{address} has no access to {cid}", {"cid": cid, "address": address}
            )
        return self._keys[cid]

    async def regrant_access(
        self, cid: str, from_address: str, to_address: str, signature: str
    ) -> RegrantResult:
        try:
            self._verify(from_address, signature)
        except ContentStoreError as exc:
            return RegrantResult(success=False, error=exc.message)
        holders = self._holders.get(cid)
        if holders is None:
            return RegrantResult(success=False, error=f"{cid} is not access controlled")
        if from_address.lower() not in holders:
            # A repeated re-grant after success is a no-op.
            if to_address.lower() in holders:
                return RegrantResult(success=True)
            return RegrantResult(success=False, error=f"{from_address} has no access to {cid}")
        self._holders[cid] = {to_address.lower()}
        return RegrantResult(success=True)

    def holders(self, cid: str) -> set[str]:
        return set(self._holders.get(cid, set()))

    def _verify(self, address: str, signature: str) -> None:
        challenge = self._challenges.get(address.lower())
        if challenge is None:
            raise ContentStoreError(f"No challenge issued to {address}", {"address": address})
        if signature != mock_signature(address, challenge):
            raise ContentStoreError(f"Signature does not match {address}", {"address": address})
