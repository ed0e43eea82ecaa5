"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from landregistry.clients.memory import InMemoryContentStore, InMemoryLedger, InMemorySigner
from landregistry.clients.protocols import EncryptionGrant
from landregistry.core.config import GatewayConfig, PricingConfig
from landregistry.core.types import ParcelRecord, ParcelStatus
from landregistry.lifecycle.state_machine import AssetStateMachine
from landregistry.pricing.converter import PriceConverter


OWNER = "0xA11CE00000000000000000000000000000000001"
BUYER = "0xB0B0000000000000000000000000000000000002"
OTHER_BUYER = "0xCA4010000000000000000000000000000000003"

GATEWAYS = ["https://gw1.test/ipfs", "https://gw2.test/ipfs"]

# 5000 RM at 4000 RM per native unit = 1.25 native units
PRICE_5000_MINOR = 1_250_000_000_000_000_000


def make_record(
    status: ParcelStatus = ParcelStatus.ACTIVE,
    *,
    land_id: int = 7,
    owner: str = OWNER,
    price_minor_unit: int | None = None,
    pending_buyer: str | None = None,
    metadata_cid: str = "meta-cid-7",
    document_cid: str = "doc-cid-7",
) -> ParcelRecord:
    """Build a record that satisfies the ledger invariants for ``status``."""
    if price_minor_unit is None:
        listed = status in (ParcelStatus.FOR_SALE, ParcelStatus.PENDING_APPROVAL)
        price_minor_unit = PRICE_5000_MINOR if listed else 0
    if pending_buyer is None and status == ParcelStatus.PENDING_APPROVAL:
        pending_buyer = BUYER
    return ParcelRecord(
        land_id=land_id,
        owner=owner,
        status=status,
        price_minor_unit=price_minor_unit,
        metadata_cid=metadata_cid,
        document_cid=document_cid,
        pending_buyer=pending_buyer,
    )


async def upload_deed(
    store: InMemoryContentStore, owner: str = OWNER, data: bytes = b"%PDF-title-deed"
) -> str:
    """Upload a title document encrypted for ``owner`` and return its CID."""
    signer = InMemorySigner(owner)
    challenge = await store.issue_access_challenge(owner)
    signature = await signer.sign_message(challenge)
    return await store.upload(
        data, encryption=EncryptionGrant(address=owner, signature=signature)
    )


@pytest.fixture()
def converter() -> PriceConverter:
    return PriceConverter(PricingConfig(human_per_native=4000, native_decimals=18))


@pytest.fixture()
def machine(converter: PriceConverter) -> AssetStateMachine:
    return AssetStateMachine(converter)


@pytest.fixture()
def ledger(machine: AssetStateMachine) -> InMemoryLedger:
    ledger = InMemoryLedger(machine)
    ledger.seed(make_record(ParcelStatus.ACTIVE))
    return ledger


@pytest.fixture()
def content_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture()
def gateway_config() -> GatewayConfig:
    return GatewayConfig(urls=GATEWAYS, timeout_seconds=2.0)
