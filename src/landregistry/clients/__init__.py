"""Capability interfaces for the ledger and content store, with in-memory doubles."""

from landregistry.clients.memory import InMemoryContentStore, InMemoryLedger, InMemorySigner
from landregistry.clients.protocols import (
    ContentStoreClient,
    EncryptionGrant,
    LedgerClient,
    RegrantResult,
    Signer,
)

__all__ = [
    "ContentStoreClient",
    "EncryptionGrant",
    "InMemoryContentStore",
    "InMemoryLedger",
    "InMemorySigner",
    "LedgerClient",
    "RegrantResult",
    "Signer",
]
