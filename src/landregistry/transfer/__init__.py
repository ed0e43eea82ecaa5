"""Two-phase ownership transfer with explicit saga tracking."""

from landregistry.transfer.coordinator import SecureTransferCoordinator
from landregistry.transfer.models import TransferPhase, TransferSaga

__all__ = ["SecureTransferCoordinator", "TransferPhase", "TransferSaga"]
