"""Content-addressed metadata resolution across multiple gateways."""

from landregistry.metadata.models import GatewayAttempt, ResolutionFailure
from landregistry.metadata.resolver import MetadataResolver

__all__ = ["GatewayAttempt", "MetadataResolver", "ResolutionFailure"]
