"""Metadata resolution result models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GatewayAttempt(BaseModel):
    """Outcome of one gateway request that did not produce metadata."""

    gateway: str
    error: str


class ResolutionFailure(BaseModel):
    """Marker for a CID that no configured gateway could resolve.

    Returned in place of metadata, never raised.
    """

    cid: str
    reason: str
    attempts: list[GatewayAttempt] = Field(default_factory=list)
