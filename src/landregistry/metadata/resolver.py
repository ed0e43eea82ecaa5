"""Multi-gateway resolver for content-addressed parcel metadata."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

import httpx
from pydantic import ValidationError

from landregistry.core.config import GatewayConfig
from landregistry.core.types import ParcelMetadata
from landregistry.metadata.models import GatewayAttempt, ResolutionFailure

logger = logging.getLogger(__name__)


class MetadataResolver:
    """Fetches metadata JSON by CID, trying each gateway in priority order.

    A CID that fails on every gateway yields a ResolutionFailure instead of
    an exception, so one bad record never blocks the others.
    """

    def __init__(
        self,
        config: GatewayConfig | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or GatewayConfig()
        if not self._config.urls:
            raise ValueError("At least one gateway URL is required")
        self._gateways = [url.rstrip("/") for url in self._config.urls]
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout_seconds),
        )

    # -- public API ----------------------------------------------------------

    @property
    def gateways(self) -> list[str]:
        return list(self._gateways)

    def gateway_url(self, cid: str) -> str:
        """URL of a CID at the primary gateway."""
        return f"{self._gateways[0]}/{cid}"

    async def resolve(self, cid: str) -> ParcelMetadata | ResolutionFailure:
        if not cid or not cid.strip():
            return ResolutionFailure(cid=cid, reason="empty content identifier")

        attempts: list[GatewayAttempt] = []
        for gateway in self._gateways:
            url = f"{gateway}/{cid}"
            try:
                return await self._fetch(url)
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
                error = _describe(exc)
                logger.warning("Metadata fetch failed at %s: %s", url, error)
                attempts.append(GatewayAttempt(gateway=gateway, error=error))

        return ResolutionFailure(
            cid=cid,
            reason=f"all {len(attempts)} gateways failed",
            attempts=attempts,
        )

    async def resolve_many(
        self, cids: Sequence[str]
    ) -> list[ParcelMetadata | ResolutionFailure]:
        """Resolve all CIDs concurrently; results keep the input order."""
        return list(await asyncio.gather(*(self.resolve(cid) for cid in cids)))

    async def close(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> MetadataResolver:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- internal ------------------------------------------------------------

    async def _fetch(self, url: str) -> ParcelMetadata:
        resp = await self._http.get(
            url,
            headers={"Cache-Control": "no-store"},
            timeout=httpx.Timeout(self._config.timeout_seconds),
        )
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, dict):
            raise ValueError(f"expected a JSON object, got {type(body).__name__}")
        return ParcelMetadata.model_validate(body)


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "timed out"
    if isinstance(exc, httpx.InvalidURL):
        return f"invalid URL ({exc})"
    if isinstance(exc, ValidationError):
        return f"invalid metadata document ({exc.error_count()} errors)"
    return str(exc) or type(exc).__name__
