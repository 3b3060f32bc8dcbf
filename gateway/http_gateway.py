"""
Oracle Gateway — client for the oracle collection service.

Responsibility:
- Map an oracle kind + parameters to the collection request contract
- POST /api/v1/oracle/collect and deserialize the response envelope
- Raise OracleTransportError for network/timeout/garbage responses

Prohibitions:
- No retries or backoff (the service bounds its own latency)
- No formatting, no transcript access
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError

from shared.errors import OracleTransportError
from shared.models import OracleCollectRequest, OracleKind, OracleResponse
from shared.oracle_catalog import FIXED_PARAMETERS, sources_for

logger = logging.getLogger(__name__)

COLLECT_PATH = "/api/v1/oracle/collect"


def build_collect_request(kind: OracleKind | str, parameters: dict[str, Any] | None = None) -> OracleCollectRequest:
    """Collection request with the fixed source list for this kind."""
    kind = OracleKind(kind)
    params = dict(parameters or {})
    params.update(FIXED_PARAMETERS.get(kind, {}))
    return OracleCollectRequest(sources=sources_for(kind), data_type=kind, parameters=params)


class OracleGateway(ABC):
    """Async access to the oracle collection service."""

    @abstractmethod
    async def collect(self, request: OracleCollectRequest) -> OracleResponse:
        """
        Issue one collection request.
        Returns the service envelope (success or application failure);
        raises OracleTransportError when no usable envelope came back.
        """

    async def request(self, kind: OracleKind | str, parameters: dict[str, Any] | None = None) -> OracleResponse:
        return await self.collect(build_collect_request(kind, parameters))

    # Convenience methods

    async def get_price(self, symbol: str = "ETH/USD") -> OracleResponse:
        return await self.request(OracleKind.PRICE_FEED, {"symbol": symbol})

    async def get_weather(self, city: str) -> OracleResponse:
        return await self.request(OracleKind.WEATHER, {"city": city})

    async def get_space_data(self, date: str) -> OracleResponse:
        return await self.request(OracleKind.SPACE, {"date": date})

    async def collect_multi_source(
        self,
        sources: list[str],
        kind: OracleKind | str,
        parameters: dict[str, Any] | None = None,
    ) -> OracleResponse:
        request = OracleCollectRequest(sources=sources, data_type=OracleKind(kind), parameters=dict(parameters or {}))
        return await self.collect(request)


class HttpOracleGateway(OracleGateway):
    """Gateway over HTTP using httpx."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        base_url = base_url or os.getenv("ORACLE_API_URL", "http://localhost:3000")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else float(os.getenv("ORACLE_API_TIMEOUT_SECONDS", "30"))
        self.headers = {"Content-Type": "application/json"}
        self._client = client

    async def collect(self, request: OracleCollectRequest) -> OracleResponse:
        url = f"{self.base_url}{COLLECT_PATH}"
        payload = request.to_wire()
        logger.info("Collecting oracle data: %s dataType=%s sources=%s", url, payload["dataType"], payload["sources"])

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=self.headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=payload, headers=self.headers)
        except httpx.TimeoutException as e:
            logger.error("Oracle service timed out after %.1fs: %s", self.timeout, url)
            raise OracleTransportError(f"Timeout calling oracle service: {e}", url=url) from e
        except httpx.RequestError as e:
            logger.error("Network error calling oracle service '%s': %r", url, e)
            raise OracleTransportError(f"Network error connecting to oracle service: {e}", url=url) from e

        return self._parse_envelope(response, url)

    @staticmethod
    def _parse_envelope(response: httpx.Response, url: str) -> OracleResponse:
        try:
            body = response.json()
            envelope = OracleResponse.model_validate(body)
        except (ValueError, ValidationError) as e:
            logger.error("Oracle service returned unusable body (status %s): %s", response.status_code, response.text[:200])
            raise OracleTransportError(
                f"Oracle service returned status {response.status_code} with an unreadable body",
                url=url,
                status_code=response.status_code,
            ) from e

        if response.status_code >= 400:
            logger.warning("Oracle service error %s: %s", response.status_code, envelope.error)
            if envelope.success:
                # A 4xx/5xx never counts as a successful collection
                return envelope.model_copy(update={"success": False})
        return envelope
