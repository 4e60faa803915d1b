from __future__ import annotations

import logging
from typing import Any, Callable
from urllib.parse import quote

import httpx

from gateway.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

# Provider statuses that describe the caller's request rather than a
# provider fault; these are passed through to our client as-is.
_PASSTHROUGH_STATUSES = {400, 404, 409, 422}


class AccuTradeClient:
    """Async client for the Accu-Trade vehicle valuation API.

    Auth: ``apiKey`` query parameter, read through ``api_key_source`` on every
    call so a missing credential is caught per request.
    Endpoints: vehicleByVIN/{vin}, vehicle/{gid}, vehicle/manual,
    makes/byYear/{year}, models/{year}/{make}, styles/{year}/{make}/{model}.
    """

    def __init__(
        self,
        api_key_source: Callable[[], str],
        base_url: str = "https://api.accu-trade.com",
        timeout: float | None = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key_source = api_key_source
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _api_key(self) -> str:
        api_key = self.api_key_source()
        if not api_key:
            logger.error("ACCU_TRADE_API_KEY is not configured")
            raise ConfigurationError("Valuation provider is not configured")
        return api_key

    async def _request(self, method: str, path: str, json_body: dict[str, Any] | None = None) -> Any:
        api_key = self._api_key()
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(
                    method, url,
                    params={"apiKey": api_key},
                    json=json_body,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Provider request %s %s failed: %s", method, path, type(exc).__name__)
            raise UpstreamError("Valuation provider is unreachable") from exc

        if resp.is_error:
            logger.warning(
                "Provider request %s %s returned %s: %s",
                method, path, resp.status_code, resp.text[:200],
            )
            status = resp.status_code if resp.status_code in _PASSTHROUGH_STATUSES else None
            raise UpstreamError(
                f"Vehicle lookup failed: {resp.status_code}",
                status_code=status,
                upstream_status=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            logger.warning("Provider request %s %s returned a non-JSON body", method, path)
            raise UpstreamError("Valuation provider returned an unreadable response") from exc

    async def vehicle_by_vin(self, vin: str) -> Any:
        return await self._request("GET", f"vehicleByVIN/{_segment(vin)}")

    async def vehicle(self, gid: str) -> Any:
        return await self._request("GET", f"vehicle/{_segment(gid)}")

    async def vehicle_manual(self, year: str, make: str, model: str) -> Any:
        return await self._request("GET", f"vehicle/manual/{_segment(year)}/{_segment(make)}/{_segment(model)}")

    async def vehicle_manual_with_trim(self, year: str, make: str, model: str, trim: str) -> Any:
        return await self._request(
            "POST", "vehicle/manual",
            json_body={"year": year, "make": make, "model": model, "trim": trim},
        )

    async def makes_by_year(self, year: str) -> Any:
        return await self._request("GET", f"makes/byYear/{_segment(year)}")

    async def models(self, year: str, make: str) -> Any:
        return await self._request("GET", f"models/{_segment(year)}/{_segment(make)}")

    async def styles(self, year: str, make: str, model: str) -> Any:
        return await self._request("GET", f"styles/{_segment(year)}/{_segment(make)}/{_segment(model)}")


def _segment(value: str) -> str:
    return quote(value, safe="")
