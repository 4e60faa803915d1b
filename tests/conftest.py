from __future__ import annotations

from typing import Any

import httpx
import pytest

from gateway.provider import AccuTradeClient
from gateway.settings import provider_api_key
from gateway.valuation import ValuationGateway


VIN = "1HGCM82633A004352"

VIN_PAYLOAD = [
    {"gid": "G100", "year": 2003, "make": "Honda", "model": "Accord", "style": "EX 4D Sedan"},
    {"gid": "G101", "year": 2003, "make": "Honda", "model": "Accord", "style": "LX 4D Sedan"},
]

VEHICLE_PAYLOAD = {
    "gid": "G100",
    "trade": 5400,
    "market": 6900,
    "vehicleBasePrice": 5200,
    "avgMileage": 120000,
}


class FakeProvider:
    """Stands in for the valuation provider behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Any, str | None]] = {}
        self.calls: list[tuple[str, str, dict[str, str]]] = []

    def add(self, method: str, path: str, payload: Any = None, status: int = 200, text: str | None = None) -> None:
        self.routes[(method, path)] = (status, payload, text)

    def paths(self) -> list[str]:
        return [path for _, path, _ in self.calls]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path, dict(request.url.params)))
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "unknown route"})
        status, payload, text = route
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def provider() -> FakeProvider:
    fake = FakeProvider()
    fake.add("GET", f"/vehicleByVIN/{VIN}", VIN_PAYLOAD)
    fake.add("GET", "/vehicle/G100", VEHICLE_PAYLOAD)
    return fake


@pytest.fixture
def api_key(monkeypatch) -> str:
    monkeypatch.setenv("ACCU_TRADE_API_KEY", "test-key")
    return "test-key"


@pytest.fixture
def gateway(provider, api_key) -> ValuationGateway:
    client = AccuTradeClient(
        api_key_source=provider_api_key,
        base_url="https://provider.test",
        transport=provider.transport,
    )
    return ValuationGateway(client=client)
