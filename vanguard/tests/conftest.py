"""Shared fixtures: raw row builders and a fake external API."""

import json
from typing import Any, Callable, Dict, List

import httpx
import pytest

from vanguard.schemas.raw import decode_assets, decode_coins
from vanguard.services.backend_client import BackendClient
from vanguard.services.unifier import normalize

BASE_URL = "http://backend.test"


def asset_row(tesla_id: int, created_at: str = None, **overrides: Any) -> Dict[str, Any]:
    row = {
        "tesla_id": tesla_id,
        "investment_name": f"Asset {tesla_id}",
        "slug": f"asset-{tesla_id}",
        "category": "Equity",
        "min_investment": "1000.00",
        "expected_return": "12.5",
        "duration": "12 - 24 months",
        "overview": "Growth equity",
        "risk": "Medium",
        "is_active": 1,
        "is_featured": 0,
        "created_at": created_at,
    }
    row.update(overrides)
    return row


def coin_row(coin_id: int, created_at: str = None, **overrides: Any) -> Dict[str, Any]:
    row = {
        "coin_id": coin_id,
        "coin_name": f"Coin {coin_id}",
        "slug": f"coin-{coin_id}",
        "category": "Cryptos",
        "price": "1234.50",
        "market_cap": "1000000",
        "hours": 24,
        "overview": "Layer one token",
        "circulating_supply": 19000000,
        "max_supply": 21000000,
        "blockchain": "Bitcoin",
        "risk": "High",
        "is_active": 1,
        "is_featured": 1,
        "created_at": created_at,
    }
    row.update(overrides)
    return row


def make_items(asset_rows: List[dict], coin_rows: List[dict]):
    return normalize(decode_assets(asset_rows), decode_coins(coin_rows))


class FakeBackend:
    """Routes requests to per-(method, path) handlers and records every call."""

    def __init__(self):
        self.handlers: Dict[tuple, Callable[[httpx.Request], httpx.Response]] = {}
        self.calls: List[httpx.Request] = []

    def on(self, method: str, path: str, status: int = 200, body: Any = None) -> None:
        self.handlers[(method, path)] = lambda request: httpx.Response(status, json=body)

    def on_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.handlers[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.handlers.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": f"No route {request.method} {request.url.path}"})
        return handler(request)

    def json_body(self, index: int = -1) -> Any:
        return json.loads(self.calls[index].content)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake_backend), base_url=BASE_URL)
    return BackendClient(http=http)
