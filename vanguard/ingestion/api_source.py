"""Listing sources backed by the external REST API."""

from __future__ import annotations

from typing import Tuple

import httpx

from vanguard.core.logging import get_logger
from vanguard.schemas.raw import split_listing_payload
from .base import BaseSource, Rows

log = get_logger("ingestion.api")


class InvestmentsSource(BaseSource):
    """GET /api/investments: both kinds in one response."""

    name = "investments"
    path = "/api/investments"

    async def fetch(self, client: httpx.AsyncClient, limit: int, offset: int = 0) -> Tuple[Rows, Rows]:
        body = await self._get_json(client, {"limit": limit, "offset": offset})
        assets, coins = split_listing_payload(body)
        log.info(f"Fetched {len(assets)} asset and {len(coins)} coin rows from {self.path}")
        return assets, coins


class AssetSource(BaseSource):
    """GET /api/tesla: asset rows only."""

    name = "tesla"
    path = "/api/tesla"

    async def fetch(self, client: httpx.AsyncClient, limit: int, offset: int = 0) -> Tuple[Rows, Rows]:
        body = await self._get_json(client, {"limit": limit, "offset": offset})
        assets, _ = split_listing_payload(body)
        log.info(f"Fetched {len(assets)} asset rows from {self.path}")
        return assets, []


class CoinSource(BaseSource):
    """GET /api/coins: coin rows only."""

    name = "coins"
    path = "/api/coins"

    async def fetch(self, client: httpx.AsyncClient, limit: int, offset: int = 0) -> Tuple[Rows, Rows]:
        body = await self._get_json(client, {"limit": limit, "offset": offset})
        assets, coins = split_listing_payload(body)
        # A bare list from this endpoint holds coins even without coin_id keys
        rows = coins or assets
        log.info(f"Fetched {len(rows)} coin rows from {self.path}")
        return [], rows
