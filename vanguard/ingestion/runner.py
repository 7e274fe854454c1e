"""Runs listing sources and decodes their rows."""

from __future__ import annotations

from typing import List, NamedTuple, Optional

import httpx

from vanguard.core.cancellation import CancellationToken
from vanguard.core.config import settings
from vanguard.core.errors import FetchFailure, RecordDecodeError
from vanguard.core.logging import get_logger
from vanguard.schemas.raw import RawAssetRecord, RawCoinRecord, decode_assets, decode_coins
from .api_source import AssetSource, CoinSource, InvestmentsSource
from .base import BaseSource

log = get_logger("ingestion.runner")


class LoadResult(NamedTuple):
    assets: List[RawAssetRecord]
    coins: List[RawCoinRecord]


def default_sources(use_combined: Optional[bool] = None) -> List[BaseSource]:
    combined = settings.USE_COMBINED_ENDPOINT if use_combined is None else use_combined
    if combined:
        return [InvestmentsSource()]
    return [AssetSource(), CoinSource()]


class ListingLoader:
    """Fetches every source for one load and returns decoded records.

    Returns None when the token was cancelled while the load was in flight,
    so a superseded load never overwrites newer state.
    """

    def __init__(self, client: httpx.AsyncClient, sources: Optional[List[BaseSource]] = None, limit: Optional[int] = None):
        self.client = client
        self.sources = sources if sources is not None else default_sources()
        self.limit = limit if limit is not None else settings.FETCH_LIMIT

    async def load(self, token: Optional[CancellationToken] = None) -> Optional[LoadResult]:
        asset_rows: list = []
        coin_rows: list = []

        for source in self.sources:
            assets, coins = await source.fetch(self.client, self.limit)
            if token is not None and token.cancelled:
                log.info(f"Discarding stale load ({token!r}) after source={source.name}")
                return None
            asset_rows.extend(assets)
            coin_rows.extend(coins)

        try:
            result = LoadResult(decode_assets(asset_rows), decode_coins(coin_rows))
        except RecordDecodeError as exc:
            log.error(f"Listing payload rejected: {exc}")
            raise FetchFailure(f"Malformed listing payload: {exc}") from exc

        log.info(f"Loaded assets={len(result.assets)} coins={len(result.coins)}")
        return result
