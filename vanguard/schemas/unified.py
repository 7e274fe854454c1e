"""Unified listing model shared by the view layer and the HTTP surface"""

from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, model_validator

from vanguard.schemas.raw import RawAssetRecord, RawCoinRecord, Risk

Kind = Literal["asset", "coin"]


class AssetPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_investment: float = 0.0
    expected_return: float = 0.0
    duration: Optional[str] = None


class CoinMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    circulating_supply: Optional[float] = None
    max_supply: Optional[float] = None
    blockchain: Optional[str] = None


class CoinPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: float = 0.0
    market_cap: float = 0.0
    hours: int = 0
    metrics: CoinMetrics = CoinMetrics()


class UnifiedItem(BaseModel):
    """Common projection of an asset or coin listing.

    ``id`` is ``"<kind>:<source_id>"`` so it stays unique across both
    collections. Exactly one of ``asset``/``coin`` is set, matching ``kind``.
    Items are immutable; edits produce copies.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: Kind
    source_id: int
    name: str
    slug: str = ""
    category: str = ""
    overview: str = ""
    risk: Optional[Risk] = None
    is_active: bool = True
    is_featured: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None
    asset: Optional[AssetPayload] = None
    coin: Optional[CoinPayload] = None
    raw: Union[RawAssetRecord, RawCoinRecord, None] = None

    @model_validator(mode="after")
    def _payload_matches_kind(self) -> "UnifiedItem":
        if self.kind == "asset" and (self.asset is None or self.coin is not None):
            raise ValueError("asset items carry an asset payload and no coin payload")
        if self.kind == "coin" and (self.coin is None or self.asset is not None):
            raise ValueError("coin items carry a coin payload and no asset payload")
        if self.id != make_item_id(self.kind, self.source_id):
            raise ValueError(f"id {self.id!r} does not match {self.kind}:{self.source_id}")
        return self

    @property
    def headline_amount(self) -> float:
        """Minimum investment for assets, price for coins."""
        if self.asset is not None:
            return self.asset.min_investment
        return self.coin.price if self.coin is not None else 0.0

    @property
    def endpoint(self) -> str:
        """External API collection this item belongs to."""
        return "tesla" if self.kind == "asset" else "coins"


def make_item_id(kind: str, source_id: int) -> str:
    return f"{kind}:{source_id}"

