from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from vanguard.schemas.raw import Risk
from vanguard.schemas.unified import AssetPayload, CoinPayload, Kind

# Admin form categories -> API categories; "Featured" keeps the base category and sets is_featured
ASSET_CATEGORY_MAP = {"Stocks": "Equity", "ETF": "ETF", "Project": "Project", "Featured": "Equity"}
COIN_CATEGORY_MAP = {"Top": "Cryptos", "Stablecoins": "Stablecoins", "Altcoins": "Altcoins", "Featured": "Cryptos"}


class ListingOut(BaseModel):
    """Unified listing as exposed over HTTP (raw row omitted)."""

    id: str
    kind: Kind
    source_id: int
    name: str
    slug: str
    category: str
    overview: str
    risk: Optional[Risk] = None
    is_active: bool
    is_featured: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None
    asset: Optional[AssetPayload] = None
    coin: Optional[CoinPayload] = None
    can_manage: bool = False


class ListingPageResponse(BaseModel):
    request_id: str
    api_latency_ms: int
    page: int
    per_page: int
    total_pages: int
    total_count: int
    categories: list[str]
    error: Optional[str] = None
    data: list[ListingOut]


class CategoriesResponse(BaseModel):
    categories: list[str]


class RefreshResponse(BaseModel):
    success: bool
    items: int
    error: Optional[str] = None


class MutationResponse(BaseModel):
    success: bool
    item_id: str
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    backend_url: str
    items: int
    last_fetch_error: Optional[str] = None
    loaded_at: Optional[datetime] = None


class AssetCreate(BaseModel):
    """Admin form for a new asset ("tesla") listing."""

    model_config = ConfigDict(str_strip_whitespace=True)

    investment_name: str = Field(min_length=1)
    category: Literal["Stocks", "ETF", "Project", "Featured"] = "Stocks"
    min_investment: float = Field(ge=0)
    expected_return: float = Field(ge=0)
    duration: str = "12 - 24 months"
    overview: str = ""
    risk: Risk = "Medium"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "investment_name": self.investment_name.strip(),
            "category": ASSET_CATEGORY_MAP[self.category],
            "min_investment": self.min_investment,
            "expected_return": self.expected_return,
            "duration": self.duration.strip(),
            "overview": self.overview.strip(),
            "risk": self.risk,
            "is_featured": self.category == "Featured",
        }


class CoinCreate(BaseModel):
    """Admin form for a new coin listing."""

    model_config = ConfigDict(str_strip_whitespace=True)

    coin_name: str = Field(min_length=1)
    category: Literal["Top", "Stablecoins", "Altcoins", "Featured"] = "Top"
    price: float = Field(ge=0)
    hours: int = Field(ge=0)
    market_cap: float = Field(ge=0)
    overview: str = ""
    circulating_supply: Optional[float] = None
    max_supply: Optional[float] = None
    blockchain: Optional[str] = None
    risk: Risk = "Medium"

    def to_payload(self) -> Dict[str, Any]:
        return {
            "coin_name": self.coin_name.strip(),
            "category": COIN_CATEGORY_MAP[self.category],
            "price": self.price,
            "hours": self.hours,
            "market_cap": self.market_cap,
            "overview": self.overview.strip(),
            "circulating_supply": self.circulating_supply,
            "max_supply": self.max_supply,
            "blockchain": (self.blockchain or "").strip() or None,
            "risk": self.risk,
            "is_featured": self.category == "Featured",
        }
