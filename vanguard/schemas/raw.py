"""Raw listing schemas decoded at the external API boundary.

The API sends numbers as strings, flags as 0/1 and leaves fields out or null.
Decoding coerces all of that to typed values and only fails when a row has
no usable id.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from vanguard.core.errors import RecordDecodeError

Risk = Literal["Low", "Medium", "High"]
RISK_LEVELS = ("Low", "Medium", "High")

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce to a finite float, falling back to default."""
    if value is None or isinstance(value, bool):
        return float(value) if isinstance(value, bool) else default
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def to_optional_number(value: Any) -> Optional[float]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    number = to_number(value, default=math.nan)
    return None if math.isnan(number) else number


def to_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return False


def to_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def to_optional_text(value: Any) -> Optional[str]:
    text = to_text(value)
    return text or None


def to_risk(value: Any) -> Optional[str]:
    text = to_text(value).capitalize()
    return text if text in RISK_LEVELS else None


def to_record_id(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an id")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValueError(f"unusable id {value!r}")


class _RawRecord(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    slug: str = ""
    category: str = ""
    overview: str = ""
    risk: Optional[Risk] = None
    is_active: bool = True
    is_featured: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    created_by: Optional[str] = None

    @field_validator("slug", "category", "overview", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return to_text(value)

    @field_validator("created_at", "updated_at", "created_by", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> Optional[str]:
        return to_optional_text(value)

    @field_validator("risk", mode="before")
    @classmethod
    def _risk(cls, value: Any) -> Optional[str]:
        return to_risk(value)

    @field_validator("is_active", "is_featured", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return to_flag(value)


class RawAssetRecord(_RawRecord):
    """Asset-type ("tesla") investment row."""

    id: int = Field(validation_alias=AliasChoices("tesla_id", "id"))
    name: str = Field("", validation_alias=AliasChoices("investment_name", "investmentName", "name"))
    min_investment: float = Field(0.0, validation_alias=AliasChoices("min_investment", "minInvestment"))
    expected_return: float = Field(0.0, validation_alias=AliasChoices("expected_return", "expectedReturn"))
    duration: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> int:
        return to_record_id(value)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return to_text(value)

    @field_validator("min_investment", "expected_return", mode="before")
    @classmethod
    def _number(cls, value: Any) -> float:
        return to_number(value)

    @field_validator("duration", mode="before")
    @classmethod
    def _duration(cls, value: Any) -> Optional[str]:
        return to_optional_text(value)


class RawCoinRecord(_RawRecord):
    """Coin-type investment row."""

    id: int = Field(validation_alias=AliasChoices("coin_id", "id"))
    name: str = Field("", validation_alias=AliasChoices("coin_name", "coinName", "name"))
    price: float = 0.0
    market_cap: float = Field(0.0, validation_alias=AliasChoices("market_cap", "marketCap"))
    hours: int = 0
    circulating_supply: Optional[float] = Field(
        None, validation_alias=AliasChoices("circulating_supply", "circulatingSupply")
    )
    max_supply: Optional[float] = Field(None, validation_alias=AliasChoices("max_supply", "maxSupply"))
    blockchain: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id(cls, value: Any) -> int:
        return to_record_id(value)

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return to_text(value)

    @field_validator("price", "market_cap", mode="before")
    @classmethod
    def _number(cls, value: Any) -> float:
        return to_number(value)

    @field_validator("hours", mode="before")
    @classmethod
    def _hours(cls, value: Any) -> int:
        return int(to_number(value))

    @field_validator("circulating_supply", "max_supply", mode="before")
    @classmethod
    def _metric(cls, value: Any) -> Optional[float]:
        return to_optional_number(value)

    @field_validator("blockchain", mode="before")
    @classmethod
    def _blockchain(cls, value: Any) -> Optional[str]:
        return to_optional_text(value)


def _decode(model: type, kind: str, rows: Any) -> list:
    if not rows:
        return []
    if not isinstance(rows, list):
        rows = [rows]
    records = []
    for row in rows:
        if not isinstance(row, dict):
            raise RecordDecodeError(kind, row)
        try:
            records.append(model.model_validate(row))
        except ValidationError as exc:
            raise RecordDecodeError(kind, row) from exc
    return records


def decode_assets(rows: Any) -> List[RawAssetRecord]:
    return _decode(RawAssetRecord, "asset", rows)


def decode_coins(rows: Any) -> List[RawCoinRecord]:
    return _decode(RawCoinRecord, "coin", rows)


def split_listing_payload(payload: Any) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Extract (asset rows, coin rows) from any of the list response shapes.

    Accepted shapes:
        {"data": {"tesla": [...], "coins": [...]}}
        {"data": {"coins": [...]}}
        {"investments": [...]}     rows with coin_id are coins, the rest assets
        [...]                      same classification as "investments"
    """
    if isinstance(payload, dict):
        data = payload.get("data", payload)
        if isinstance(data, dict) and ("tesla" in data or "coins" in data):
            assets = data.get("tesla") if isinstance(data.get("tesla"), list) else []
            coins = data.get("coins") if isinstance(data.get("coins"), list) else []
            return assets, coins
        rows = payload.get("investments")
        if rows is None and isinstance(data, list):
            rows = data
    else:
        rows = payload

    if not isinstance(rows, list):
        return [], []

    assets: List[Dict[str, Any]] = []
    coins: List[Dict[str, Any]] = []
    for row in rows:
        if isinstance(row, dict) and "coin_id" in row:
            coins.append(row)
        else:
            assets.append(row)
    return assets, coins
