"""Listing unification pipeline.

raw collections -> normalized items -> sorted -> category-filtered ->
text-filtered -> paginated slice.

Every function here is pure: inputs are never mutated and the result is a
new list. Items themselves are immutable, so unchanged items are shared
between the input and output lists.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, NamedTuple, Optional, Sequence, Union

from vanguard.core.errors import InvalidPageSizeError
from vanguard.schemas.raw import RawAssetRecord, RawCoinRecord
from vanguard.schemas.unified import (
    AssetPayload,
    CoinMetrics,
    CoinPayload,
    UnifiedItem,
    make_item_id,
)

ALL_CATEGORIES = "All"
PLACEHOLDER = "—"

SortField = Literal["created_at", "name", "category", "amount"]
StatusFilter = Literal["all", "active", "inactive"]

# Fields a mapping patch may not touch: they define the item's identity
_IDENTITY_FIELDS = frozenset({"id", "kind", "source_id"})


class PageResult(NamedTuple):
    page_items: List[UnifiedItem]
    total_pages: int


class MutationResult(NamedTuple):
    applied: List[UnifiedItem]
    previous: List[UnifiedItem]
    target: Optional[UnifiedItem]


# -----------------------------------------------------------------------------
# Normalization
# -----------------------------------------------------------------------------
def parse_timestamp(value: Any) -> float:
    """Epoch seconds for an ISO-8601 string; 0.0 when missing or unparseable."""
    if not value:
        return 0.0
    try:
        if isinstance(value, datetime):
            parsed = value
        else:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()
    except (ValueError, OverflowError, OSError):
        return 0.0


def asset_to_item(record: RawAssetRecord) -> UnifiedItem:
    return UnifiedItem(
        id=make_item_id("asset", record.id),
        kind="asset",
        source_id=record.id,
        name=record.name,
        slug=record.slug,
        category=record.category,
        overview=record.overview,
        risk=record.risk,
        is_active=record.is_active,
        is_featured=record.is_featured,
        created_at=record.created_at,
        updated_at=record.updated_at,
        created_by=record.created_by,
        asset=AssetPayload(
            min_investment=record.min_investment,
            expected_return=record.expected_return,
            duration=record.duration,
        ),
        raw=record,
    )


def coin_to_item(record: RawCoinRecord) -> UnifiedItem:
    return UnifiedItem(
        id=make_item_id("coin", record.id),
        kind="coin",
        source_id=record.id,
        name=record.name,
        slug=record.slug,
        category=record.category,
        overview=record.overview,
        risk=record.risk,
        is_active=record.is_active,
        is_featured=record.is_featured,
        created_at=record.created_at,
        updated_at=record.updated_at,
        created_by=record.created_by,
        coin=CoinPayload(
            price=record.price,
            market_cap=record.market_cap,
            hours=record.hours,
            metrics=CoinMetrics(
                circulating_supply=record.circulating_supply,
                max_supply=record.max_supply,
                blockchain=record.blockchain,
            ),
        ),
        raw=record,
    )


def normalize(
    assets: Sequence[RawAssetRecord],
    coins: Sequence[RawCoinRecord],
) -> List[UnifiedItem]:
    """Merge both collections, newest first; equal timestamps keep input order."""
    merged = [asset_to_item(a) for a in assets] + [coin_to_item(c) for c in coins]
    return sort_items(merged, "created_at", descending=True)


def derive_categories(items: Sequence[UnifiedItem]) -> List[str]:
    categories: Dict[str, None] = {ALL_CATEGORIES: None}
    for item in items:
        if item.category:
            categories.setdefault(item.category, None)
    return list(categories)


# -----------------------------------------------------------------------------
# Sorting & filtering
# -----------------------------------------------------------------------------
def _sort_key(field: SortField):
    if field == "created_at":
        return lambda it: parse_timestamp(it.created_at)
    if field == "name":
        return lambda it: it.name.lower()
    if field == "category":
        return lambda it: it.category.lower()
    if field == "amount":
        return lambda it: it.headline_amount
    raise ValueError(f"Unsupported sort field: {field}")


def sort_items(
    items: Sequence[UnifiedItem],
    sort_by: SortField = "created_at",
    descending: bool = True,
) -> List[UnifiedItem]:
    # sorted() stays stable with reverse=True
    return sorted(items, key=_sort_key(sort_by), reverse=descending)


def _matches_term(item: UnifiedItem, term: str) -> bool:
    return any(term in field.lower() for field in (item.name, item.overview, item.slug, item.category))


def filter_items(
    items: Sequence[UnifiedItem],
    search_term: Optional[str] = "",
    category: Optional[str] = ALL_CATEGORIES,
    *,
    kind: Optional[str] = None,
    status: StatusFilter = "all",
) -> List[UnifiedItem]:
    """Keep items matching every active filter.

    Category compares lowercased strings for equality; the search term is
    trimmed, lowercased and matched as a substring of name, overview, slug or
    category. A blank term or the "All" category filters nothing.
    """
    term = (search_term or "").strip().lower()
    wanted_category = (category or ALL_CATEGORIES)
    wanted_category = None if wanted_category == ALL_CATEGORIES else wanted_category.lower()

    result = []
    for item in items:
        if kind is not None and item.kind != kind:
            continue
        if status == "active" and not item.is_active:
            continue
        if status == "inactive" and item.is_active:
            continue
        if wanted_category is not None and item.category.lower() != wanted_category:
            continue
        if term and not _matches_term(item, term):
            continue
        result.append(item)
    return result


# -----------------------------------------------------------------------------
# Pagination
# -----------------------------------------------------------------------------
def total_pages(count: int, per_page: int) -> int:
    if per_page < 1:
        raise InvalidPageSizeError(per_page)
    return max(1, math.ceil(count / per_page))


def paginate(items: Sequence[UnifiedItem], page: int, per_page: int) -> PageResult:
    """Slice one 1-indexed page. Out-of-range pages are empty, not clamped."""
    pages = total_pages(len(items), per_page)
    if page < 1:
        return PageResult([], pages)
    start = (page - 1) * per_page
    return PageResult(list(items[start : start + per_page]), pages)


# -----------------------------------------------------------------------------
# Optimistic mutations
# -----------------------------------------------------------------------------
def apply_optimistic_mutation(
    items: Sequence[UnifiedItem],
    target_id: str,
    patch: Union[Mapping[str, Any], UnifiedItem, None],
) -> MutationResult:
    """Compute the optimistic view for one item.

    patch is a mapping (shallow merge), a full UnifiedItem (replace) or None
    (remove). ``previous`` is the untouched snapshot for the caller to restore
    if the remote call fails.
    """
    previous = list(items)
    target = next((it for it in previous if it.id == target_id), None)

    if patch is None:
        applied = [it for it in previous if it.id != target_id]
    elif isinstance(patch, UnifiedItem):
        if patch.id != target_id:
            raise ValueError(f"Replacement id {patch.id!r} does not match target {target_id!r}")
        applied = [patch if it.id == target_id else it for it in previous]
    else:
        update = dict(patch)
        unknown = set(update) - set(UnifiedItem.model_fields)
        if unknown:
            raise ValueError(f"Unknown item fields in patch: {sorted(unknown)}")
        protected = set(update) & _IDENTITY_FIELDS
        if protected:
            raise ValueError(f"Identity fields cannot be patched: {sorted(protected)}")
        applied = [_patched(it, update) if it.id == target_id else it for it in previous]

    return MutationResult(applied=applied, previous=previous, target=target)


def _patched(item: UnifiedItem, update: Dict[str, Any]) -> UnifiedItem:
    # Revalidate so patched flags are coerced and payload/kind stay consistent
    data = item.model_dump(exclude={"raw"})
    data.update(update)
    data["raw"] = item.raw
    return UnifiedItem.model_validate(data)


def revert_mutation(items: Sequence[UnifiedItem], result: MutationResult) -> List[UnifiedItem]:
    """Undo one optimistic mutation on a list that may have changed since.

    Only the mutated item goes back to its pre-mutation state; every other
    item in ``items`` is kept as is. A removed item is re-inserted at its old
    position, or at the end when the list has since shrunk.
    """
    current = list(items)
    target = result.target
    if target is None:
        return current
    for index, item in enumerate(current):
        if item.id == target.id:
            current[index] = target
            return current
    position = next(i for i, it in enumerate(result.previous) if it.id == target.id)
    current.insert(min(position, len(current)), target)
    return current


# -----------------------------------------------------------------------------
# Outbound shapes & display helpers
# -----------------------------------------------------------------------------
def to_update_payload(item: UnifiedItem) -> Dict[str, Any]:
    """PUT body for /api/{tesla|coins}/{id}; flags go out as 0/1."""
    common = {
        "category": item.category,
        "overview": item.overview or None,
        "risk": item.risk,
        "is_featured": 1 if item.is_featured else 0,
        "is_active": 1 if item.is_active else 0,
    }
    if item.kind == "asset":
        return {
            "investment_name": item.name,
            "min_investment": item.asset.min_investment,
            "expected_return": item.asset.expected_return,
            "duration": item.asset.duration,
            **common,
        }
    metrics = item.coin.metrics
    return {
        "coin_name": item.name,
        "price": item.coin.price,
        "hours": item.coin.hours,
        "market_cap": item.coin.market_cap,
        "circulating_supply": metrics.circulating_supply,
        "max_supply": metrics.max_supply,
        "blockchain": metrics.blockchain,
        **common,
    }


def format_amount(value: Optional[float]) -> str:
    if value is None or not math.isfinite(value):
        return PLACEHOLDER
    if float(value).is_integer():
        return f"{value:,.0f}"
    return f"{value:,.2f}"
