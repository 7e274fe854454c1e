"""Listing routes - Unified asset + coin view with filters, sorting and pagination."""

import time
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from vanguard.api.deps import get_listing_service
from vanguard.core.config import settings
from vanguard.core.errors import ListingNotFoundError, MutationFailure
from vanguard.core.logging import get_logger
from vanguard.schemas.api import (
    AssetCreate,
    CategoriesResponse,
    CoinCreate,
    ListingOut,
    ListingPageResponse,
    MutationResponse,
    RefreshResponse,
)
from vanguard.schemas.unified import UnifiedItem
from vanguard.services.listing_service import ListingService
from vanguard.services.unifier import (
    ALL_CATEGORIES,
    derive_categories,
    filter_items,
    paginate,
    sort_items,
)

router = APIRouter(prefix="/listings", tags=["listings"])
log = get_logger("listing_routes")


def _to_out(service: ListingService, item: UnifiedItem) -> ListingOut:
    return ListingOut(**item.model_dump(exclude={"raw"}), can_manage=service.can_manage(item))


# -----------------------------------------------------------------------------
# Read Endpoints
# -----------------------------------------------------------------------------


@router.get("", response_model=ListingPageResponse)
def get_listings(
    search: str = Query("", description="Case-insensitive match on name, overview, slug or category"),
    category: str = Query(ALL_CATEGORIES, description="Exact category (case-insensitive); 'All' disables"),
    kind: Optional[Literal["asset", "coin"]] = Query(None, description="Restrict to one listing kind"),
    status: Literal["all", "active", "inactive"] = Query("all", description="Filter by active flag"),
    sort_by: Literal["created_at", "name", "category", "amount"] = Query("created_at", description="Sort by field"),
    sort_order: Literal["asc", "desc"] = Query("desc", description="Sort order"),
    page: int = Query(1, ge=1, description="1-indexed page number"),
    per_page: int = Query(settings.DEFAULT_PER_PAGE, ge=1, le=settings.MAX_PER_PAGE, description="Items per page"),
    service: ListingService = Depends(get_listing_service),
):
    """
    Get one page of the unified listing view.

    Pipeline: sort -> category/kind/status filter -> text search -> paginate.
    Pages beyond the last return an empty ``data`` list; ``total_pages`` tells
    the caller where to clamp.
    """
    start = time.perf_counter()
    request_id = str(uuid.uuid4())

    ordered = sort_items(service.items, sort_by, descending=sort_order == "desc")
    matches = filter_items(ordered, search, category, kind=kind, status=status)
    result = paginate(matches, page, per_page)

    latency_ms = int((time.perf_counter() - start) * 1000)

    return ListingPageResponse(
        request_id=request_id,
        api_latency_ms=latency_ms,
        page=page,
        per_page=per_page,
        total_pages=result.total_pages,
        total_count=len(matches),
        categories=derive_categories(service.items),
        error=service.error,
        data=[_to_out(service, item) for item in result.page_items],
    )


@router.get("/categories", response_model=CategoriesResponse)
def get_categories(service: ListingService = Depends(get_listing_service)):
    """'All' followed by every category seen, in first-seen order."""
    return CategoriesResponse(categories=derive_categories(service.items))


@router.get("/{item_id}", response_model=ListingOut)
def get_listing(item_id: str, service: ListingService = Depends(get_listing_service)):
    """Get a single listing by its unified id (e.g. ``coin:5``)."""
    try:
        item = service.get(item_id)
    except ListingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return _to_out(service, item)


# -----------------------------------------------------------------------------
# Write Endpoints
# -----------------------------------------------------------------------------


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_listings(service: ListingService = Depends(get_listing_service)):
    """Reload both collections from the external API."""
    log.info("Listing refresh requested")
    success = await service.refresh()
    return RefreshResponse(success=success, items=len(service.items), error=service.error)


@router.post("/{item_id}/toggle-active", response_model=MutationResponse)
async def toggle_active(item_id: str, service: ListingService = Depends(get_listing_service)):
    """Flip is_active optimistically; rolled back if the external API rejects it."""
    try:
        success = await service.toggle_active(item_id)
    except ListingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return MutationResponse(success=success, item_id=item_id, error=None if success else service.last_alert)


@router.delete("/{item_id}", response_model=MutationResponse)
async def delete_listing(item_id: str, service: ListingService = Depends(get_listing_service)):
    """Remove optimistically; restored if the external API rejects it."""
    try:
        success = await service.remove(item_id)
    except ListingNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return MutationResponse(success=success, item_id=item_id, error=None if success else service.last_alert)


@router.post("/assets", status_code=201)
async def create_asset(form: AssetCreate, service: ListingService = Depends(get_listing_service)):
    """Post a new asset listing to the external API."""
    try:
        return await service.create(form)
    except MutationFailure as exc:
        raise HTTPException(status_code=502, detail=exc.message)


@router.post("/coins", status_code=201)
async def create_coin(form: CoinCreate, service: ListingService = Depends(get_listing_service)):
    """Post a new coin listing to the external API."""
    try:
        return await service.create(form)
    except MutationFailure as exc:
        raise HTTPException(status_code=502, detail=exc.message)
