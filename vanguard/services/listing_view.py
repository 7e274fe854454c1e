"""Listing view state: filters, page and debounced search over unified items."""

from __future__ import annotations

from typing import List, NamedTuple, Optional, Sequence

from vanguard.core.config import settings
from vanguard.core.debounce import Debouncer
from vanguard.core.errors import InvalidPageSizeError
from vanguard.core.logging import get_logger
from vanguard.schemas.unified import UnifiedItem
from vanguard.services.unifier import (
    ALL_CATEGORIES,
    SortField,
    StatusFilter,
    derive_categories,
    filter_items,
    paginate,
    sort_items,
)

log = get_logger("listing_view")


class ListingPage(NamedTuple):
    items: List[UnifiedItem]
    page: int
    total_pages: int
    total_count: int
    categories: List[str]


class ListingView:
    """Owns the unified items for one view session plus the user's filters.

    Policy:
    - a change of search term, category, kind or status resets page to 1
    - set_page changes only the page
    - typed search text goes through a Debouncer; only the settled value
      reaches set_search, while category and page apply immediately
    """

    def __init__(
        self,
        per_page: Optional[int] = None,
        debounce_ms: Optional[int] = None,
        sort_by: SortField = "created_at",
        descending: bool = True,
    ):
        self.per_page = per_page if per_page is not None else settings.DEFAULT_PER_PAGE
        if self.per_page < 1:
            raise InvalidPageSizeError(self.per_page)

        self.items: List[UnifiedItem] = []
        self.search_input = ""
        self.search_term = ""
        self.category = ALL_CATEGORIES
        self.kind: Optional[str] = None
        self.status: StatusFilter = "all"
        self.sort_by: SortField = sort_by
        self.descending = descending
        self.page = 1

        delay = debounce_ms if debounce_ms is not None else settings.SEARCH_DEBOUNCE_MS
        self.debouncer: Debouncer[str] = Debouncer(delay, on_emit=self.set_search)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def set_items(self, items: Sequence[UnifiedItem]) -> None:
        self.items = list(items)

    def type_search(self, raw: str) -> None:
        """Keystroke entry point: the input updates now, filtering after the quiet window."""
        self.search_input = raw
        self.debouncer.push(raw)

    def set_search(self, term: str) -> None:
        term = term or ""
        if term != self.search_term:
            log.debug(f"Search term changed to {term!r}; page reset")
            self.search_term = term
            self.page = 1

    def set_category(self, category: Optional[str]) -> None:
        category = category or ALL_CATEGORIES
        if category != self.category:
            self.category = category
            self.page = 1

    def set_kind(self, kind: Optional[str]) -> None:
        if kind != self.kind:
            self.kind = kind
            self.page = 1

    def set_status(self, status: StatusFilter) -> None:
        if status != self.status:
            self.status = status
            self.page = 1

    def set_sort(self, sort_by: SortField, descending: bool = True) -> None:
        self.sort_by = sort_by
        self.descending = descending

    def set_page(self, page: int) -> None:
        self.page = page

    # ------------------------------------------------------------------
    # Outputs
    # ------------------------------------------------------------------
    @property
    def categories(self) -> List[str]:
        return derive_categories(self.items)

    def filtered(self) -> List[UnifiedItem]:
        ordered = sort_items(self.items, self.sort_by, self.descending)
        return filter_items(
            ordered,
            self.search_term,
            self.category,
            kind=self.kind,
            status=self.status,
        )

    def current_page(self) -> ListingPage:
        matches = self.filtered()
        result = paginate(matches, self.page, self.per_page)
        return ListingPage(
            items=result.page_items,
            page=self.page,
            total_pages=result.total_pages,
            total_count=len(matches),
            categories=self.categories,
        )

    def close(self) -> None:
        self.debouncer.cancel()
