"""Listing view state tests"""

import asyncio

import pytest

from conftest import asset_row, coin_row, make_items
from vanguard.core.errors import InvalidPageSizeError
from vanguard.services.listing_view import ListingView


@pytest.fixture
def view():
    view = ListingView(per_page=10, debounce_ms=30)
    view.set_items(
        make_items(
            [asset_row(i, f"2025-01-{i:02d}", category="Equity" if i % 2 else "ETF") for i in range(1, 24)],
            [coin_row(100, "2025-02-01", coin_name="Bitcoin (BTC)")],
        )
    )
    return view


class TestPageReset:
    def test_category_change_resets_page(self, view):
        view.set_page(3)
        view.set_category("Equity")
        assert view.page == 1

    def test_search_change_resets_page(self, view):
        view.set_page(2)
        view.set_search("asset")
        assert view.page == 1

    def test_page_change_keeps_filters(self, view):
        view.set_category("Equity")
        view.set_search("asset")
        view.set_page(2)
        assert view.category == "Equity"
        assert view.search_term == "asset"
        assert view.page == 2

    def test_same_category_does_not_reset(self, view):
        view.set_category("ETF")
        view.set_page(2)
        view.set_category("ETF")
        assert view.page == 2

    def test_kind_and_status_reset_page(self, view):
        view.set_page(3)
        view.set_kind("coin")
        assert view.page == 1
        view.set_page(2)
        view.set_status("inactive")
        assert view.page == 1


class TestCurrentPage:
    def test_paginates_filtered_items(self, view):
        page = view.current_page()
        assert page.total_count == 24
        assert page.total_pages == 3
        assert len(page.items) == 10
        assert page.items[0].id == "coin:100"
        assert page.categories == ["All", "Cryptos", "Equity", "ETF"]

    def test_category_narrows_total(self, view):
        view.set_category("ETF")
        page = view.current_page()
        assert page.total_count == 11
        assert page.total_pages == 2

    def test_page_past_end_is_empty(self, view):
        view.set_page(9)
        page = view.current_page()
        assert page.items == []
        assert page.total_pages == 3

    def test_rejects_non_positive_per_page(self):
        with pytest.raises(InvalidPageSizeError):
            ListingView(per_page=0)


class TestDebouncedSearch:
    @pytest.mark.asyncio
    async def test_only_settled_text_filters(self, view):
        view.set_page(2)
        for text in ["b", "bi", "bit"]:
            view.type_search(text)
        # input is visible immediately, the filter is not applied yet
        assert view.search_input == "bit"
        assert view.search_term == ""
        assert view.page == 2

        await asyncio.sleep(0.12)
        assert view.search_term == "bit"
        assert view.page == 1
        assert [it.id for it in view.current_page().items] == ["coin:100"]

    @pytest.mark.asyncio
    async def test_category_applies_without_waiting(self, view):
        view.type_search("bitcoin")
        view.set_category("Cryptos")
        assert view.current_page().total_count == 1
        view.close()
