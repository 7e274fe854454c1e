"""Unification pipeline tests"""

import pytest

from conftest import asset_row, coin_row, make_items
from vanguard.core.errors import InvalidPageSizeError
from vanguard.schemas.raw import decode_assets, decode_coins
from vanguard.schemas.unified import AssetPayload, UnifiedItem
from vanguard.services.unifier import (
    apply_optimistic_mutation,
    derive_categories,
    filter_items,
    format_amount,
    normalize,
    paginate,
    parse_timestamp,
    revert_mutation,
    sort_items,
    to_update_payload,
)


class TestNormalize:
    """normalize() merges, tags and orders both collections"""

    def test_newest_first_across_kinds(self):
        items = make_items(
            [asset_row(1, "2025-01-01"), asset_row(2, "2025-02-01")],
            [coin_row(5, "2025-03-01")],
        )
        assert [it.id for it in items] == ["coin:5", "asset:2", "asset:1"]

    def test_count_preserved_with_malformed_fields(self):
        assets = [
            asset_row(1, "not-a-date", min_investment="abc", expected_return=None),
            asset_row(2, None, is_active="yes", risk="extreme"),
        ]
        coins = [coin_row(1, "", price="", market_cap=None, hours="soon", circulating_supply="n/a")]
        items = make_items(assets, coins)
        assert len(items) == len(assets) + len(coins)

    def test_ids_unique_when_source_ids_collide(self):
        items = make_items([asset_row(7, "2025-01-01")], [coin_row(7, "2025-01-01")])
        ids = [it.id for it in items]
        assert sorted(ids) == ["asset:7", "coin:7"]
        assert len(set(ids)) == len(ids)

    def test_empty_inputs(self):
        assert normalize([], []) == []

    def test_sorted_non_increasing_when_timestamps_valid(self):
        items = make_items(
            [asset_row(i, f"2024-0{i}-15T10:00:00Z") for i in range(1, 6)],
            [coin_row(i, f"2024-0{i}-10T08:30:00+02:00") for i in range(1, 6)],
        )
        stamps = [parse_timestamp(it.created_at) for it in items]
        assert stamps == sorted(stamps, reverse=True)

    def test_ties_keep_input_order(self):
        items = make_items(
            [asset_row(1, "2025-01-01"), asset_row(2, "2025-01-01")],
            [coin_row(3, "2025-01-01")],
        )
        assert [it.id for it in items] == ["asset:1", "asset:2", "coin:3"]

    def test_missing_timestamps_sort_as_oldest(self):
        items = make_items([asset_row(1, None), asset_row(2, "2020-06-01")], [coin_row(3, "garbage")])
        assert items[0].id == "asset:2"
        assert {it.id for it in items[1:]} == {"asset:1", "coin:3"}

    def test_kind_payloads_are_exclusive(self):
        items = make_items([asset_row(1, "2025-01-01")], [coin_row(2, "2025-01-02")])
        coin, asset = items
        assert coin.kind == "coin" and coin.coin is not None and coin.asset is None
        assert asset.kind == "asset" and asset.asset is not None and asset.coin is None

    def test_string_price_coerced(self):
        (item,) = make_items([], [coin_row(1, "2025-01-01", price="1234.50")])
        assert item.coin.price == 1234.5
        assert item.headline_amount == 1234.5

    def test_raw_record_retained(self):
        (item,) = make_items([asset_row(3, "2025-01-01", created_by=42)], [])
        assert item.raw.id == 3
        assert item.created_by == "42"

    def test_payload_kind_mismatch_rejected(self):
        (coin,) = make_items([], [coin_row(1)])
        with pytest.raises(ValueError):
            UnifiedItem(id="asset:1", kind="asset", source_id=1, name="x", coin=coin.coin)


class TestCategories:
    def test_all_first_then_first_seen_order(self):
        items = make_items(
            [
                asset_row(1, "2025-01-03", category="ETF"),
                asset_row(2, "2025-01-02", category="Equity"),
                asset_row(3, "2025-01-01", category="ETF"),
            ],
            [coin_row(4, "2024-12-31", category="")],
        )
        assert derive_categories(items) == ["All", "ETF", "Equity"]

    def test_empty_collection(self):
        assert derive_categories([]) == ["All"]


class TestFilter:
    @pytest.fixture
    def items(self):
        return make_items(
            [
                asset_row(1, "2025-01-03", category="Equity", investment_name="Tesla Growth"),
                asset_row(2, "2025-01-02", category="ETF", investment_name="World Index", is_active=0),
                asset_row(3, "2025-01-01", category="Equity", investment_name="Solar Project"),
            ],
            [
                coin_row(9, "2025-01-04", coin_name="Bitcoin (BTC)", slug="btc"),
                coin_row(8, "2024-12-01", coin_name="Tether", category="Stablecoins", overview="USD pegged"),
            ],
        )

    def test_category_equity(self):
        assets = make_items(
            [asset_row(1, category="Equity"), asset_row(2, category="ETF"), asset_row(3, category="Equity")],
            [],
        )
        result = filter_items(assets, "", "Equity")
        assert len(result) == 2
        assert all(it.kind == "asset" for it in result)

    def test_category_case_insensitive(self, items):
        assert [it.id for it in filter_items(items, "", "stablecoins")] == ["coin:8"]

    def test_search_trimmed_and_case_insensitive(self, items):
        result = filter_items(items, " bitcoin ", "All")
        assert [it.id for it in result] == ["coin:9"]

    def test_search_matches_slug_overview_and_category(self, items):
        assert [it.id for it in filter_items(items, "BTC")] == ["coin:9"]
        assert [it.id for it in filter_items(items, "pegged")] == ["coin:8"]
        assert {it.id for it in filter_items(items, "etf")} == {"asset:2"}

    def test_blank_search_matches_everything(self, items):
        assert filter_items(items, "   ", "All") == items
        assert filter_items(items, None, None) == items

    def test_category_filter_idempotent(self, items):
        once = filter_items(items, "", "Equity")
        assert filter_items(once, "", "Equity") == once

    def test_search_and_category_commute(self, items):
        both = filter_items(items, "solar", "Equity")
        search_first = filter_items(filter_items(items, "solar", "All"), "", "Equity")
        category_first = filter_items(filter_items(items, "", "Equity"), "solar", "All")
        assert both == search_first == category_first
        assert [it.id for it in both] == ["asset:3"]

    def test_kind_and_status_filters(self, items):
        assert {it.id for it in filter_items(items, kind="coin")} == {"coin:9", "coin:8"}
        assert [it.id for it in filter_items(items, status="inactive")] == ["asset:2"]
        assert "asset:2" not in {it.id for it in filter_items(items, status="active")}

    def test_does_not_mutate_input(self, items):
        before = list(items)
        filter_items(items, "tesla", "Equity")
        assert items == before


class TestPaginate:
    @pytest.fixture
    def items(self):
        return make_items([asset_row(i, f"2025-01-{i:02d}") for i in range(1, 26)], [])

    def test_twenty_five_items_by_ten(self, items):
        first = paginate(items, 1, 10)
        assert len(first.page_items) == 10
        assert first.total_pages == 3
        assert len(paginate(items, 3, 10).page_items) == 5

    def test_out_of_range_page_is_empty_not_clamped(self, items):
        result = paginate(items, 5, 10)
        assert result.page_items == []
        assert result.total_pages == 3
        assert paginate(items, 0, 10).page_items == []

    def test_empty_collection_has_one_page(self):
        assert paginate([], 1, 10) == ([], 1)

    @pytest.mark.parametrize("per_page", [1, 3, 7, 10, 25, 200])
    def test_pages_reconstruct_items(self, items, per_page):
        pages = paginate(items, 1, per_page).total_pages
        rebuilt = []
        for page in range(1, pages + 1):
            rebuilt.extend(paginate(items, page, per_page).page_items)
        assert rebuilt == items

    @pytest.mark.parametrize("per_page", [0, -5])
    def test_non_positive_per_page_rejected(self, items, per_page):
        with pytest.raises(InvalidPageSizeError):
            paginate(items, 1, per_page)


class TestOptimisticMutation:
    @pytest.fixture
    def items(self):
        return make_items(
            [asset_row(1, "2025-01-01"), asset_row(2, "2025-01-02")],
            [coin_row(3, "2025-01-03")],
        )

    def test_patch_changes_only_target(self, items):
        result = apply_optimistic_mutation(items, "asset:2", {"is_active": False})
        target_index = [it.id for it in items].index("asset:2")
        assert result.applied[target_index].is_active is False
        for i, item in enumerate(items):
            if i != target_index:
                assert result.applied[i] is item
        assert result.previous == items
        assert result.target is items[target_index]
        # the original item is untouched
        assert items[target_index].is_active is True

    def test_remove(self, items):
        result = apply_optimistic_mutation(items, "coin:3", None)
        assert [it.id for it in result.applied] == ["asset:2", "asset:1"]
        assert all(a is b for a, b in zip(result.applied, items[1:]))

    def test_replace_with_edited_item(self, items):
        edited = items[1].model_copy(update={"name": "Renamed"})
        result = apply_optimistic_mutation(items, items[1].id, edited)
        assert result.applied[1] is edited
        assert result.applied[0] is items[0] and result.applied[2] is items[2]

    def test_unknown_target_leaves_items(self, items):
        result = apply_optimistic_mutation(items, "asset:99", {"is_active": False})
        assert result.target is None
        assert all(a is b for a, b in zip(result.applied, items))

    def test_rejects_unknown_and_identity_fields(self, items):
        with pytest.raises(ValueError):
            apply_optimistic_mutation(items, "asset:1", {"colour": "red"})
        with pytest.raises(ValueError):
            apply_optimistic_mutation(items, "asset:1", {"kind": "coin"})

    def test_replacement_id_must_match(self, items):
        with pytest.raises(ValueError):
            apply_optimistic_mutation(items, "asset:1", items[0])

    def test_patch_cannot_add_other_kind_payload(self, items):
        with pytest.raises(ValueError):
            apply_optimistic_mutation(items, "coin:3", {"asset": AssetPayload()})
        with pytest.raises(ValueError):
            apply_optimistic_mutation(items, "asset:1", {"asset": None})

    def test_patched_flags_are_coerced(self, items):
        result = apply_optimistic_mutation(items, "coin:3", {"is_active": "0"})
        patched = next(it for it in result.applied if it.id == "coin:3")
        assert patched.is_active is False
        assert patched.raw is items[0].raw
        assert [it.id for it in filter_items(result.applied, status="inactive")] == ["coin:3"]

    def test_patched_amount_is_validated(self, items):
        with pytest.raises(ValueError):
            apply_optimistic_mutation(items, "asset:1", {"asset": {"min_investment": "lots"}})


class TestRevertMutation:
    @pytest.fixture
    def items(self):
        return make_items(
            [asset_row(1, "2025-01-01"), asset_row(2, "2025-01-02")],
            [coin_row(3, "2025-01-03")],
        )

    def test_reverts_only_the_target(self, items):
        toggled = apply_optimistic_mutation(items, "asset:1", {"is_active": False})
        # another mutation lands on top of the optimistic list
        later = apply_optimistic_mutation(toggled.applied, "coin:3", {"name": "Renamed"}).applied

        reverted = revert_mutation(later, toggled)
        assert next(it for it in reverted if it.id == "asset:1") is toggled.target
        assert next(it for it in reverted if it.id == "coin:3").name == "Renamed"

    def test_reinserts_removed_item_at_old_position(self, items):
        removed = apply_optimistic_mutation(items, "asset:2", None)
        reverted = revert_mutation(removed.applied, removed)
        assert [it.id for it in reverted] == ["coin:3", "asset:2", "asset:1"]

    def test_reinserts_at_end_when_list_shrank(self, items):
        removed = apply_optimistic_mutation(items, "asset:1", None)
        shrunk = [it for it in removed.applied if it.id != "asset:2"]
        assert [it.id for it in revert_mutation(shrunk, removed)] == ["coin:3", "asset:1"]

    def test_unknown_target_is_noop(self, items):
        missing = apply_optimistic_mutation(items, "asset:99", None)
        assert revert_mutation(items, missing) == items


class TestHelpers:
    def test_sort_by_name_ascending(self):
        items = make_items(
            [asset_row(1, investment_name="beta"), asset_row(2, investment_name="Alpha")],
            [coin_row(3, coin_name="gamma")],
        )
        assert [it.name for it in sort_items(items, "name", descending=False)] == ["Alpha", "beta", "gamma"]

    def test_update_payload_shapes(self):
        asset, coin = make_items([asset_row(1, "2025-01-01")], [coin_row(2, "2024-01-01")])
        asset_payload = to_update_payload(asset)
        assert asset_payload["investment_name"] == "Asset 1"
        assert asset_payload["min_investment"] == 1000.0
        assert asset_payload["is_active"] == 1 and asset_payload["is_featured"] == 0

        coin_payload = to_update_payload(coin)
        assert coin_payload["coin_name"] == "Coin 2"
        assert coin_payload["price"] == 1234.5
        assert coin_payload["blockchain"] == "Bitcoin"
        assert coin_payload["is_featured"] == 1

    def test_format_amount(self):
        assert format_amount(None) == "—"
        assert format_amount(1234.5) == "1,234.50"
        assert format_amount(1000000.0) == "1,000,000"

    def test_decode_then_normalize_counts(self):
        assets = decode_assets([asset_row(1), asset_row(2)])
        coins = decode_coins([coin_row(1)])
        assert len(normalize(assets, coins)) == 3
