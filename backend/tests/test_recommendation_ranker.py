"""
Test Module: test_recommendation_ranker.py
Description: Unit tests for product ranking, padding and pagination.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from services.product_catalog import Product, ProductCatalog, load_catalog
from services.observability import metrics
from services.recommendation_ranker import RecommendationRanker, paginate


@pytest.fixture
def ranker(catalog):
    return RecommendationRanker(catalog)


def ids(products):
    return [p.id for p in products]


# =============================================================================
# Ranking Tests
# =============================================================================

class TestRank:

    def test_top_food_no_goals(self, ranker, catalog):
        products = ranker.rank({"Food": 50.0}, [])

        food_ids = ids(catalog.bucket("Food"))
        default_ids = ids(catalog.default)
        assert ids(products)[:3] == food_ids
        assert set(food_ids + default_ids) <= set(ids(products))
        assert len(products) >= 36

    def test_no_duplicate_ids(self, ranker):
        products = ranker.rank({"Food": 50.0, "Travel": 40.0, "Rent": 30.0}, ["travel home"])

        assert len(ids(products)) == len(set(ids(products)))

    def test_categories_in_spend_order(self, ranker):
        products = ranker.rank({"Food": 10.0, "Travel": 100.0}, [])

        assert ids(products)[:6] == [4, 5, 6, 1, 2, 3]

    def test_only_top_three_categories_used(self, ranker):
        products = ranker.rank(
            {"Groceries": 1.0, "Food": 10.0, "Travel": 20.0, "Rent": 30.0}, []
        )

        assert 10 not in ids(products)
        assert 11 not in ids(products)

    def test_unknown_category_uses_default_bucket(self, ranker, catalog):
        products = ranker.rank({"Pets": 80.0}, [])

        assert ids(products)[:len(catalog.default)] == ids(catalog.default)

    def test_travel_goal_adds_travel_bucket(self, ranker):
        products = ranker.rank({}, ["Travel to Japan"])

        assert ids(products)[:3] == [4, 5, 6]

    def test_home_goal_adds_rent_bucket(self, ranker):
        products = ranker.rank({}, ["Buy a HOUSE"])

        assert ids(products)[:3] == [7, 8, 9]

    def test_fitness_goal_adds_fitness_products_only(self, ranker):
        products = ranker.rank({}, ["more exercise"])

        assert ids(products)[0] == 17

    def test_nothing_matched_falls_back_to_default(self, ranker, catalog):
        products = ranker.rank({}, [])

        assert ids(products)[:len(catalog.default)] == ids(catalog.default)

    def test_padding_ids_start_at_list_length(self, ranker):
        products = ranker.rank({"Food": 50.0}, [])

        # 3 Food + 19 default = 22 unique, padded to 36
        assert len(products) == 36
        assert products[22].id == 1022
        assert products[22].name == products[0].name
        assert products[-1].id == 1035

    def test_no_padding_when_above_floor(self, catalog):
        ranker = RecommendationRanker(catalog, min_products=10)

        products = ranker.rank({"Food": 50.0}, [])

        assert all(p.id < 1000 for p in products)

    def test_ranking_uses_injected_catalog(self):
        small = ProductCatalog({
            "default": [Product(1, "Only", "d", 1.0, "img", "url")],
        })
        ranker = RecommendationRanker(small, min_products=3)

        products = ranker.rank({"Food": 1.0}, [])

        assert ids(products) == [1, 1001, 1002]

    def test_ranking_is_timed(self, ranker):
        metrics.reset()

        ranker.rank({"Food": 50.0}, [])

        summary = metrics.get_summary()
        assert summary["counters"]["recommendation_ranking.success"] == 1
        assert summary["timings"]["recommendation_ranking"]["count"] == 1

    def test_catalog_is_read_only(self, catalog):
        with pytest.raises(TypeError):
            catalog._buckets["default"] = ()


# =============================================================================
# Pagination Tests
# =============================================================================

class TestPaginate:

    @pytest.fixture
    def products(self):
        return [Product(i, f"P{i}", "", 0.0, "", "") for i in range(36)]

    def test_last_page(self, products):
        page = paginate(products, 2, 12)

        assert ids(page.items) == list(range(24, 36))
        assert page.has_more is False
        assert page.total == 36

    def test_first_page(self, products):
        page = paginate(products, 0, 12)

        assert ids(page.items) == list(range(0, 12))
        assert page.has_more is True

    def test_partial_last_page(self, products):
        page = paginate(products, 3, 10)

        assert ids(page.items) == list(range(30, 36))
        assert page.has_more is False

    def test_past_end_is_empty(self, products):
        page = paginate(products, 5, 12)

        assert page.items == []
        assert page.has_more is False

    @pytest.mark.parametrize("page,size", [(-1, 12), (0, 0)])
    def test_invalid_arguments(self, products, page, size):
        with pytest.raises(ValueError):
            paginate(products, page, size)


# =============================================================================
# Catalog Loading Tests
# =============================================================================

class TestCatalog:

    def test_builtin_catalog(self):
        catalog = load_catalog()

        assert set(catalog.keys) == {"Food", "Travel", "Rent", "Groceries", "default"}
        assert len(catalog.default) == 19

    def test_missing_bucket_returns_default(self, catalog):
        assert catalog.bucket("Nope") == catalog.default

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text('{"default": [{"id": 5, "name": "Thing", "price": "2.5"}]}')

        catalog = load_catalog(str(path))

        assert catalog.default[0].price == 2.5
        assert catalog.default[0].url == ""

    def test_entry_without_name_names_the_field(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text('{"default": [{"id": 5}]}')

        with pytest.raises(PydanticValidationError) as exc:
            load_catalog(str(path))

        assert "name" in str(exc.value)

    def test_entry_with_bad_price_rejected(self):
        with pytest.raises(PydanticValidationError):
            ProductCatalog.from_dict({"default": [{"id": 1, "name": "X", "price": "free"}]})

    def test_json_without_default_rejected(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text('{"Food": []}')

        with pytest.raises(ValueError):
            load_catalog(str(path))
