"""
Tests for domain models and option handling
"""

import pytest

from hybrid_search.models import (
    GRAPH_ENHANCED_WEIGHTS,
    HYBRID_WEIGHTS,
    Product,
    QueryExpansion,
    RankingWeights,
    SearchFilters,
    SearchMode,
    SearchOptions,
    SearchResponse,
    strip_html,
)

from conftest import make_product


WOOCOMMERCE_PRODUCT = {
    "id": 42,
    "name": "Organic Turmeric Powder",
    "slug": "organic-turmeric-powder",
    "price": "12.50",
    "description": "<p>Ground turmeric &amp; black pepper.</p>",
    "categories": [{"id": 7, "name": "Spices"}],
    "tags": [{"id": 3, "name": "organic"}],
    "attributes": [{"name": "Origin", "options": ["India"]}, {"name": "Brand", "options": ["Golden Farm"]}],
    "meta_data": [{"key": "health_benefits", "value": "Anti-inflammatory, Antioxidant"}],
    "average_rating": "4.80",
    "rating_count": 50,
    "stock_status": "outofstock",
    "featured": True,
}


class TestProduct:
    def test_from_woocommerce(self):
        product = Product.from_woocommerce(WOOCOMMERCE_PRODUCT)

        assert product.id == 42
        assert product.price == 12.5
        assert product.description == "Ground turmeric   black pepper."
        assert product.categories == ["Spices"]
        assert product.tags == ["organic"]
        assert product.brand == "Golden Farm"
        assert product.benefits == ["Anti-inflammatory", "Antioxidant"]
        assert product.average_rating == 4.8
        assert product.review_count == 50
        assert product.in_stock is False
        assert product.featured is True

    def test_brand_taxonomy_preferred(self):
        data = dict(WOOCOMMERCE_PRODUCT, brands=[{"name": "Spice Route"}])
        assert Product.from_woocommerce(data).brand == "Spice Route"

    def test_missing_price_is_zero(self):
        product = Product.from_woocommerce({"id": 1, "name": "Sample", "price": ""})
        assert product.price == 0.0
        assert product.in_stock is True

    def test_payload(self):
        payload = make_product(3, "Green Tea", price=8.0, categories=["Tea"]).to_payload()
        assert payload["product_id"] == 3
        assert payload["categories"] == ["Tea"]
        assert "description" not in payload

    def test_strip_html(self):
        assert strip_html("<b>Raw</b> honey") == "Raw honey"
        assert strip_html("") == ""


class TestRankingWeights:
    def test_presets(self):
        assert HYBRID_WEIGHTS.to_dict() == {"semantic": 0.6, "keyword": 0.4, "graph": 0.0, "popularity": 0.0}
        assert GRAPH_ENHANCED_WEIGHTS.to_dict() == {"semantic": 0.4, "keyword": 0.2, "graph": 0.2, "popularity": 0.2}

    def test_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            RankingWeights(semantic=1.5)
        with pytest.raises(ValueError):
            RankingWeights(keyword=-0.1)


class TestSearchOptions:
    def test_defaults(self):
        options = SearchOptions()
        assert options.mode is SearchMode.HYBRID
        assert options.limit == 20
        assert options.resolved_weights() == HYBRID_WEIGHTS

    def test_graph_mode_defaults_to_graph_weights(self):
        assert SearchOptions(use_graph=True).resolved_weights() == GRAPH_ENHANCED_WEIGHTS

    def test_weight_precedence(self):
        custom = RankingWeights(0.5, 0.5, 0.0, 0.0)
        assert SearchOptions(weights=custom, weight_preset="graph_enhanced").resolved_weights() == custom
        assert SearchOptions(weight_preset="graph_enhanced").resolved_weights() == GRAPH_ENHANCED_WEIGHTS

    @pytest.mark.parametrize("kwargs", [
        {"offset": -1},
        {"limit": 0},
        {"weight_preset": "unknown"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            SearchOptions(**kwargs)

    def test_mode_branches(self):
        assert SearchMode.HYBRID.uses_semantic and SearchMode.HYBRID.uses_keyword
        assert not SearchMode.KEYWORD_ONLY.uses_semantic
        assert not SearchMode.SEMANTIC_ONLY.uses_keyword


class TestSearchFilters:
    def test_empty(self):
        assert SearchFilters().is_empty()
        assert not SearchFilters(in_stock=True).is_empty()

    def test_matches(self):
        product = make_product(1, "Raw Honey", price=20.0, categories=["Honey"], in_stock=True)

        assert SearchFilters(categories=("honey",)).matches(product)
        assert not SearchFilters(categories=("Tea",)).matches(product)
        assert SearchFilters(min_price=10, max_price=20).matches(product)
        assert not SearchFilters(min_price=25).matches(product)
        assert not SearchFilters(in_stock=False).matches(product)
        assert not SearchFilters(featured=True).matches(product)


class TestResponses:
    def test_expanded_query(self):
        expansion = QueryExpansion("organic rice", ("Grains",), ("natural", "pure"))
        assert expansion.expanded_query == "organic rice Grains natural pure"

    def test_response_to_dict(self):
        data = SearchResponse(total_count=0, execution_time_ms=1.5).to_dict()
        assert data == {"results": [], "totalCount": 0, "executionTimeMs": 1.5}
