"""
Tests for facet aggregation and the result cache
"""

import asyncio

import pytest

from hybrid_search.facets import build_facets, price_bucket, rating_label
from hybrid_search.models import (
    FacetCount,
    FusedResult,
    SearchFilters,
    SearchOptions,
    SearchResponse,
)
from hybrid_search.result_cache import CacheJanitor, ResultCache, make_cache_key


def fused(product_id, price=10.0, categories=("Spices",), brand="", rating=0.0):
    return FusedResult(
        product_id=product_id,
        name=f"Product {product_id}",
        slug=f"product-{product_id}",
        price=price,
        categories=tuple(categories),
        brand=brand,
        average_rating=rating,
        semantic_score=0.5,
        keyword_score=0.0,
        graph_score=0.0,
        popularity_score=0.0,
        final_score=0.3,
        match_type="semantic",
    )


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestFacets:
    """Facet counts over the full result list."""

    def test_price_buckets(self):
        assert price_bucket(0) == "<$10"
        assert price_bucket(9.99) == "<$10"
        assert price_bucket(10) == "$10-25"
        assert price_bucket(25) == "$25-50"
        assert price_bucket(99.99) == "$50-100"
        assert price_bucket(100) == "$100+"

    def test_rating_labels(self):
        assert rating_label(0.0) == ""
        assert rating_label(3.9) == "3"
        assert rating_label(5.0) == "5"

    def test_counts_sorted_by_count_then_label(self):
        facets = build_facets([
            fused(1, price=5, categories=("Tea", "Herbs"), brand="Leafy", rating=4.5),
            fused(2, price=15, categories=("Herbs",), brand="Leafy", rating=4.1),
            fused(3, price=150, categories=("Spices",), brand="", rating=0.0),
            fused(4, price=7, categories=("Spices", "Spices"), brand="Acme", rating=2.0),
        ])

        assert facets.categories == (
            FacetCount("Herbs", 2),
            FacetCount("Spices", 2),
            FacetCount("Tea", 1),
        )
        assert facets.price_ranges == (
            FacetCount("<$10", 2),
            FacetCount("$10-25", 1),
            FacetCount("$100+", 1),
        )
        assert facets.brands == (FacetCount("Leafy", 2), FacetCount("Acme", 1))
        assert facets.ratings == (FacetCount("4", 2), FacetCount("2", 1))

    def test_empty(self):
        facets = build_facets([])
        assert facets.to_dict() == {"categories": [], "price_ranges": [], "brands": [], "ratings": []}


class TestCacheKey:
    def test_same_query_and_options_same_key(self):
        assert make_cache_key("tea", SearchOptions()) == make_cache_key("tea", SearchOptions())

    def test_any_option_difference_changes_key(self):
        base = make_cache_key("tea", SearchOptions())
        assert make_cache_key("tea ", SearchOptions()) != base
        assert make_cache_key("tea", SearchOptions(offset=20)) != base
        assert make_cache_key("tea", SearchOptions(use_graph=True)) != base
        assert make_cache_key("tea", SearchOptions(include_facets=True)) != base
        assert make_cache_key("tea", SearchOptions(filters=SearchFilters(in_stock=True))) != base

    def test_category_order_does_not_matter(self):
        first = SearchOptions(filters=SearchFilters(categories=("Tea", "Herbs")))
        second = SearchOptions(filters=SearchFilters(categories=("Herbs", "Tea")))
        assert make_cache_key("tea", first) == make_cache_key("tea", second)


class TestResultCache:
    """TTL and LRU behaviour."""

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = ResultCache(ttl=300, clock=clock)
        response = SearchResponse(total_count=3)

        cache.set("k", response)
        clock.now = 299

        assert cache.get("k") is response
        assert cache.stats()["hits"] == 1

    def test_expired_entry_is_a_miss(self):
        clock = FakeClock()
        cache = ResultCache(ttl=300, clock=clock)
        cache.set("k", SearchResponse())
        clock.now = 300

        assert cache.get("k") is None
        assert len(cache) == 0
        assert cache.stats()["misses"] == 1

    def test_lru_eviction(self):
        cache = ResultCache(ttl=300, max_size=2, clock=FakeClock())
        cache.set("a", SearchResponse())
        cache.set("b", SearchResponse())
        cache.get("a")
        cache.set("c", SearchResponse())

        assert cache.get("b") is None
        assert cache.get("a") is not None
        assert cache.get("c") is not None
        assert cache.stats()["evictions"] == 1

    def test_purge_expired(self):
        clock = FakeClock()
        cache = ResultCache(ttl=10, clock=clock)
        cache.set("old", SearchResponse())
        clock.now = 5
        cache.set("new", SearchResponse())
        clock.now = 12

        assert cache.purge_expired() == 1
        assert len(cache) == 1

    def test_clear(self):
        cache = ResultCache()
        cache.set("a", SearchResponse())
        cache.clear()
        assert len(cache) == 0


class TestCacheJanitor:
    @pytest.mark.asyncio
    async def test_purges_in_background_and_stops(self):
        clock = FakeClock()
        cache = ResultCache(ttl=10, clock=clock)
        cache.set("a", SearchResponse())
        clock.now = 11

        janitor = CacheJanitor(cache, interval=0.01)
        janitor.start()
        assert janitor.running

        for _ in range(50):
            if len(cache) == 0:
                break
            await asyncio.sleep(0.01)

        await janitor.stop()
        assert len(cache) == 0
        assert not janitor.running

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        janitor = CacheJanitor(ResultCache(), interval=1)
        await janitor.stop()
        assert not janitor.running
