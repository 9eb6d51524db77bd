"""
Tests for the BM25 keyword branch

Covers:
- Index building, including the empty catalog
- Keyword scoring, matched terms and fields
- In-memory filters
- TTL-bounded index cache
"""

import asyncio

import pytest

from bm25.bm25_searcher import BM25Searcher
from bm25.index_cache import KeywordIndexCache
from embedder.catalog import StaticCatalog
from hybrid_search.models import SearchFilters

from conftest import make_product


class TestBM25Indexer:
    """Index construction."""

    def test_empty_catalog_builds_empty_index(self, indexer):
        index = indexer.build([])
        assert index.is_empty
        assert len(index) == 0

    def test_builds_over_catalog(self, indexer, catalog_products):
        index = indexer.build(catalog_products)
        assert not index.is_empty
        assert len(index) == 2
        stats = indexer.get_index_stats(index)
        assert stats["total_documents"] == 2
        assert stats["vocabulary_size"] > 0

    def test_tokenize_drops_stop_words_and_short_tokens(self, indexer):
        raw_tokens = [raw for raw, _ in indexer.tokenize("The best Organic tea, on sale!")]
        assert raw_tokens == ["organic", "tea"]


class TestBM25Searcher:
    """Keyword scoring over an index snapshot."""

    def test_empty_index_matches_nothing(self, indexer):
        searcher = BM25Searcher(indexer)
        assert searcher.search("anything", indexer.build([])) == []

    def test_only_matching_products_returned(self, indexer, catalog_products):
        searcher = BM25Searcher(indexer)
        hits = searcher.search("organic turmeric", indexer.build(catalog_products))

        assert [hit.product_id for hit in hits] == [1]
        hit = hits[0]
        assert hit.source == "keyword"
        assert hit.matched_terms == ["organic", "turmeric"]
        assert "title" in hit.matched_fields
        assert hit.payload["name"] == "Organic Turmeric Powder"

    def test_scores_within_unit_range(self, indexer):
        products = [
            make_product(i, f"Herbal Tea Blend {i}", description="herbal tea " * i)
            for i in range(1, 6)
        ]
        hits = BM25Searcher(indexer).search("herbal tea", indexer.build(products), min_score=0.0)
        assert len(hits) == 5
        assert all(0.0 <= hit.score <= 1.0 for hit in hits)

    def test_full_coverage_ranks_above_partial(self, indexer):
        products = [
            make_product(1, "Ginger Root"),
            make_product(2, "Ginger Lemon Tea"),
        ]
        hits = BM25Searcher(indexer).search("ginger tea", indexer.build(products))
        assert [hit.product_id for hit in hits] == [2, 1]
        assert hits[0].score > hits[1].score

    def test_filters_applied(self, indexer, catalog_products):
        searcher = BM25Searcher(indexer)
        index = indexer.build(catalog_products)

        assert searcher.search("rice", index, filters=SearchFilters(categories=("Spices",))) == []
        hits = searcher.search("rice", index, filters=SearchFilters(categories=("rice",)))
        assert [hit.product_id for hit in hits] == [2]
        assert searcher.search("rice", index, filters=SearchFilters(max_price=3.0)) == []

    def test_stop_word_query_matches_nothing(self, indexer, catalog_products):
        assert BM25Searcher(indexer).search("the and", indexer.build(catalog_products)) == []

    def test_top_k(self, indexer):
        products = [make_product(i, f"Green Tea {i}") for i in range(1, 11)]
        hits = BM25Searcher(indexer).search("green tea", indexer.build(products), top_k=3)
        assert [hit.product_id for hit in hits] == [1, 2, 3]


class CountingCatalog(StaticCatalog):
    def __init__(self, products):
        super().__init__(products)
        self.loads = 0

    async def get_all_products(self, page_size=None):
        self.loads += 1
        await asyncio.sleep(0.01)
        return await super().get_all_products(page_size)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestKeywordIndexCache:
    """TTL-bounded index rebuilds."""

    @pytest.mark.asyncio
    async def test_reuses_index_within_ttl(self, indexer, catalog_products):
        clock = FakeClock()
        catalog = CountingCatalog(catalog_products)
        cache = KeywordIndexCache(catalog, indexer, ttl=300, clock=clock)

        first = await cache.get_index()
        clock.now += 299
        second = await cache.get_index()

        assert first is second
        assert catalog.loads == 1
        assert cache.rebuild_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_build_runs_once(self, indexer, catalog_products):
        catalog = CountingCatalog(catalog_products)
        cache = KeywordIndexCache(catalog, indexer, ttl=300)

        first, second = await asyncio.gather(cache.get_index(), cache.get_index())

        assert first is second
        assert catalog.loads == 1

    @pytest.mark.asyncio
    async def test_stale_index_served_during_rebuild(self, indexer, catalog_products, turmeric):
        clock = FakeClock()
        catalog = CountingCatalog([turmeric])
        cache = KeywordIndexCache(catalog, indexer, ttl=300, clock=clock)

        stale = await cache.get_index()
        catalog.products = catalog_products
        clock.now += 301

        served = await cache.get_index()
        assert served is stale

        await cache._rebuild_task
        fresh = await cache.get_index()
        assert fresh is not stale
        assert len(fresh) == 2
        assert cache.rebuild_count == 2

    @pytest.mark.asyncio
    async def test_close_cancels_pending_rebuild(self, indexer, catalog_products):
        clock = FakeClock()
        cache = KeywordIndexCache(CountingCatalog(catalog_products), indexer, ttl=300, clock=clock)

        await cache.get_index()
        clock.now += 301
        await cache.get_index()
        await cache.close()

        assert cache._rebuild_task.done()
