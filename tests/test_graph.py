"""
Tests for the Memgraph relationship store and query expansion

The neo4j driver is replaced by a small in-memory stand-in; no Bolt
connection is ever opened.
"""

import asyncio

import pytest
from neo4j.exceptions import ServiceUnavailable

from graph.relationship_store import RelationshipStore, ProductSignals
from hybrid_search.query_expansion import QueryExpander

from conftest import FakeRelationshipStore


class FakeResult:
    def __init__(self, records):
        self.records = records

    async def data(self):
        return self.records


class FakeSession:
    def __init__(self, driver):
        self.driver = driver

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def run(self, query, params):
        self.driver.queries.append((query, params))
        if self.driver.delay:
            await asyncio.sleep(self.driver.delay)
        if self.driver.error is not None:
            raise self.driver.error
        return FakeResult(self.driver.records)


class FakeDriver:
    def __init__(self, records=None, error=None, delay=0.0):
        self.records = records or []
        self.error = error
        self.delay = delay
        self.queries = []
        self.closed = False

    def session(self):
        return FakeSession(self)

    async def close(self):
        self.closed = True


def make_store(driver, timeout=1.0):
    return RelationshipStore("bolt://localhost:7687", query_timeout=timeout, driver=driver)


class TestRelationshipStore:
    """Failure-tolerant graph lookups."""

    @pytest.mark.asyncio
    async def test_related_categories(self):
        driver = FakeDriver(records=[
            {"relatedCategory": "Herbs"},
            {"relatedCategory": "Tea"},
            {"relatedCategory": None},
        ])
        names = await make_store(driver).related_categories("Spices")

        assert names == ["Herbs", "Tea"]
        _, params = driver.queries[0]
        assert params == {"query": "spices", "limit": 5}

    @pytest.mark.asyncio
    async def test_related_categories_driver_error_is_empty(self):
        driver = FakeDriver(error=ServiceUnavailable("connection refused"))
        assert await make_store(driver).related_categories("spices") == []

    @pytest.mark.asyncio
    async def test_timeout_is_empty(self):
        driver = FakeDriver(records=[{"relatedCategory": "Herbs"}], delay=0.5)
        assert await make_store(driver, timeout=0.01).related_categories("spices") == []

    @pytest.mark.asyncio
    async def test_product_signals(self):
        driver = FakeDriver(records=[{
            "pageRank": 0.42,
            "categories": ["spices", "organic"],
            "benefits": ["anti-inflammatory"],
            "brands": [],
        }])
        signals = await make_store(driver).product_signals(1)

        assert signals == ProductSignals(
            categories=["spices", "organic"],
            benefits=["anti-inflammatory"],
            brands=[],
            importance=0.42,
        )
        assert signals.labels == ["spices", "organic", "anti-inflammatory"]
        assert driver.queries[0][1] == {"productId": 1}

    @pytest.mark.asyncio
    async def test_product_signals_missing_product(self):
        signals = await make_store(FakeDriver(records=[])).product_signals(99)
        assert signals == ProductSignals()

    @pytest.mark.asyncio
    async def test_product_signals_error_is_empty(self):
        driver = FakeDriver(error=ServiceUnavailable("connection refused"))
        signals = await make_store(driver).product_signals(1)
        assert signals.importance == 0.0
        assert signals.labels == []

    @pytest.mark.asyncio
    async def test_close(self):
        driver = FakeDriver()
        await make_store(driver).close()
        assert driver.closed


class TestQueryExpander:
    """Synonym and graph-based expansion."""

    @pytest.mark.asyncio
    async def test_organic_synonyms(self):
        expansion = await QueryExpander().expand("organic rice")

        assert expansion.original == "organic rice"
        assert set(expansion.synonyms) >= {"natural", "pure", "bio", "ecological"}
        assert expansion.expanded_terms == ()

    @pytest.mark.asyncio
    async def test_synonyms_deduplicated(self):
        expansion = await QueryExpander().expand("health energy")
        assert expansion.synonyms.count("vitality") == 1

    @pytest.mark.asyncio
    async def test_graph_terms_included(self):
        store = FakeRelationshipStore(related=["Herbs", "Tea", "Herbs"])
        expansion = await QueryExpander(store).expand("spice")

        assert expansion.expanded_terms == ("Herbs", "Tea")
        assert expansion.expanded_query == "spice Herbs Tea seasoning condiment flavoring"

    @pytest.mark.asyncio
    async def test_graph_failure_yields_no_terms(self):
        expansion = await QueryExpander(FakeRelationshipStore(fail=True)).expand("organic tea")

        assert expansion.expanded_terms == ()
        assert "infusion" in expansion.synonyms

    @pytest.mark.asyncio
    async def test_unknown_terms_unchanged(self):
        expansion = await QueryExpander().expand("plain rice")
        assert expansion.synonyms == ()
        assert expansion.expanded_query.split() == ["plain", "rice"]

    @pytest.mark.asyncio
    async def test_to_dict(self):
        expansion = await QueryExpander().expand("honey")
        assert expansion.to_dict() == {
            "original": "honey",
            "expanded": [],
            "synonyms": ["nectar", "sweetener", "bee product"],
        }
