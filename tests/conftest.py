"""Pytest fixtures and in-memory fakes for the hybrid search tests."""

import asyncio
from typing import Dict, List, Optional

import pytest

from bm25.bm25_indexer import BM25Indexer
from bm25.bm25_searcher import BM25Searcher
from bm25.index_cache import KeywordIndexCache
from embedder.catalog import StaticCatalog
from embedder.text_enrichment import enrich_text
from graph.relationship_store import ProductSignals
from hybrid_search.errors import EmbeddingError
from hybrid_search.fusion_strategies import WeightedFusion
from hybrid_search.hybrid_searcher import HybridSearcher
from hybrid_search.models import Product, SearchFilters
from hybrid_search.orchestrator import RetrievalOrchestrator
from hybrid_search.query_expansion import QueryExpander
from hybrid_search.result_cache import ResultCache
from semantic_search.searcher import SemanticSearcher


class FakeEmbedder:
    """Deterministic embedder; optionally fails like an unreachable model server."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def aembed_query(self, query: str) -> List[float]:
        self.calls += 1
        if self.fail:
            raise EmbeddingError("model server unavailable")
        return [float(len(query)), 1.0]

    def create_product_text(self, product: Product) -> str:
        return enrich_text(product.name, product.description, categories=product.categories)

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        return [[float(len(t)), 1.0] for t in texts]


class FakeVectorStore:
    """
    Vector index returning fixed per-product similarities

    Products without a configured score are never returned.
    """

    def __init__(self, products: List[Product], scores: Dict[int, float], fail: bool = False):
        self.products = {p.id: p for p in products}
        self.scores = scores
        self.fail = fail
        self.calls = 0
        self.upserted: Dict[int, int] = {}
        self.failing_upserts = set()

    async def search(self, query_vector, top_k: int = 50, filters: Optional[SearchFilters] = None):
        self.calls += 1
        if self.fail:
            raise ConnectionError("qdrant unreachable")

        hits = []
        for product_id, score in self.scores.items():
            product = self.products[product_id]
            if filters is not None and not filters.matches(product):
                continue
            hits.append({"id": f"point-{product_id}", "score": score, "payload": product.to_payload()})

        hits.sort(key=lambda h: (-h["score"], h["payload"]["product_id"]))
        return hits[:top_k]

    async def create_collection(self, force_recreate: bool = False) -> bool:
        return True

    async def upsert_chunks(self, product: Product, chunks, embeddings) -> int:
        if product.id in self.failing_upserts:
            raise ConnectionError("upsert rejected")
        self.upserted[product.id] = len(chunks)
        return len(chunks)

    async def close(self):
        pass


class FakeRelationshipStore:
    """Relationship store backed by dicts, tracking lookup concurrency."""

    def __init__(
        self,
        signals: Optional[Dict[int, ProductSignals]] = None,
        related: Optional[List[str]] = None,
        fail: bool = False,
        delay: float = 0.0
    ):
        self.signals = signals or {}
        self.related = related or []
        self.fail = fail
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.lookups = 0

    async def related_categories(self, query: str, limit: int = 5) -> List[str]:
        if self.fail:
            raise RuntimeError("graph down")
        return self.related[:limit]

    async def product_signals(self, product_id: int) -> ProductSignals:
        self.lookups += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.fail:
                raise RuntimeError("graph down")
            return self.signals.get(product_id, ProductSignals())
        finally:
            self.in_flight -= 1

    async def close(self):
        pass


def make_product(product_id: int, name: str, **kwargs) -> Product:
    return Product(id=product_id, name=name, slug=name.lower().replace(" ", "-"), **kwargs)


@pytest.fixture
def turmeric():
    return make_product(
        1,
        "Organic Turmeric Powder",
        price=12.5,
        description="Ground organic turmeric root, rich in curcumin.",
        categories=["Spices"],
        tags=["organic"],
        brand="Golden Farm",
        average_rating=4.8,
        review_count=50,
    )


@pytest.fixture
def rice():
    return make_product(
        2,
        "Plain Rice",
        price=4.0,
        description="Long grain white rice.",
        categories=["Rice"],
        brand="Paddy Co",
        average_rating=3.0,
        review_count=2,
    )


@pytest.fixture
def catalog_products(turmeric, rice):
    return [turmeric, rice]


@pytest.fixture
def indexer():
    return BM25Indexer()


def build_searcher(
    products: List[Product],
    scores: Dict[int, float],
    embedder: Optional[FakeEmbedder] = None,
    vector_store: Optional[FakeVectorStore] = None,
    relationship_store: Optional[FakeRelationshipStore] = None,
    indexer: Optional[BM25Indexer] = None,
    branch_timeout: float = 5.0,
    candidate_pool: int = 100
) -> HybridSearcher:
    """HybridSearcher wired to in-memory fakes."""
    indexer = indexer or BM25Indexer()
    embedder = embedder or FakeEmbedder()
    vector_store = vector_store or FakeVectorStore(products, scores)

    orchestrator = RetrievalOrchestrator(
        semantic_searcher=SemanticSearcher(embedder, vector_store),
        keyword_cache=KeywordIndexCache(StaticCatalog(products), indexer, ttl=300),
        bm25_searcher=BM25Searcher(indexer),
        branch_timeout=branch_timeout,
        candidate_pool=candidate_pool,
    )
    return HybridSearcher(
        orchestrator=orchestrator,
        fusion=WeightedFusion(relationship_store, graph_concurrency=4),
        expander=QueryExpander(relationship_store),
        result_cache=ResultCache(ttl=300, max_size=50),
    )
