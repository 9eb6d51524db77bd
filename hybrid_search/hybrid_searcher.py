"""
Hybrid Search Engine for E-commerce Products
Combines semantic search (dense vectors), BM25 keyword search and graph signals
using weighted multi-signal re-ranking
"""

import dataclasses
import logging
import time
from typing import List, Dict, Any, Optional, Sequence

from .errors import SearchUnavailableError
from .facets import build_facets
from .fusion_strategies import WeightedFusion
from .models import FusedResult, SearchMode, SearchOptions, SearchResponse
from .orchestrator import RetrievalOrchestrator
from .query_expansion import QueryExpander
from .result_cache import ResultCache, CacheJanitor, make_cache_key


class HybridSearcher:
    """
    Top-level search entry point

    Pipeline: result cache -> query expansion -> concurrent retrieval ->
    fusion and re-ranking -> facets -> pagination.
    """

    def __init__(
        self,
        orchestrator: RetrievalOrchestrator,
        fusion: Optional[WeightedFusion] = None,
        expander: Optional[QueryExpander] = None,
        result_cache: Optional[ResultCache] = None,
        janitor: Optional[CacheJanitor] = None,
        resources: Optional[List[Any]] = None
    ):
        """
        Initialize hybrid searcher

        Args:
            orchestrator: Runs the retrieval branches
            fusion: Fusion strategy (default: WeightedFusion without graph)
            expander: Query expander (default: table synonyms only)
            result_cache: Cache of full responses (default: 300s TTL, 500 entries)
            janitor: Background purger for the result cache, optional
            resources: Objects with an async close(), closed on shutdown
        """
        self.orchestrator = orchestrator
        self.fusion = fusion or WeightedFusion()
        self.expander = expander or QueryExpander()
        self.result_cache = result_cache if result_cache is not None else ResultCache()
        self.janitor = janitor
        self.resources = resources or []
        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config) -> 'HybridSearcher':
        """Wire the production collaborators from an EmbedderConfig"""
        from bm25.bm25_indexer import BM25Indexer
        from bm25.bm25_searcher import BM25Searcher
        from bm25.index_cache import KeywordIndexCache
        from embedder.catalog import WooCommerceCatalog
        from embedder.product_embedder import ProductEmbedder
        from embedder.qdrant_store import QdrantVectorStore
        from graph.relationship_store import RelationshipStore
        from semantic_search.searcher import SemanticSearcher

        vector_store = QdrantVectorStore(config)
        catalog = WooCommerceCatalog(config)
        indexer = BM25Indexer()
        keyword_cache = KeywordIndexCache(
            catalog,
            indexer,
            ttl=config.keyword_index_ttl,
            page_size=config.catalog_page_size,
        )
        relationship_store = RelationshipStore.from_config(config)

        orchestrator = RetrievalOrchestrator(
            semantic_searcher=SemanticSearcher(ProductEmbedder(config), vector_store),
            keyword_cache=keyword_cache,
            bm25_searcher=BM25Searcher(indexer),
            semantic_min_score=config.semantic_min_score,
            keyword_min_score=config.keyword_min_score,
            branch_timeout=config.branch_timeout,
            candidate_pool=config.candidate_pool,
        )

        result_cache = ResultCache(ttl=config.result_cache_ttl, max_size=config.result_cache_size)

        return cls(
            orchestrator=orchestrator,
            fusion=WeightedFusion(relationship_store, graph_concurrency=config.graph_concurrency),
            expander=QueryExpander(relationship_store),
            result_cache=result_cache,
            janitor=CacheJanitor(result_cache, interval=config.cache_cleanup_interval),
            resources=[keyword_cache, vector_store, catalog, relationship_store],
        )

    async def start(self):
        if self.janitor is not None:
            self.janitor.start()

    async def close(self):
        if self.janitor is not None:
            await self.janitor.stop()
        for resource in self.resources:
            try:
                await resource.close()
            except Exception as e:
                self.logger.warning(f"Failed to close {type(resource).__name__}: {e}")

    async def __aenter__(self) -> 'HybridSearcher':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> SearchResponse:
        """
        Perform a hybrid search

        Args:
            query: Search query string
            options: Mode, filters, weights, pagination and facet flags

        Returns:
            SearchResponse with the requested page of results. Backend
            failures degrade to fewer or no results.

        Raises:
            SearchUnavailableError: semantic_only mode and the embedding
                service failed
        """
        start_time = time.perf_counter()
        options = options or SearchOptions()
        query = query.strip()

        if not query:
            return SearchResponse(execution_time_ms=self._elapsed_ms(start_time))

        key = make_cache_key(query, options)
        cached = self.result_cache.get(key)
        if cached is not None:
            return dataclasses.replace(cached, cached=True, execution_time_ms=self._elapsed_ms(start_time))

        try:
            response, degraded = await self._run_pipeline(query, options, start_time)
        except SearchUnavailableError:
            raise
        except Exception as e:
            self.logger.error(f"Search failed for '{query}': {e}")
            return SearchResponse(execution_time_ms=self._elapsed_ms(start_time))

        if not degraded:
            self.result_cache.set(key, response)

        self.logger.info(
            f"Search '{query}' returned {len(response.results)} of {response.total_count} "
            f"results in {response.execution_time_ms:.1f}ms"
        )
        return response

    async def _run_pipeline(self, query: str, options: SearchOptions, start_time: float):
        expansion = None
        retrieval_query = query
        if options.expand_query:
            expansion = await self.expander.expand(query, options.expansion_depth)
            retrieval_query = " ".join(expansion.expanded_query.split())

        outcome = await self.orchestrator.retrieve(retrieval_query, options)

        if outcome.embedding_failed and options.mode is SearchMode.SEMANTIC_ONLY:
            raise SearchUnavailableError("Embedding service unavailable for semantic_only search")

        if outcome.all_failed:
            self.logger.error(f"All retrieval branches failed for '{query}'")
            response = SearchResponse(
                execution_time_ms=self._elapsed_ms(start_time),
                query_expansion=expansion,
            )
            return response, True

        fused = await self.fusion.fuse(
            outcome.semantic_hits,
            outcome.keyword_hits,
            query=retrieval_query,
            weights=options.resolved_weights(),
            use_graph=options.use_graph,
        )

        facets = build_facets(fused) if options.include_facets else None
        page = fused[options.offset:options.offset + options.limit]

        response = SearchResponse(
            results=tuple(page),
            total_count=len(fused),
            execution_time_ms=self._elapsed_ms(start_time),
            facets=facets,
            query_expansion=expansion,
        )
        return response, outcome.degraded

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000

    def get_search_stats(self, response: SearchResponse) -> Dict[str, Any]:
        """Fusion statistics for one page of results plus cache statistics"""
        return {
            **self.fusion.get_fusion_stats(response.results),
            "total_count": response.total_count,
            "execution_time_ms": response.execution_time_ms,
            "cached": response.cached,
            "cache": self.result_cache.stats(),
        }

    @staticmethod
    def format_results_for_display(results: Sequence[FusedResult]) -> str:
        """
        Format fused results for display

        Args:
            results: One page of fused results

        Returns:
            Formatted string for display
        """
        if not results:
            return "No results found."

        output = []
        output.append(f"\nFound {len(results)} hybrid search results:\n")
        output.append("=" * 80)

        for rank, result in enumerate(results, 1):
            output.append(f"\n#{rank} - {result.name} (score: {result.final_score:.4f}) [{result.match_type.upper()}]")
            output.append("-" * 40)
            output.append(f"Categories: {', '.join(result.categories) or 'Unknown'}")
            output.append(f"Brand: {result.brand or 'Unknown'}")

            if result.price == 0:
                output.append("Price: Price not available")
            else:
                output.append(f"Price: ${result.price:.2f}")

            output.append(
                f"Scores: semantic {result.semantic_score:.3f}, keyword {result.keyword_score:.3f}, "
                f"graph {result.graph_score:.3f}, popularity {result.popularity_score:.3f}"
            )
            if result.explanation:
                output.append(f"Why: {result.explanation}")

        output.append("\n" + "=" * 80)
        return "\n".join(output)
