"""
Semantic Search implementation using Qdrant vector store
Embeds the query and returns per-product similarity hits
"""

import logging
from typing import List, Dict, Optional

from hybrid_search.models import RetrievalHit, SearchFilters


class SemanticSearcher:
    """
    Semantic branch of the hybrid engine

    Embedding errors propagate unchanged so callers can tell an unavailable
    embedding service apart from an unavailable vector index.
    """

    def __init__(self, embedder, vector_store):
        """
        Args:
            embedder: object exposing async aembed_query(text) -> vector
            vector_store: object exposing async search(vector, top_k, filters)
        """
        self.embedder = embedder
        self.vector_store = vector_store
        self.logger = logging.getLogger(__name__)

    async def embed(self, query: str) -> List[float]:
        return await self.embedder.aembed_query(query)

    async def search_vector(
        self,
        query_vector: List[float],
        top_k: int = 40,
        filters: Optional[SearchFilters] = None,
        min_score: float = 0.3
    ) -> List[RetrievalHit]:
        """
        Nearest-neighbor search for an already embedded query

        Cosine scores are clamped into [0, 1]. Several chunks of the same
        product collapse into one hit carrying the best chunk score.
        """
        raw_hits = await self.vector_store.search(query_vector, top_k, filters)

        best: Dict[int, RetrievalHit] = {}
        for raw in raw_hits:
            payload = raw.get("payload") or {}
            product_id = payload.get("product_id", raw.get("id"))
            if product_id is None:
                continue
            product_id = int(product_id)

            score = min(max(float(raw.get("score", 0.0)), 0.0), 1.0)
            if score < min_score:
                continue

            current = best.get(product_id)
            if current is None or score > current.score:
                best[product_id] = RetrievalHit(
                    product_id=product_id,
                    score=score,
                    source="semantic",
                    payload=payload,
                )

        hits = sorted(best.values(), key=lambda h: (-h.score, h.product_id))
        self.logger.info(f"Found {len(hits)} semantic results")
        return hits

    async def search(
        self,
        query: str,
        top_k: int = 40,
        filters: Optional[SearchFilters] = None,
        min_score: float = 0.3
    ) -> List[RetrievalHit]:
        if not query.strip():
            raise ValueError("Query cannot be empty")

        self.logger.info(f"Semantic search for: '{query}' (top_k={top_k})")
        query_vector = await self.embed(query)
        return await self.search_vector(query_vector, top_k, filters, min_score)

    @staticmethod
    def score_to_relevance(score: float) -> str:
        """Convert similarity score to human-readable relevance"""
        if score >= 0.9:
            return "Excellent"
        elif score >= 0.8:
            return "Very Good"
        elif score >= 0.7:
            return "Good"
        elif score >= 0.6:
            return "Fair"
        elif score >= 0.5:
            return "Poor"
        else:
            return "Very Poor"
