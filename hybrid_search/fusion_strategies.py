"""
Fusion Strategies for Hybrid Search
Weighted multi-signal fusion of semantic, keyword, graph and popularity scores
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Iterable

from .models import FusedResult, RankingWeights, RetrievalHit, HYBRID_WEIGHTS


@dataclass
class FusionCandidate:
    """
    A product being fused; component scores stay None until a branch sets them
    """

    product_id: int
    payload: Dict[str, Any] = field(default_factory=dict)
    semantic_score: Optional[float] = None
    keyword_score: Optional[float] = None
    matched_terms: List[str] = field(default_factory=list)

    @property
    def match_type(self) -> str:
        if self.semantic_score is not None and self.keyword_score is not None:
            return "hybrid"
        if self.semantic_score is not None:
            return "semantic"
        return "keyword"


def _unit(value: float) -> float:
    return min(max(value, 0.0), 1.0)


class WeightedFusion:
    """
    Weighted linear fusion with optional graph relevance

    finalScore = ws*semantic + wk*keyword + wg*graph + wp*popularity, where a
    component missing for a product counts as 0.
    """

    def __init__(self, relationship_store=None, graph_concurrency: int = 8):
        """
        Args:
            relationship_store: Source of per-product graph signals, optional
            graph_concurrency: Max in-flight graph lookups per fusion
        """
        self.relationship_store = relationship_store
        self.graph_concurrency = max(1, graph_concurrency)
        self.logger = logging.getLogger(__name__)

    def merge(
        self,
        semantic_hits: Iterable[RetrievalHit],
        keyword_hits: Iterable[RetrievalHit]
    ) -> Dict[int, FusionCandidate]:
        """Merge branch hits by product id, one candidate per product"""
        candidates: Dict[int, FusionCandidate] = {}

        for hit in semantic_hits:
            candidate = candidates.setdefault(hit.product_id, FusionCandidate(hit.product_id))
            candidate.semantic_score = max(hit.score, candidate.semantic_score or 0.0)
            candidate.payload = {**hit.payload, **candidate.payload}

        for hit in keyword_hits:
            candidate = candidates.setdefault(hit.product_id, FusionCandidate(hit.product_id))
            candidate.keyword_score = max(hit.score, candidate.keyword_score or 0.0)
            # Semantic payload wins for display fields
            candidate.payload = {**hit.payload, **candidate.payload}
            for term in hit.matched_terms:
                if term not in candidate.matched_terms:
                    candidate.matched_terms.append(term)

        return candidates

    @staticmethod
    def popularity_score(payload: Dict[str, Any]) -> float:
        """0.5*rating/5 + 0.3*log10(reviews+1)/3 + 0.2*featured, within [0, 1]"""
        rating = min(max(float(payload.get("average_rating") or 0.0), 0.0), 5.0)
        reviews = max(int(payload.get("review_count") or 0), 0)
        featured = 1.0 if payload.get("featured") else 0.0

        review_term = min(math.log10(reviews + 1) / 3, 1.0)
        return _unit(0.5 * (rating / 5) + 0.3 * review_term + 0.2 * featured)

    @staticmethod
    def graph_match_score(signals, query_terms: List[str]) -> float:
        """0.7 * share of query terms found in the product's graph labels + 0.3 * importance"""
        if signals is None:
            return 0.0

        labels = signals.labels
        matched = sum(1 for term in query_terms if any(term in label for label in labels))
        match_fraction = matched / max(len(query_terms), 1)
        return _unit(0.7 * match_fraction + 0.3 * _unit(signals.importance))

    async def graph_scores(self, product_ids: List[int], query_terms: List[str]) -> Dict[int, float]:
        """
        Graph relevance per product, looked up concurrently

        At most graph_concurrency lookups run at a time. Any failed lookup
        scores 0 for that product only.
        """
        if self.relationship_store is None or not product_ids:
            return {pid: 0.0 for pid in product_ids}

        semaphore = asyncio.Semaphore(self.graph_concurrency)

        async def score(product_id: int) -> float:
            async with semaphore:
                try:
                    signals = await self.relationship_store.product_signals(product_id)
                except Exception as e:
                    self.logger.warning(f"Graph score failed for product {product_id}: {e}")
                    return 0.0
            return self.graph_match_score(signals, query_terms)

        scores = await asyncio.gather(*(score(pid) for pid in product_ids))
        return dict(zip(product_ids, scores))

    @staticmethod
    def explain(
        semantic: float,
        keyword: float,
        graph: float,
        popularity: float,
        matched_terms: List[str]
    ) -> str:
        parts = []
        if semantic > 0.7:
            parts.append("High semantic relevance")
        if keyword > 0.5:
            parts.append(f"Matched keywords: {', '.join(matched_terms)}")
        if graph > 0.6:
            parts.append("Strong graph connections")
        if popularity > 0.8:
            parts.append("Popular product")
        return "; ".join(parts)

    async def fuse(
        self,
        semantic_hits: List[RetrievalHit],
        keyword_hits: List[RetrievalHit],
        query: str = "",
        weights: RankingWeights = HYBRID_WEIGHTS,
        use_graph: bool = False
    ) -> List[FusedResult]:
        """
        Fuse branch hits into one fully sorted list

        Args:
            semantic_hits: Hits from the semantic branch
            keyword_hits: Hits from the keyword branch
            query: Retrieval query, split into terms for graph matching
            weights: Component weights
            use_graph: Whether to look up graph relevance

        Returns:
            All candidates sorted by final score desc, product id asc
        """
        candidates = self.merge(semantic_hits, keyword_hits)
        if not candidates:
            return []

        graph = {}
        if use_graph:
            query_terms = list(dict.fromkeys(t for t in query.lower().split() if t))
            graph = await self.graph_scores(list(candidates), query_terms)

        results = []
        for product_id, candidate in candidates.items():
            payload = candidate.payload
            semantic = _unit(candidate.semantic_score or 0.0)
            keyword = _unit(candidate.keyword_score or 0.0)
            graph_score = graph.get(product_id, 0.0)
            popularity = self.popularity_score(payload)

            final = (
                weights.semantic * semantic
                + weights.keyword * keyword
                + weights.graph * graph_score
                + weights.popularity * popularity
            )

            results.append(FusedResult(
                product_id=product_id,
                name=payload.get("name") or "Unknown Product",
                slug=payload.get("slug") or "",
                price=float(payload.get("price") or 0.0),
                categories=tuple(payload.get("categories") or ()),
                brand=payload.get("brand") or "",
                average_rating=float(payload.get("average_rating") or 0.0),
                semantic_score=semantic,
                keyword_score=keyword,
                graph_score=graph_score,
                popularity_score=popularity,
                final_score=final,
                match_type=candidate.match_type,
                matched_terms=tuple(candidate.matched_terms),
                explanation=self.explain(semantic, keyword, graph_score, popularity, candidate.matched_terms),
            ))

        results.sort(key=lambda r: (-r.final_score, r.product_id))
        return results

    def get_fusion_stats(self, results: List[FusedResult]) -> Dict[str, Any]:
        """
        Summary of a fused result list

        Args:
            results: Output of fuse()

        Returns:
            Counts per match type and final score statistics
        """
        if not results:
            return {"total_results": 0}

        match_types = {"hybrid": 0, "semantic": 0, "keyword": 0}
        for result in results:
            match_types[result.match_type] = match_types.get(result.match_type, 0) + 1

        scores = [r.final_score for r in results]
        return {
            "total_results": len(results),
            "match_types": match_types,
            "consensus_rate": match_types["hybrid"] / len(results),
            "score_range": {
                "max": max(scores),
                "min": min(scores),
                "avg": sum(scores) / len(scores),
            },
            "graph_enabled": self.relationship_store is not None,
        }
