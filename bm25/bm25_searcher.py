"""
BM25 Searcher for product keyword search
Scores a query against a keyword index snapshot and applies in-memory filters
"""

import logging
from typing import List, Optional, Dict

from hybrid_search.models import RetrievalHit, SearchFilters
from .bm25_indexer import BM25Indexer, KeywordIndex, INDEXED_FIELDS


class BM25Searcher:
    """
    Keyword search over a KeywordIndex

    The keyword score blends term coverage (share of distinct query terms the
    product contains) with the BM25 score relative to the best candidate, so it
    always lies in [0, 1]. Products matching no query term are never returned.
    """

    def __init__(self, indexer: BM25Indexer):
        self.indexer = indexer
        self.logger = logging.getLogger(__name__)

    def search(
        self,
        query: str,
        index: KeywordIndex,
        filters: Optional[SearchFilters] = None,
        min_score: float = 0.1,
        top_k: Optional[int] = None
    ) -> List[RetrievalHit]:
        if index.is_empty or not query.strip():
            return []

        # Distinct stems, each remembering the first raw word it came from
        raw_by_stem: Dict[str, str] = {}
        for raw, stem in self.indexer.tokenize(query):
            raw_by_stem.setdefault(stem, raw)

        if not raw_by_stem:
            self.logger.warning(f"No valid tokens in query: '{query}'")
            return []

        query_stems = list(raw_by_stem)
        scores = index.bm25.get_scores(query_stems)

        candidates = []
        for idx, product in enumerate(index.products):
            if filters is not None and not filters.matches(product):
                continue
            matched = [stem for stem in query_stems if stem in index.doc_tokens[idx]]
            if matched:
                candidates.append((idx, matched, max(float(scores[idx]), 0.0)))

        if not candidates:
            return []

        max_bm25 = max(score for _, _, score in candidates)

        hits = []
        for idx, matched, bm25_score in candidates:
            coverage = len(matched) / len(query_stems)
            relative = bm25_score / max_bm25 if max_bm25 > 0 else 0.0
            score = 0.5 * coverage + 0.5 * relative

            if score < min_score:
                continue

            product = index.products[idx]
            fields = index.field_tokens[idx]
            hits.append(RetrievalHit(
                product_id=product.id,
                score=min(score, 1.0),
                source="keyword",
                payload=product.to_payload(),
                matched_terms=[raw_by_stem[stem] for stem in matched],
                matched_fields=[name for name in INDEXED_FIELDS if any(s in fields[name] for s in matched)],
            ))

        hits.sort(key=lambda h: (-h.score, h.product_id))
        if top_k is not None:
            hits = hits[:top_k]

        self.logger.info(f"Found {len(hits)} keyword results")
        return hits
