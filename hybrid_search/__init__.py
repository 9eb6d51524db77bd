"""
Hybrid Search Module for E-commerce Product Search
Combines semantic search (dense vectors), BM25 keyword search and graph signals
using weighted multi-signal re-ranking
"""

from .hybrid_searcher import HybridSearcher
from .fusion_strategies import WeightedFusion
from .models import SearchMode, SearchOptions, SearchFilters, SearchResponse, RankingWeights
from .errors import SearchError, SearchUnavailableError

__all__ = [
    "HybridSearcher",
    "WeightedFusion",
    "SearchMode",
    "SearchOptions",
    "SearchFilters",
    "SearchResponse",
    "RankingWeights",
    "SearchError",
    "SearchUnavailableError"
]
