"""
BM25 Keyword Search Module for Hybrid Search System
Provides keyword-based search over an in-memory, TTL-refreshed catalog index
"""

from .bm25_searcher import BM25Searcher
from .bm25_indexer import BM25Indexer, KeywordIndex
from .index_cache import KeywordIndexCache

__all__ = [
    "BM25Searcher",
    "BM25Indexer",
    "KeywordIndex",
    "KeywordIndexCache"
]
