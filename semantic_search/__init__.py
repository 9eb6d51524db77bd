"""
Semantic Search Module for Hybrid Search
Performs semantic search queries against the Qdrant vector store
"""

from .searcher import SemanticSearcher

__all__ = ['SemanticSearcher']
