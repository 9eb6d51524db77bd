"""
Error types for the hybrid search engine
"""

from typing import Optional


class SearchError(Exception):
    """Base class for all search engine errors"""


class EmbeddingError(SearchError):
    """Raised when the embedding service cannot produce a query vector"""


class BranchError(SearchError):
    """A single retrieval branch failed or timed out"""

    def __init__(self, branch: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{branch} branch failed: {message}")
        self.branch = branch
        self.cause = cause


class SearchUnavailableError(SearchError):
    """
    Raised to the caller when no retrieval branch can run at all.
    Only happens in semantic_only mode when the embedding service is down.
    """
