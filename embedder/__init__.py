"""
Hybrid Search Embedder Package
Handles text enrichment, embedding generation, catalog loading and Qdrant
vector store operations for storefront products

ProductEmbedder and EmbeddingPipeline are imported from their modules so that
importing the package does not load torch.
"""

from .config import EmbedderConfig

__all__ = ['EmbedderConfig']
