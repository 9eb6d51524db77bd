"""
Product Embedder for hybrid product search
Embeds enriched product text and search queries with a sentence-transformers model
"""

import asyncio
from typing import List
import torch
import numpy as np
from sentence_transformers import SentenceTransformer
from hybrid_search.errors import EmbeddingError
from hybrid_search.models import Product
from .config import EmbedderConfig
from .text_enrichment import enrich_text, preprocess_text
import logging


class ProductEmbedder:
    """
    Specialized embedder for catalog products
    Creates normalized embeddings from enriched product text
    """

    def __init__(self, config: EmbedderConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

        # Initialize device
        if config.device == "auto":
            if torch.cuda.is_available():
                self.device = "cuda"
            elif torch.backends.mps.is_available():
                self.device = "mps"
            else:
                self.device = "cpu"
        else:
            self.device = config.device

        self.logger.info(f"Using device: {self.device}")

        self.model = SentenceTransformer(
            config.embedding_model,
            device=self.device
        )
        self.model.max_seq_length = config.max_sequence_length

        # Verify embedding dimensions
        actual_dim = self.model.get_sentence_embedding_dimension()
        if actual_dim and actual_dim != config.embedding_dimension:
            self.logger.warning(
                f"Model dimension {actual_dim} doesn't match config {config.embedding_dimension}"
            )
            self.config.embedding_dimension = actual_dim

        self.logger.info(f"Loaded {config.embedding_model} with dimension {self.config.embedding_dimension}")

    def create_product_text(self, product: Product) -> str:
        """Enriched text representation of a product"""
        return enrich_text(
            product.name,
            product.description,
            categories=product.categories,
            attributes=product.attributes,
            tags=product.tags,
            benefits=product.benefits,
        )

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """
        Embed a list of texts in batches

        Raises:
            EmbeddingError: if the model fails on any batch
        """
        embeddings: List[List[float]] = []
        batch_size = self.config.batch_size

        for i in range(0, len(texts), batch_size):
            batch = [preprocess_text(t) for t in texts[i:i + batch_size]]

            try:
                batch_embeddings = self.model.encode(
                    batch,
                    convert_to_tensor=True,
                    show_progress_bar=False,
                    batch_size=len(batch)
                )
            except Exception as e:
                self.logger.error(f"Error embedding batch {i // batch_size}: {e}")
                raise EmbeddingError(str(e)) from e

            if isinstance(batch_embeddings, torch.Tensor):
                batch_embeddings = batch_embeddings.cpu().numpy()

            # Normalize embeddings for cosine similarity
            norms = np.linalg.norm(batch_embeddings, axis=1, keepdims=True)
            batch_embeddings = batch_embeddings / np.maximum(norms, 1e-8)

            embeddings.extend(batch_embeddings.tolist())

        return embeddings

    def embed_query(self, query: str) -> List[float]:
        """
        Create embedding for a search query

        Raises:
            EmbeddingError: if the model cannot encode the query
        """
        try:
            embedding = self.model.encode(
                preprocess_text(query),
                convert_to_tensor=True,
                show_progress_bar=False
            )
        except Exception as e:
            self.logger.error(f"Error embedding query '{query}': {e}")
            raise EmbeddingError(str(e)) from e

        if isinstance(embedding, torch.Tensor):
            embedding = embedding.cpu().numpy()

        norm = np.linalg.norm(embedding)
        if norm > 1e-8:
            embedding = embedding / norm

        return embedding.tolist()

    async def aembed_query(self, query: str) -> List[float]:
        """Run embed_query off the event loop"""
        return await asyncio.to_thread(self.embed_query, query)

