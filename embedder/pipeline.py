"""
Embedding Pipeline for hybrid product search
Orchestrates loading the catalog, enriching and chunking product text,
embedding the chunks and storing them in Qdrant
"""

import asyncio
from typing import Dict, Any, List
from tqdm import tqdm
import logging
import time

from hybrid_search.models import Product
from .config import EmbedderConfig
from .text_enrichment import semantic_chunking


class EmbeddingPipeline:
    """
    Index-time pipeline: catalog -> enriched text -> chunks -> vectors -> Qdrant
    A product that fails is logged and counted; the run continues
    """

    def __init__(self, config: EmbedderConfig, catalog, embedder, vector_store):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.catalog = catalog
        self.embedder = embedder
        self.vector_store = vector_store

    def prepare_chunks(self, product: Product) -> List[str]:
        """Enriched text of a product split into embedding-sized chunks"""
        text = self.embedder.create_product_text(product)
        return semantic_chunking(text, self.config.max_chunk_size)

    async def process_product(self, product: Product) -> int:
        """
        Embed and store one product

        Returns:
            Number of chunk points written
        """
        chunks = self.prepare_chunks(product)
        if not chunks:
            self.logger.warning(f"No indexable text for product {product.id}")
            return 0

        embeddings = await asyncio.to_thread(self.embedder.embed_texts, chunks)
        return await self.vector_store.upsert_chunks(product, chunks, embeddings)

    async def run(self, force_recreate_collection: bool = False) -> Dict[str, Any]:
        """
        Run the complete indexing pipeline

        Args:
            force_recreate_collection: Whether to recreate the Qdrant collection

        Returns:
            Pipeline execution statistics
        """
        start_time = time.time()
        stats = {
            "products_loaded": 0,
            "products_indexed": 0,
            "products_failed": 0,
            "chunks_written": 0,
            "errors": []
        }

        self.logger.info("Setting up Qdrant collection...")
        await self.vector_store.create_collection(force_recreate_collection)

        products = await self.catalog.get_all_products(self.config.catalog_page_size)
        stats["products_loaded"] = len(products)
        self.logger.info(f"Loaded {len(products)} products from catalog")

        for product in tqdm(products, desc="Indexing products", unit="product"):
            try:
                stats["chunks_written"] += await self.process_product(product)
                stats["products_indexed"] += 1
            except Exception as e:
                self.logger.error(f"Failed to index product {product.id}: {e}")
                stats["products_failed"] += 1
                stats["errors"].append(f"{product.id}: {e}")

        stats["duration_seconds"] = time.time() - start_time

        self.logger.info("=== PIPELINE COMPLETE ===")
        self.logger.info(f"Products loaded: {stats['products_loaded']}")
        self.logger.info(f"Products indexed: {stats['products_indexed']}")
        self.logger.info(f"Products failed: {stats['products_failed']}")
        self.logger.info(f"Chunks written: {stats['chunks_written']}")
        self.logger.info(f"Duration: {stats['duration_seconds']:.2f} seconds")

        return stats
