"""
Main script for running the product indexing pipeline
Loads the WooCommerce catalog, enriches and embeds products and stores them in Qdrant
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add the parent directory to sys.path to import sibling packages
sys.path.append(str(Path(__file__).parent.parent))

from embedder.catalog import WooCommerceCatalog
from embedder.config import EmbedderConfig
from embedder.pipeline import EmbeddingPipeline
from embedder.product_embedder import ProductEmbedder
from embedder.qdrant_store import QdrantVectorStore
from semantic_search.searcher import SemanticSearcher

# =============================================================================
# CONFIGURATION VARIABLES - MODIFY THESE AS NEEDED
# =============================================================================

# Mode selection: "index", "search", "stats"
MODE = "index"

FORCE_RECREATE = False  # Force recreate collection for index mode
SEARCH_QUERY = "organic turmeric"  # Search query for search mode

# Logging options
LOG_LEVEL = "INFO"
LOG_FILE = None  # Set to filename if you want file logging

# =============================================================================


def setup_logging(log_level: str = "INFO", log_file: str = None):
    """Configure root logging for a runner script"""

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper()))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


async def run_indexing(config: EmbedderConfig, force_recreate: bool = False) -> bool:
    """Index the whole catalog into Qdrant"""

    print(" Starting Product Indexing Pipeline")
    print("=" * 60)
    print(f" Catalog: {config.catalog_url}")
    print(f" Model: {config.embedding_model}")
    print(f" Collection: {config.collection_name}")
    print(f" Qdrant URL: {config.qdrant_url}")
    print(f" Max chunk size: {config.max_chunk_size}")
    print("=" * 60)

    catalog = WooCommerceCatalog(config)
    vector_store = QdrantVectorStore(config)
    try:
        pipeline = EmbeddingPipeline(config, catalog, ProductEmbedder(config), vector_store)
        stats = await pipeline.run(force_recreate_collection=force_recreate)
        final_stats = await vector_store.get_stats()
    finally:
        await catalog.close()
        await vector_store.close()

    print("\nPIPELINE RESULTS")
    print("=" * 40)
    print(f"Products loaded: {stats['products_loaded']:,}")
    print(f"Products indexed: {stats['products_indexed']:,}")
    print(f"Products failed: {stats['products_failed']:,}")
    print(f"Chunks written: {stats['chunks_written']:,}")
    print(f"Duration: {stats['duration_seconds']:.2f} seconds")

    if 'points_count' in final_stats:
        print(f"Total points in collection: {final_stats['points_count']:,}")

    for error in stats["errors"][:10]:
        print(f"   Error: {error}")

    return stats["products_failed"] == 0


async def test_search(config: EmbedderConfig, query: str) -> bool:
    """Run one semantic query against the collection"""

    print(f"Testing semantic search with query: '{query}'")
    print("=" * 40)

    vector_store = QdrantVectorStore(config)
    try:
        info = await vector_store.get_collection_info()
        if not info:
            print("ERROR: Collection not found. Run the pipeline first.")
            return False

        print(f" Collection has {info.points_count:,} points")

        searcher = SemanticSearcher(ProductEmbedder(config), vector_store)
        hits = await searcher.search(query, top_k=10, min_score=config.semantic_min_score)
    finally:
        await vector_store.close()

    print(f"Found {len(hits)} results:")
    for i, hit in enumerate(hits, 1):
        relevance = SemanticSearcher.score_to_relevance(hit.score)
        print(f"  {i}. [{hit.score:.3f}] {relevance} {hit.payload.get('name', 'No name')}")
        print(f"     Categories: {', '.join(hit.payload.get('categories', [])) or 'Unknown'}")
        print(f"     Price: ${hit.payload.get('price', 0):.2f}")
    return True


async def get_collection_stats(config: EmbedderConfig) -> bool:
    """Display collection statistics"""

    print(" Collection Statistics")
    print("=" * 30)

    vector_store = QdrantVectorStore(config)
    try:
        stats = await vector_store.get_stats()
    finally:
        await vector_store.close()

    if stats.get("error"):
        print(f"ERROR: {stats['error']}")
        return False

    print(f" Collection: {stats['collection_name']}")
    print(f" Points count: {stats['points_count']:,}")
    print(f" Indexed vectors: {stats['indexed_vectors_count'] or 0:,}")
    print(f" Status: {stats['status']}")
    return True


def main():
    """Main function using configuration variables"""

    print(" Product Indexing Pipeline")
    print(f" Mode: {MODE}")
    print("=" * 50)

    config = EmbedderConfig.from_env()
    setup_logging(LOG_LEVEL or config.log_level, LOG_FILE or config.log_file)

    try:
        if MODE == "index":
            success = asyncio.run(run_indexing(config, FORCE_RECREATE))
        elif MODE == "search":
            success = asyncio.run(test_search(config, SEARCH_QUERY))
        elif MODE == "stats":
            success = asyncio.run(get_collection_stats(config))
        else:
            print(f"ERROR: Unknown mode: {MODE}")
            print("Available modes: index, search, stats")
            return 1

        return 0 if success else 1

    except KeyboardInterrupt:
        print("\n Pipeline interrupted by user")
        return 1
    except Exception as e:
        print(f"ERROR: Pipeline failed with error: {e}")
        logging.exception("Pipeline error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
