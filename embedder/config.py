"""
Configuration settings for the hybrid product search engine
"""

import os
from dataclasses import dataclass
from typing import Optional, Dict, Any
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


@dataclass
class EmbedderConfig:
    """Configuration for indexing and search"""

    # Embedding Model Settings
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"
    embedding_dimension: int = 768
    max_sequence_length: int = 512
    batch_size: int = 32
    device: str = "auto"  # auto, cpu, cuda, mps

    # Qdrant Settings
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: Optional[str] = None
    collection_name: str = "products"
    qdrant_timeout: int = 30

    # Collection Configuration
    hnsw_m: int = 16
    hnsw_ef_construct: int = 200
    full_scan_threshold: int = 10000

    # Memgraph (Bolt) Settings
    graph_uri: str = "bolt://localhost:7687"
    graph_user: Optional[str] = None
    graph_password: Optional[str] = None
    graph_query_timeout: float = 2.0

    # Catalog (WooCommerce) Settings
    catalog_url: str = "http://localhost:8080"
    catalog_consumer_key: Optional[str] = None
    catalog_consumer_secret: Optional[str] = None
    catalog_page_size: int = 100

    # Indexing Settings
    max_chunk_size: int = 500
    max_retries: int = 3
    retry_delay: float = 1.0

    # Search Settings
    semantic_min_score: float = 0.3
    keyword_min_score: float = 0.1
    branch_timeout: float = 5.0
    candidate_pool: int = 100
    graph_concurrency: int = 8
    keyword_index_ttl: float = 300.0
    result_cache_ttl: float = 300.0
    result_cache_size: int = 500
    cache_cleanup_interval: float = 300.0

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> 'EmbedderConfig':
        """Create config from environment variables"""
        return cls(
            embedding_model=os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2"),
            batch_size=int(os.getenv("BATCH_SIZE", "32")),
            device=os.getenv("DEVICE", "auto"),
            qdrant_url=os.getenv("QDRANT_URL", "http://localhost:6333"),
            qdrant_api_key=os.getenv("QDRANT_API_KEY"),
            collection_name=os.getenv("QDRANT_COLLECTION", "products"),
            graph_uri=os.getenv("MEMGRAPH_URI", "bolt://localhost:7687"),
            graph_user=os.getenv("MEMGRAPH_USER"),
            graph_password=os.getenv("MEMGRAPH_PASSWORD"),
            graph_query_timeout=float(os.getenv("MEMGRAPH_QUERY_TIMEOUT", "2.0")),
            catalog_url=os.getenv("WC_URL", "http://localhost:8080"),
            catalog_consumer_key=os.getenv("WC_CONSUMER_KEY"),
            catalog_consumer_secret=os.getenv("WC_CONSUMER_SECRET"),
            catalog_page_size=int(os.getenv("WC_PAGE_SIZE", "100")),
            semantic_min_score=float(os.getenv("SEMANTIC_MIN_SCORE", "0.3")),
            keyword_min_score=float(os.getenv("KEYWORD_MIN_SCORE", "0.1")),
            branch_timeout=float(os.getenv("SEARCH_BRANCH_TIMEOUT", "5.0")),
            candidate_pool=int(os.getenv("SEARCH_CANDIDATE_POOL", "100")),
            graph_concurrency=int(os.getenv("GRAPH_CONCURRENCY", "8")),
            keyword_index_ttl=float(os.getenv("KEYWORD_INDEX_TTL", "300")),
            result_cache_ttl=float(os.getenv("RESULT_CACHE_TTL", "300")),
            result_cache_size=int(os.getenv("RESULT_CACHE_SIZE", "500")),
            cache_cleanup_interval=float(os.getenv("CACHE_CLEANUP_INTERVAL", "300")),
            max_chunk_size=int(os.getenv("MAX_CHUNK_SIZE", "500")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary, leaving secrets out"""
        secrets = {"qdrant_api_key", "graph_password", "catalog_consumer_secret"}
        return {
            field.name: getattr(self, field.name)
            for field in self.__dataclass_fields__.values()
            if field.name not in secrets
        }
