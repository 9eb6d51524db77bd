"""
Qdrant Vector Store Manager for hybrid product search
Handles collection setup, chunk upserts and filtered nearest-neighbor search
"""

import asyncio
import uuid
from typing import List, Dict, Any, Optional
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance, VectorParams, CollectionInfo,
    PointStruct, Filter, FieldCondition,
    Range, MatchValue, MatchAny, HnswConfigDiff,
    PayloadSchemaType, FilterSelector
)
from hybrid_search.models import Product, SearchFilters
from .config import EmbedderConfig
import logging


# Namespace for deterministic point ids: one point per (product, chunk)
POINT_NAMESPACE = uuid.UUID("6f1c7a52-3f0e-4c1b-9a53-2b6f2d0e8c41")

PAYLOAD_INDEXES = [
    ("product_id", PayloadSchemaType.INTEGER),
    ("chunk_index", PayloadSchemaType.INTEGER),
    ("categories", PayloadSchemaType.KEYWORD),
    ("in_stock", PayloadSchemaType.BOOL),
    ("featured", PayloadSchemaType.BOOL),
    ("price", PayloadSchemaType.FLOAT),
]


def point_id(product_id: int, chunk_index: int) -> str:
    return str(uuid.uuid5(POINT_NAMESPACE, f"{product_id}:{chunk_index}"))


def stale_chunks_selector(product_id: int, chunk_count: int) -> FilterSelector:
    """Selects the chunk points of a product at or beyond chunk_count"""
    return FilterSelector(
        filter=Filter(must=[
            FieldCondition(key="product_id", match=MatchValue(value=product_id)),
            FieldCondition(key="chunk_index", range=Range(gte=chunk_count)),
        ])
    )


def build_filter(filters: Optional[SearchFilters]) -> Optional[Filter]:
    """Translate search filters to Qdrant's native filter format"""
    if filters is None or filters.is_empty():
        return None

    conditions = []

    if filters.categories:
        conditions.append(
            FieldCondition(key="categories", match=MatchAny(any=list(filters.categories)))
        )

    if filters.in_stock is not None:
        conditions.append(
            FieldCondition(key="in_stock", match=MatchValue(value=filters.in_stock))
        )

    if filters.featured is not None:
        conditions.append(
            FieldCondition(key="featured", match=MatchValue(value=filters.featured))
        )

    if filters.min_price is not None or filters.max_price is not None:
        conditions.append(
            FieldCondition(key="price", range=Range(gte=filters.min_price, lte=filters.max_price))
        )

    return Filter(must=conditions)


class QdrantVectorStore:
    """
    Async Qdrant vector store for product chunks
    Each point holds one enriched text chunk plus the product's display payload
    """

    def __init__(self, config: EmbedderConfig, client: Optional[AsyncQdrantClient] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        self.client = client or AsyncQdrantClient(
            url=config.qdrant_url,
            api_key=config.qdrant_api_key,
            timeout=config.qdrant_timeout
        )

        self.collection_name = config.collection_name
        self.logger.info(f"Connected to Qdrant at {config.qdrant_url}")

    async def create_collection(self, force_recreate: bool = False) -> bool:
        """
        Create the product collection and its payload indexes

        Returns:
            True if collection was created, False if already exists
        """
        exists = await self.client.collection_exists(self.collection_name)

        if exists:
            if force_recreate:
                self.logger.info(f"Deleting existing collection: {self.collection_name}")
                await self.client.delete_collection(self.collection_name)
            else:
                self.logger.info(f"Collection {self.collection_name} already exists")
                return False

        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(
                size=self.config.embedding_dimension,
                distance=Distance.COSINE,
                hnsw_config=HnswConfigDiff(
                    m=self.config.hnsw_m,
                    ef_construct=self.config.hnsw_ef_construct,
                    full_scan_threshold=self.config.full_scan_threshold
                )
            )
        )

        for field_name, field_type in PAYLOAD_INDEXES:
            await self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name=field_name,
                field_schema=field_type
            )

        self.logger.info(f"Created collection: {self.collection_name}")
        return True

    async def get_collection_info(self) -> Optional[CollectionInfo]:
        try:
            return await self.client.get_collection(self.collection_name)
        except Exception:
            return None

    async def upsert_chunks(
        self,
        product: Product,
        chunks: List[str],
        embeddings: List[List[float]]
    ) -> int:
        """
        Insert or update all chunk points of a product

        Points left over from an earlier, longer version of the product are
        deleted so stale payloads cannot match filters.

        Returns:
            Number of points written
        """
        if len(chunks) != len(embeddings):
            raise ValueError("Chunks and embeddings must have same length")

        base_payload = product.to_payload()
        points = [
            PointStruct(
                id=point_id(product.id, index),
                vector=embedding,
                payload={**base_payload, "chunk_index": index, "text": chunk[:500]}
            )
            for index, (chunk, embedding) in enumerate(zip(chunks, embeddings))
        ]

        retry_count = 0
        while True:
            try:
                await self.client.upsert(collection_name=self.collection_name, points=points)
                await self.client.delete(
                    collection_name=self.collection_name,
                    points_selector=stale_chunks_selector(product.id, len(points))
                )
                return len(points)
            except Exception as e:
                retry_count += 1
                if retry_count >= self.config.max_retries:
                    self.logger.error(
                        f"Failed to upsert product {product.id} after {self.config.max_retries} retries: {e}"
                    )
                    raise
                self.logger.warning(f"Retry {retry_count} for product {product.id} upsert: {e}")
                await asyncio.sleep(self.config.retry_delay * retry_count)

    async def search(
        self,
        query_vector: List[float],
        top_k: int = 50,
        filters: Optional[SearchFilters] = None
    ) -> List[Dict[str, Any]]:
        """
        Nearest-neighbor search with optional filtering

        Points are grouped by product so top_k counts products, not chunks.

        Returns:
            List of {"id", "score", "payload"} dicts for the best chunk of
            each product, best first
        """
        response = await self.client.query_points_groups(
            collection_name=self.collection_name,
            query=query_vector,
            group_by="product_id",
            group_size=1,
            query_filter=build_filter(filters),
            limit=top_k,
            with_payload=True,
            with_vectors=False
        )

        return [
            {"id": point.id, "score": float(point.score), "payload": point.payload or {}}
            for group in response.groups
            for point in group.hits
        ]

    async def count(self, filters: Optional[SearchFilters] = None) -> int:
        try:
            result = await self.client.count(
                collection_name=self.collection_name,
                count_filter=build_filter(filters)
            )
            return result.count
        except Exception as e:
            self.logger.error(f"Error counting products: {e}")
            return 0

    async def get_stats(self) -> Dict[str, Any]:
        info = await self.get_collection_info()
        if not info:
            return {"error": "Collection not found"}

        return {
            "collection_name": self.collection_name,
            "points_count": info.points_count,
            "indexed_vectors_count": info.indexed_vectors_count,
            "status": info.status,
        }

    async def delete_collection(self) -> bool:
        try:
            await self.client.delete_collection(self.collection_name)
            self.logger.info(f"Deleted collection: {self.collection_name}")
            return True
        except Exception as e:
            self.logger.error(f"Error deleting collection: {e}")
            return False

    async def close(self):
        await self.client.close()
