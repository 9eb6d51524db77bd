"""
Relationship store backed by Memgraph over Bolt
Read-only graph lookups used for query expansion and graph relevance scoring
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Any, Dict

from neo4j import AsyncGraphDatabase, AsyncDriver
from neo4j.exceptions import Neo4jError, DriverError


RELATED_CATEGORIES_QUERY = """
MATCH (c:Category)
WHERE toLower(c.name) CONTAINS $query
MATCH (c)<-[:BELONGS_TO]-(p:Product)-[:BELONGS_TO]->(related:Category)
WHERE related <> c
RETURN DISTINCT related.name AS relatedCategory
LIMIT $limit
"""

PRODUCT_SIGNALS_QUERY = """
MATCH (p:Product {id: $productId})
OPTIONAL MATCH (p)-[:BELONGS_TO]->(c:Category)
OPTIONAL MATCH (p)-[:PROVIDES]->(b:HealthBenefit)
OPTIONAL MATCH (p)-[:SAME_BRAND]->(brand:Brand)
WITH p,
     COLLECT(DISTINCT toLower(c.name)) AS categories,
     COLLECT(DISTINCT toLower(b.name)) AS benefits,
     COLLECT(DISTINCT toLower(brand.name)) AS brands
RETURN p.pageRank AS pageRank, categories, benefits, brands
"""


@dataclass(frozen=True)
class ProductSignals:
    """Graph neighbourhood of a product, lowercased labels"""

    categories: List[str] = field(default_factory=list)
    benefits: List[str] = field(default_factory=list)
    brands: List[str] = field(default_factory=list)
    importance: float = 0.0

    @property
    def labels(self) -> List[str]:
        return self.categories + self.benefits + self.brands


EMPTY_SIGNALS = ProductSignals()


class RelationshipStore:
    """
    Failure-tolerant read access to the product graph

    Every lookup runs under its own timeout. Driver errors and timeouts are
    logged and turned into empty results; nothing here raises to the caller.
    """

    def __init__(
        self,
        uri: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        query_timeout: float = 2.0,
        driver: Optional[AsyncDriver] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.query_timeout = query_timeout

        auth = (user, password) if user else None
        self.driver = driver or AsyncGraphDatabase.driver(uri, auth=auth)

    @classmethod
    def from_config(cls, config) -> 'RelationshipStore':
        return cls(
            uri=config.graph_uri,
            user=config.graph_user,
            password=config.graph_password,
            query_timeout=config.graph_query_timeout,
        )

    async def _run(self, query: str, /, **params) -> List[Dict[str, Any]]:
        async def fetch():
            async with self.driver.session() as session:
                result = await session.run(query, params)
                return await result.data()

        return await asyncio.wait_for(fetch(), timeout=self.query_timeout)

    async def related_categories(self, query: str, limit: int = 5) -> List[str]:
        """
        Names of categories that share products with categories matching the query
        """
        try:
            records = await self._run(RELATED_CATEGORIES_QUERY, query=query.lower(), limit=limit)
        except (Neo4jError, DriverError, asyncio.TimeoutError, OSError) as e:
            self.logger.warning(f"Related category lookup failed for '{query}': {e}")
            return []

        names = [r["relatedCategory"] for r in records if r.get("relatedCategory")]
        return names[:limit]

    async def product_signals(self, product_id: int) -> ProductSignals:
        """Categories, benefits, brand and PageRank importance of a product"""
        try:
            records = await self._run(PRODUCT_SIGNALS_QUERY, productId=product_id)
        except (Neo4jError, DriverError, asyncio.TimeoutError, OSError) as e:
            self.logger.warning(f"Graph signal lookup failed for product {product_id}: {e}")
            return EMPTY_SIGNALS

        if not records:
            return EMPTY_SIGNALS

        record = records[0]
        return ProductSignals(
            categories=[c for c in record.get("categories") or [] if c],
            benefits=[b for b in record.get("benefits") or [] if b],
            brands=[b for b in record.get("brands") or [] if b],
            importance=float(record.get("pageRank") or 0.0),
        )

    async def close(self):
        await self.driver.close()
