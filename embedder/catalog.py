"""
Catalog sources for indexing and keyword search
"""

import logging
from typing import List, Optional, Iterable

import httpx

from hybrid_search.models import Product
from .config import EmbedderConfig


class WooCommerceCatalog:
    """Reads the full product catalog from the WooCommerce REST API"""

    PRODUCTS_PATH = "/wp-json/wc/v3/products"

    def __init__(self, config: EmbedderConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)

        auth = None
        if config.catalog_consumer_key and config.catalog_consumer_secret:
            auth = httpx.BasicAuth(config.catalog_consumer_key, config.catalog_consumer_secret)

        self.client = client or httpx.AsyncClient(
            base_url=config.catalog_url,
            auth=auth,
            timeout=httpx.Timeout(30.0),
        )

    async def get_all_products(self, page_size: Optional[int] = None) -> List[Product]:
        """
        Fetch every published product, page by page

        Stops at the first page shorter than page_size.
        """
        page_size = page_size or self.config.catalog_page_size
        products: List[Product] = []
        page = 1

        while True:
            response = await self.client.get(
                self.PRODUCTS_PATH,
                params={"per_page": page_size, "page": page, "status": "publish"},
            )
            response.raise_for_status()
            items = response.json()

            for item in items:
                try:
                    products.append(Product.from_woocommerce(item))
                except (KeyError, ValueError, TypeError) as e:
                    self.logger.warning(f"Skipping malformed product on page {page}: {e}")

            if len(items) < page_size:
                break
            page += 1

        self.logger.info(f"Fetched {len(products)} products from catalog")
        return products

    async def close(self):
        await self.client.aclose()


class StaticCatalog:
    """Fixed in-memory catalog snapshot"""

    def __init__(self, products: Iterable[Product] = ()):
        self.products = list(products)

    async def get_all_products(self, page_size: Optional[int] = None) -> List[Product]:
        return list(self.products)

    async def close(self):
        pass
