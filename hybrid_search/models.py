"""
Domain models for the hybrid product search engine
Queries, per-branch retrieval hits, fused results, facets and responses
"""

import re
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Dict, Any, Optional, Tuple


_HTML_TAG = re.compile(r'<[^>]*>')
_HTML_ENTITY = re.compile(r'&[^;\s]+;')


def strip_html(text: str) -> str:
    """Remove HTML tags and entities from WooCommerce rich text"""
    if not text:
        return ""
    return _HTML_ENTITY.sub(' ', _HTML_TAG.sub('', text)).strip()


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().replace('$', '').replace(',', ''))
    except (ValueError, TypeError):
        return 0.0


@dataclass
class Product:
    """A catalog snapshot entry as used for indexing and keyword search"""

    id: int
    name: str
    slug: str = ""
    price: float = 0.0
    description: str = ""
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    attributes: List[Dict[str, Any]] = field(default_factory=list)
    brand: str = ""
    benefits: List[str] = field(default_factory=list)
    average_rating: float = 0.0
    review_count: int = 0
    in_stock: bool = True
    featured: bool = False

    @classmethod
    def from_woocommerce(cls, data: Dict[str, Any]) -> 'Product':
        """
        Build a product from a WooCommerce REST API product object

        Brand comes from the brands taxonomy when present, falling back to a
        "brand" attribute. Health benefits are read from the
        "health_benefits" meta entry.
        """
        attributes = [
            {"name": attr.get("name", ""), "options": list(attr.get("options") or [])}
            for attr in data.get("attributes") or []
        ]

        brand = ""
        brands = data.get("brands") or []
        if brands:
            brand = brands[0].get("name", "")
        else:
            for attr in attributes:
                if attr["name"].lower() == "brand" and attr["options"]:
                    brand = attr["options"][0]
                    break

        benefits: List[str] = []
        for meta in data.get("meta_data") or []:
            if meta.get("key") in ("health_benefits", "_health_benefits"):
                value = meta.get("value")
                if isinstance(value, list):
                    benefits = [str(v) for v in value]
                elif isinstance(value, str) and value:
                    benefits = [v.strip() for v in value.split(',') if v.strip()]

        description = data.get("description") or data.get("short_description") or ""

        return cls(
            id=int(data["id"]),
            name=data.get("name") or "",
            slug=data.get("slug") or "",
            price=_to_float(data.get("price")),
            description=strip_html(description),
            categories=[c.get("name", "") for c in data.get("categories") or []],
            tags=[t.get("name", "") for t in data.get("tags") or []],
            attributes=attributes,
            brand=brand,
            benefits=benefits,
            average_rating=_to_float(data.get("average_rating")),
            review_count=int(data.get("rating_count") or 0),
            in_stock=data.get("stock_status", "instock") == "instock",
            featured=bool(data.get("featured", False)),
        )

    def to_payload(self) -> Dict[str, Any]:
        """Denormalized display fields stored alongside each vector"""
        return {
            "product_id": self.id,
            "name": self.name,
            "slug": self.slug,
            "price": self.price,
            "categories": list(self.categories),
            "brand": self.brand,
            "average_rating": self.average_rating,
            "review_count": self.review_count,
            "in_stock": self.in_stock,
            "featured": self.featured,
        }


class SearchMode(str, Enum):
    HYBRID = "hybrid"
    SEMANTIC_ONLY = "semantic_only"
    KEYWORD_ONLY = "keyword_only"

    @property
    def uses_semantic(self) -> bool:
        return self is not SearchMode.KEYWORD_ONLY

    @property
    def uses_keyword(self) -> bool:
        return self is not SearchMode.SEMANTIC_ONLY


@dataclass(frozen=True)
class RankingWeights:
    """Per-component weights for the final score, each in [0, 1]"""

    semantic: float = 0.6
    keyword: float = 0.4
    graph: float = 0.0
    popularity: float = 0.0

    def __post_init__(self):
        for name in ("semantic", "keyword", "graph", "popularity"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} weight must be within [0, 1], got {value}")

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


HYBRID_WEIGHTS = RankingWeights(semantic=0.6, keyword=0.4, graph=0.0, popularity=0.0)
GRAPH_ENHANCED_WEIGHTS = RankingWeights(semantic=0.4, keyword=0.2, graph=0.2, popularity=0.2)

# Named presets, selected by experiment bucket
WEIGHT_PRESETS: Dict[str, RankingWeights] = {
    "hybrid": HYBRID_WEIGHTS,
    "graph_enhanced": GRAPH_ENHANCED_WEIGHTS,
}


@dataclass(frozen=True)
class SearchFilters:
    categories: Tuple[str, ...] = ()
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None

    def is_empty(self) -> bool:
        return (
            not self.categories
            and self.min_price is None
            and self.max_price is None
            and self.in_stock is None
            and self.featured is None
        )

    def matches(self, product: Product) -> bool:
        """In-memory filter check used by the keyword branch"""
        if self.categories:
            wanted = {c.lower() for c in self.categories}
            if not any(c.lower() in wanted for c in product.categories):
                return False
        if self.in_stock is not None and product.in_stock != self.in_stock:
            return False
        if self.featured is not None and product.featured != self.featured:
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": sorted(self.categories),
            "min_price": self.min_price,
            "max_price": self.max_price,
            "in_stock": self.in_stock,
            "featured": self.featured,
        }


@dataclass(frozen=True)
class SearchOptions:
    """
    Immutable per-call search options

    Together with the query text these fully determine the cache key.
    """

    mode: SearchMode = SearchMode.HYBRID
    use_graph: bool = False
    expand_query: bool = False
    expansion_depth: int = 1
    filters: SearchFilters = field(default_factory=SearchFilters)
    offset: int = 0
    limit: int = 20
    weights: Optional[RankingWeights] = None
    weight_preset: Optional[str] = None
    include_facets: bool = False

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.weight_preset is not None and self.weight_preset not in WEIGHT_PRESETS:
            raise ValueError(f"Unknown weight preset: {self.weight_preset}")

    def resolved_weights(self) -> RankingWeights:
        """Explicit weights win, then the named preset, then the mode default"""
        if self.weights is not None:
            return self.weights
        if self.weight_preset is not None:
            return WEIGHT_PRESETS[self.weight_preset]
        return GRAPH_ENHANCED_WEIGHTS if self.use_graph else HYBRID_WEIGHTS

    def cache_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "use_graph": self.use_graph,
            "expand_query": self.expand_query,
            "expansion_depth": self.expansion_depth,
            "filters": self.filters.to_dict(),
            "offset": self.offset,
            "limit": self.limit,
            "weights": self.resolved_weights().to_dict(),
            "include_facets": self.include_facets,
        }


@dataclass
class RetrievalHit:
    """A candidate from a single retrieval branch"""

    product_id: int
    score: float
    source: str  # "semantic" or "keyword"
    payload: Dict[str, Any] = field(default_factory=dict)
    matched_terms: List[str] = field(default_factory=list)
    matched_fields: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FusedResult:
    product_id: int
    name: str
    slug: str
    price: float
    categories: Tuple[str, ...]
    brand: str
    average_rating: float
    semantic_score: float
    keyword_score: float
    graph_score: float
    popularity_score: float
    final_score: float
    match_type: str
    matched_terms: Tuple[str, ...] = ()
    explanation: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["categories"] = list(self.categories)
        data["matched_terms"] = list(self.matched_terms)
        return data


@dataclass(frozen=True)
class FacetCount:
    label: str
    count: int


@dataclass(frozen=True)
class SearchFacets:
    categories: Tuple[FacetCount, ...] = ()
    price_ranges: Tuple[FacetCount, ...] = ()
    brands: Tuple[FacetCount, ...] = ()
    ratings: Tuple[FacetCount, ...] = ()

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            name: [{"label": f.label, "count": f.count} for f in getattr(self, name)]
            for name in ("categories", "price_ranges", "brands", "ratings")
        }


@dataclass(frozen=True)
class QueryExpansion:
    original: str
    expanded_terms: Tuple[str, ...] = ()
    synonyms: Tuple[str, ...] = ()

    @property
    def expanded_query(self) -> str:
        return " ".join([self.original, " ".join(self.expanded_terms), " ".join(self.synonyms)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original": self.original,
            "expanded": list(self.expanded_terms),
            "synonyms": list(self.synonyms),
        }


@dataclass(frozen=True)
class SearchResponse:
    results: Tuple[FusedResult, ...] = ()
    total_count: int = 0
    execution_time_ms: float = 0.0
    facets: Optional[SearchFacets] = None
    query_expansion: Optional[QueryExpansion] = None
    cached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "results": [r.to_dict() for r in self.results],
            "totalCount": self.total_count,
            "executionTimeMs": self.execution_time_ms,
        }
        if self.facets is not None:
            data["facets"] = self.facets.to_dict()
        if self.query_expansion is not None:
            data["queryExpansion"] = self.query_expansion.to_dict()
        return data
