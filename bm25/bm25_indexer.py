"""
BM25 Indexer for product keyword search
Builds an in-memory rank-bm25 index over a catalog snapshot
"""

import functools
import logging
import re
import time
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Set, Tuple, FrozenSet

from rank_bm25 import BM25Okapi
import nltk
from nltk.corpus import stopwords
from nltk.stem import PorterStemmer

from hybrid_search.models import Product


# Used when the NLTK stopwords corpus is not available offline
BASE_STOP_WORDS = {
    'the', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for', 'of', 'with', 'by',
    'is', 'are', 'was', 'were', 'be', 'been', 'a', 'an', 'this', 'that', 'it'
}

PRODUCT_STOP_WORDS = {
    'product', 'item', 'new', 'shipping', 'best', 'quality', 'premium', 'perfect',
    'great', 'good', 'available', 'order', 'buy', 'purchase', 'sale', 'price'
}

TITLE_REPEAT = 3
INDEXED_FIELDS = ("title", "description", "categories", "tags")


@functools.lru_cache(maxsize=None)
def load_stop_words() -> FrozenSet[str]:
    """English stop words from NLTK, downloading the corpus once if needed"""
    logger = logging.getLogger(__name__)
    try:
        return frozenset(stopwords.words('english'))
    except LookupError:
        logger.info("Downloading NLTK stopwords corpus...")
        nltk.download('stopwords', quiet=True)

    try:
        return frozenset(stopwords.words('english'))
    except LookupError:
        logger.warning("NLTK stopwords unavailable, using built-in stop word list")
        return frozenset(BASE_STOP_WORDS)


@dataclass
class KeywordIndex:
    """Immutable keyword index snapshot; replaced wholesale on rebuild"""

    products: List[Product] = field(default_factory=list)
    bm25: Optional[BM25Okapi] = None
    doc_tokens: List[Set[str]] = field(default_factory=list)
    field_tokens: List[Dict[str, Set[str]]] = field(default_factory=list)
    built_at: float = 0.0

    def __len__(self) -> int:
        return len(self.products)

    @property
    def is_empty(self) -> bool:
        return self.bm25 is None


class BM25Indexer:
    """
    BM25 indexer using rank-bm25 library
    Tokenizes with NLTK stop words and Porter stemming
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self.stemmer = PorterStemmer()
        self.stop_words = set(load_stop_words())
        self.stop_words.update(PRODUCT_STOP_WORDS)

    def tokenize(self, text: str) -> List[Tuple[str, str]]:
        """
        Split text into (raw, stemmed) token pairs

        Lowercases, drops punctuation, stop words and tokens outside 3-19 chars.
        """
        if not text:
            return []

        text = re.sub(r'[^a-z0-9\s]', ' ', text.lower())

        pairs = []
        for token in text.split():
            if token in self.stop_words or not 2 < len(token) < 20:
                continue
            pairs.append((token, self.stemmer.stem(token)))
        return pairs

    def preprocess_text(self, text: str) -> List[str]:
        return [stem for _, stem in self.tokenize(text)]

    def field_texts(self, product: Product) -> Dict[str, str]:
        return {
            "title": product.name,
            "description": product.description[:1000],
            "categories": " ".join(product.categories),
            "tags": " ".join(product.tags),
        }

    def build(self, products: List[Product]) -> KeywordIndex:
        """
        Build a keyword index over a catalog snapshot

        An empty catalog yields an empty index that matches nothing.
        """
        start = time.time()
        indexed: List[Product] = []
        corpus: List[List[str]] = []
        doc_tokens: List[Set[str]] = []
        field_tokens: List[Dict[str, Set[str]]] = []

        for product in products:
            fields = {name: self.preprocess_text(text) for name, text in self.field_texts(product).items()}

            # Title repeated for higher weight
            tokens = fields["title"] * TITLE_REPEAT + fields["description"] + fields["categories"] + fields["tags"]
            if product.brand:
                tokens += self.preprocess_text(product.brand)

            if not tokens:
                self.logger.warning(f"No valid tokens for product {product.id}")
                continue

            indexed.append(product)
            corpus.append(tokens)
            doc_tokens.append(set(tokens))
            field_tokens.append({name: set(values) for name, values in fields.items()})

        if not corpus:
            self.logger.info("Catalog is empty, keyword index has no documents")
            return KeywordIndex(built_at=time.time())

        index = KeywordIndex(
            products=indexed,
            bm25=BM25Okapi(corpus),
            doc_tokens=doc_tokens,
            field_tokens=field_tokens,
            built_at=time.time(),
        )

        self.logger.info(f"Built BM25 index for {len(indexed):,} products in {time.time() - start:.3f}s")
        return index

    def get_index_stats(self, index: KeywordIndex) -> Dict[str, Any]:
        return {
            'total_documents': len(index),
            'has_index': not index.is_empty,
            'vocabulary_size': len(set().union(*index.doc_tokens)) if index.doc_tokens else 0,
            'stop_words_count': len(self.stop_words),
            'built_at': index.built_at,
        }
