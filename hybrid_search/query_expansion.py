"""
Query expansion for short or ambiguous queries
Adds table synonyms and graph-related categories before retrieval
"""

import logging
from typing import List, Dict, Optional

from .models import QueryExpansion


SYNONYM_MAP: Dict[str, List[str]] = {
    'organic': ['natural', 'pure', 'bio', 'ecological'],
    'spice': ['seasoning', 'condiment', 'flavoring'],
    'herb': ['botanical', 'plant', 'medicinal plant'],
    'tea': ['infusion', 'brew', 'tisane', 'beverage'],
    'honey': ['nectar', 'sweetener', 'bee product'],
    'oil': ['extract', 'essence', 'fat'],
    'supplement': ['vitamin', 'mineral', 'nutrient', 'dietary supplement'],
    'health': ['wellness', 'wellbeing', 'vitality', 'fitness'],
    'energy': ['stamina', 'vigor', 'vitality', 'strength'],
    'immune': ['immunity', 'defense', 'resistance', 'protection'],
}

RELATED_CATEGORY_LIMIT = 5


class QueryExpander:
    """
    Expands a query with synonyms and related categories

    The relationship store is optional; without one, or when it fails,
    only table synonyms are added.
    """

    def __init__(self, relationship_store=None, synonym_map: Optional[Dict[str, List[str]]] = None):
        self.relationship_store = relationship_store
        self.synonym_map = synonym_map if synonym_map is not None else SYNONYM_MAP
        self.logger = logging.getLogger(__name__)

    def synonyms_for(self, query: str) -> List[str]:
        """Table synonyms for every query token, deduplicated in order"""
        synonyms: List[str] = []
        for token in query.lower().split():
            for synonym in self.synonym_map.get(token, []):
                if synonym not in synonyms:
                    synonyms.append(synonym)
        return synonyms

    async def related_terms(self, query: str) -> List[str]:
        if self.relationship_store is None:
            return []

        try:
            names = await self.relationship_store.related_categories(
                query.lower(), limit=RELATED_CATEGORY_LIMIT
            )
        except Exception as e:
            self.logger.warning(f"Graph expansion failed for '{query}': {e}")
            return []

        terms: List[str] = []
        for name in names or []:
            if name and name not in terms:
                terms.append(name)
        return terms[:RELATED_CATEGORY_LIMIT]

    async def expand(self, query: str, depth: int = 1) -> QueryExpansion:
        """
        Expand a query for retrieval

        Args:
            query: Raw query text
            depth: Expansion depth; values above 1 behave like 1

        Returns:
            QueryExpansion whose expanded_query is passed to both branches
        """
        query = query.strip()
        if not query or depth < 1:
            return QueryExpansion(original=query)

        expansion = QueryExpansion(
            original=query,
            expanded_terms=tuple(await self.related_terms(query)),
            synonyms=tuple(self.synonyms_for(query)),
        )

        self.logger.info(f"Expanded query: '{expansion.expanded_query.strip()}'")
        return expansion
