"""
Facet aggregation over a fused, sorted result list
"""

import math
from collections import Counter
from typing import Iterable, List, Tuple

from .models import FacetCount, FusedResult, SearchFacets


PRICE_BUCKETS: List[Tuple[float, str]] = [
    (10.0, "<$10"),
    (25.0, "$10-25"),
    (50.0, "$25-50"),
    (100.0, "$50-100"),
]
TOP_PRICE_BUCKET = "$100+"


def price_bucket(price: float) -> str:
    for upper, label in PRICE_BUCKETS:
        if price < upper:
            return label
    return TOP_PRICE_BUCKET


def rating_label(rating: float) -> str:
    """Whole-star label "1".."5", empty for unrated products"""
    if rating < 1:
        return ""
    return str(min(int(math.floor(rating)), 5))


def _sorted_counts(counter: Counter) -> Tuple[FacetCount, ...]:
    return tuple(
        FacetCount(label=label, count=count)
        for label, count in sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    )


def build_facets(results: Iterable[FusedResult]) -> SearchFacets:
    """
    Count categories, price buckets, brands and ratings

    Takes the full list before pagination. Each facet is sorted by count
    descending, then label ascending.
    """
    categories: Counter = Counter()
    prices: Counter = Counter()
    brands: Counter = Counter()
    ratings: Counter = Counter()

    for result in results:
        # A product listed twice under one category still counts once
        for category in set(result.categories):
            if category:
                categories[category] += 1
        prices[price_bucket(result.price)] += 1
        if result.brand:
            brands[result.brand] += 1
        label = rating_label(result.average_rating)
        if label:
            ratings[label] += 1

    return SearchFacets(
        categories=_sorted_counts(categories),
        price_ranges=_sorted_counts(prices),
        brands=_sorted_counts(brands),
        ratings=_sorted_counts(ratings),
    )
