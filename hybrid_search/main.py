"""
Main script for trying out Hybrid Search
Runs demo queries through the full retrieval, fusion and re-ranking pipeline
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.append(str(Path(__file__).parent.parent))

from embedder.config import EmbedderConfig
from embedder.main import setup_logging
from hybrid_search.hybrid_searcher import HybridSearcher
from hybrid_search.models import SearchMode, SearchOptions, SearchFilters

# =============================================================================
# CONFIGURATION VARIABLES - MODIFY THESE AS NEEDED
# =============================================================================

TEST_QUERIES = [
    "organic turmeric",
    "herbal tea for immunity",
    "raw honey",
    "cold pressed coconut oil",
    "energy supplement",
]

MODE = SearchMode.HYBRID
USE_GRAPH = True
EXPAND_QUERY = True
INCLUDE_FACETS = True
PAGE_SIZE = 5
CATEGORY_FILTER = ()  # e.g. ("Spices",)

LOG_LEVEL = "INFO"
LOG_FILE = None

# =============================================================================


def print_facets(response):
    if response.facets is None:
        return
    for name, counts in response.facets.to_dict().items():
        if counts:
            summary = ", ".join(f"{c['label']} ({c['count']})" for c in counts[:5])
            print(f"  {name}: {summary}")


async def run_demo() -> int:
    config = EmbedderConfig.from_env()

    options = SearchOptions(
        mode=MODE,
        use_graph=USE_GRAPH,
        expand_query=EXPAND_QUERY,
        include_facets=INCLUDE_FACETS,
        limit=PAGE_SIZE,
        filters=SearchFilters(categories=tuple(CATEGORY_FILTER)),
    )

    print("Hybrid Search Demo")
    print("=" * 80)
    print(f"Mode: {options.mode.value} | Graph: {options.use_graph} | Expansion: {options.expand_query}")
    print(f"Weights: {options.resolved_weights().to_dict()}")
    print("=" * 80)

    async with HybridSearcher.from_config(config) as searcher:
        for query in TEST_QUERIES:
            print(f"\nQuery: '{query}'")
            response = await searcher.search(query, options)

            if response.query_expansion is not None:
                expansion = response.query_expansion
                print(f"  Expanded: {list(expansion.expanded_terms)} | Synonyms: {list(expansion.synonyms)}")

            print(searcher.format_results_for_display(response.results))
            print(f"Total: {response.total_count} | Time: {response.execution_time_ms:.1f}ms")
            print_facets(response)
            stats = searcher.get_search_stats(response)
            if "match_types" in stats:
                print(f"Match types: {stats['match_types']} | Consensus: {stats['consensus_rate']:.0%}")

        # Same query again is served from the result cache
        response = await searcher.search(TEST_QUERIES[0], options)
        print(f"\nRepeat of '{TEST_QUERIES[0]}': cached={response.cached}, "
              f"time={response.execution_time_ms:.1f}ms")
        print(f"Cache stats: {searcher.result_cache.stats()}")

    return 0


def main():
    """Main function"""
    setup_logging(LOG_LEVEL, LOG_FILE)
    try:
        return asyncio.run(run_demo())
    except KeyboardInterrupt:
        print("\nDemo interrupted by user")
        return 1
    except Exception as e:
        print(f"ERROR: Hybrid search demo failed: {e}")
        logging.exception("Demo error")
        return 1


if __name__ == "__main__":
    sys.exit(main())
