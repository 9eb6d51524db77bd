"""
Retrieval orchestrator
Runs the semantic and keyword branches concurrently, each under its own timeout
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import BranchError, EmbeddingError
from .models import RetrievalHit, SearchOptions

SEMANTIC = "semantic"
KEYWORD = "keyword"


@dataclass
class RetrievalOutcome:
    """Raw per-branch hits plus which branches did not contribute"""

    semantic_hits: List[RetrievalHit] = field(default_factory=list)
    keyword_hits: List[RetrievalHit] = field(default_factory=list)
    attempted_branches: List[str] = field(default_factory=list)
    failed_branches: List[str] = field(default_factory=list)
    embedding_failed: bool = False

    @property
    def degraded(self) -> bool:
        return bool(self.failed_branches)

    @property
    def all_failed(self) -> bool:
        return bool(self.attempted_branches) and len(self.failed_branches) == len(self.attempted_branches)


class RetrievalOrchestrator:
    """
    Fans a query out to the enabled branches and joins them

    A branch either contributes its full hit list or nothing. Failures and
    timeouts are logged and recorded on the outcome, never raised.
    """

    def __init__(
        self,
        semantic_searcher,
        keyword_cache,
        bm25_searcher,
        semantic_min_score: float = 0.3,
        keyword_min_score: float = 0.1,
        branch_timeout: float = 5.0,
        candidate_pool: int = 100
    ):
        self.semantic_searcher = semantic_searcher
        self.keyword_cache = keyword_cache
        self.bm25_searcher = bm25_searcher
        self.semantic_min_score = semantic_min_score
        self.keyword_min_score = keyword_min_score
        self.branch_timeout = branch_timeout
        self.candidate_pool = candidate_pool
        self.logger = logging.getLogger(__name__)

    def candidate_window(self, options: SearchOptions) -> int:
        """
        Candidates requested per branch

        Independent of the offset, so every page of a query slices the same
        fused list. At least twice the page size.
        """
        return max(self.candidate_pool, 2 * options.limit)

    async def _semantic(self, query: str, options: SearchOptions) -> List[RetrievalHit]:
        return await self.semantic_searcher.search(
            query,
            top_k=self.candidate_window(options),
            filters=options.filters,
            min_score=self.semantic_min_score,
        )

    async def _keyword(self, query: str, options: SearchOptions) -> List[RetrievalHit]:
        index = await self.keyword_cache.get_index()
        return self.bm25_searcher.search(
            query,
            index,
            filters=options.filters,
            min_score=self.keyword_min_score,
            top_k=self.candidate_window(options),
        )

    async def _run_branch(self, name: str, coro) -> List[RetrievalHit]:
        try:
            return await asyncio.wait_for(coro, timeout=self.branch_timeout)
        except asyncio.TimeoutError as e:
            raise BranchError(name, f"timed out after {self.branch_timeout}s", cause=e)
        except EmbeddingError:
            raise
        except Exception as e:
            raise BranchError(name, str(e), cause=e)

    async def retrieve(self, query: str, options: SearchOptions) -> RetrievalOutcome:
        """
        Run the branches enabled by the search mode and wait for all of them

        Args:
            query: Retrieval query, already expanded when expansion is on
            options: Search options (mode, filters, pagination)

        Returns:
            RetrievalOutcome with hits from every branch that succeeded
        """
        outcome = RetrievalOutcome()

        branches = []
        if options.mode.uses_semantic:
            branches.append((SEMANTIC, self._semantic(query, options)))
        if options.mode.uses_keyword:
            branches.append((KEYWORD, self._keyword(query, options)))

        outcome.attempted_branches = [name for name, _ in branches]

        results = await asyncio.gather(
            *(self._run_branch(name, coro) for name, coro in branches),
            return_exceptions=True
        )

        for (name, _), result in zip(branches, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                outcome.failed_branches.append(name)
                if isinstance(result, EmbeddingError):
                    outcome.embedding_failed = True
                    self.logger.warning(f"Embedding failed, {name} branch skipped: {result}")
                else:
                    self.logger.warning(f"Retrieval branch failed: {result}")
                continue

            if name == SEMANTIC:
                outcome.semantic_hits = result
            else:
                outcome.keyword_hits = result

        self.logger.info(
            f"Retrieved {len(outcome.semantic_hits)} semantic and "
            f"{len(outcome.keyword_hits)} keyword candidates"
        )
        return outcome
