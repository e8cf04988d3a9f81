"""Snowball graph construction over the citation graph.

Starting from the scanned paper (the seed) and its resolved references (the
depth-1 set), the crawl fetches both edge directions of every depth-1 paper,
pools the neighbours, and ranks them by how strongly they connect back to
the depth-1 set. Phases run strictly one after another; only reference
resolution and frontier expansion fan out, in fixed-size batches.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from related.backends.semanticscholar import SemanticScholarGraph
from related.config import MAX_TOP_N, SnowballSettings
from related.models import (
    EdgeDirection,
    PaperHit,
    RankedPaper,
    RelatedPapersResponse,
    ScoredCandidate,
)
from related.presentation import paper_to_ranked
from related.scoring import build_candidate_pool, score_candidates

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def gather_in_batches(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    batch_size: int,
) -> list[Optional[R]]:
    """Run ``worker`` over ``items``, at most ``batch_size`` at a time.

    Each batch settles completely before the next starts. A worker that
    raises yields None in its slot; the error is logged. A cancelled worker
    cancels the whole run.
    """
    results: list[Optional[R]] = []
    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        outcomes = await asyncio.gather(*(worker(item) for item in batch), return_exceptions=True)
        for item, outcome in zip(batch, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                logger.warning("Graph call for %r failed: %s", item, outcome)
                results.append(None)
            else:
                results.append(outcome)
    return results


class SnowballGraphBuilder:
    """Ranks related papers for one document by a two-hop crawl."""

    def __init__(self, graph: SemanticScholarGraph, settings: Optional[SnowballSettings] = None):
        self.graph = graph
        self.settings = settings or SnowballSettings()

    async def build(
        self,
        search_terms: Sequence[str],
        is_doi_flags: Sequence[bool],
        seed_title: str,
        seed_doi: Optional[str] = None,
    ) -> RelatedPapersResponse:
        seed_id, pdf_title = await self._resolve_seed(seed_title, seed_doi)

        depth1, resolved = await self._resolve_depth1(search_terms, is_doi_flags)
        seed_citations = await self._seed_citations(seed_id)
        references, citations = await self._expand_frontier(depth1)

        candidates = build_candidate_pool(depth1, references, citations, seed_id)
        scored = score_candidates(candidates, depth1, references, citations, seed_citations)
        top = scored[:min(self.settings.top_n, MAX_TOP_N)]
        logger.info(
            "Snowball: seed=%s, %d/%d references resolved, %d depth-1, %d candidates",
            seed_id, resolved, len(search_terms), len(depth1), len(candidates),
        )

        response = RelatedPapersResponse(
            pdf_title=pdf_title,
            pdf_doi=seed_doi,
            seed_paper_id=seed_id,
            total_candidates=len(candidates),
            resolved_citations=resolved,
        )
        if top:
            response.ranked_papers = await self._hydrate(top)
        return response

    # -- phases ------------------------------------------------------------

    async def _resolve_seed(self, title: str, doi: Optional[str]) -> tuple[Optional[str], str]:
        """Seed id and display title; a DOI hit supplies the canonical title."""
        if doi:
            hit = await self.graph.resolve_by_doi(doi)
            if hit is not None:
                return hit.paper_id, hit.title or title
        hit = await self.graph.resolve_by_title(title) if title else None
        if hit is None:
            logger.info("Seed paper not found; co-citation loses the cites-seed signal")
            return None, title
        return hit.paper_id, title

    async def _resolve_depth1(
        self,
        search_terms: Sequence[str],
        is_doi_flags: Sequence[bool],
    ) -> tuple[list[str], int]:
        """Resolve every reference; returns (deduplicated ids, resolved count)."""
        terms = [
            (term, bool(is_doi_flags[i]) if i < len(is_doi_flags) else False)
            for i, term in enumerate(search_terms)
        ]

        async def resolve(term: tuple[str, bool]) -> Optional[PaperHit]:
            return await self.graph.resolve(*term)

        hits = await gather_in_batches(terms, resolve, self.settings.resolve_batch)
        ids = [hit.paper_id for hit in hits if hit is not None]
        return list(dict.fromkeys(ids)), len(ids)

    async def _seed_citations(self, seed_id: Optional[str]) -> set[str]:
        if not seed_id:
            return set()
        return await self.graph.fetch_edges(seed_id, EdgeDirection.CITATIONS)

    async def _expand_frontier(
        self, depth1: list[str]
    ) -> tuple[dict[str, set[str]], dict[str, set[str]]]:
        """Fetch what each depth-1 paper cites and what cites it."""

        async def expand(paper_id: str) -> tuple[set[str], set[str]]:
            refs = await self.graph.fetch_edges(paper_id, EdgeDirection.REFERENCES)
            cits = await self.graph.fetch_edges(paper_id, EdgeDirection.CITATIONS)
            return refs, cits

        outcomes = await gather_in_batches(depth1, expand, self.settings.frontier_batch)
        references: dict[str, set[str]] = {}
        citations: dict[str, set[str]] = {}
        for paper_id, edges in zip(depth1, outcomes):
            refs, cits = edges if edges is not None else (set(), set())
            references[paper_id] = refs
            citations[paper_id] = cits
        return references, citations

    async def _hydrate(self, top: list[ScoredCandidate]) -> list[RankedPaper]:
        """Attach display metadata; papers without a title are dropped."""
        metadata = await self.graph.batch_metadata(c.paper_id for c in top)
        ranked = []
        for candidate in top:
            paper = metadata.get(candidate.paper_id)
            if not paper or not paper.get("title"):
                continue
            ranked.append(paper_to_ranked(paper, candidate))
        return ranked
