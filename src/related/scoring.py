"""Candidate pooling and coupling / co-citation scoring."""

from __future__ import annotations

from collections import Counter
from collections.abc import Mapping, Set
from typing import Optional

from related.models import ScoredCandidate

BC_WEIGHT = 0.5
CC_WEIGHT = 0.5


def build_candidate_pool(
    depth1: list[str],
    references: Mapping[str, Set[str]],
    citations: Mapping[str, Set[str]],
    seed_id: Optional[str],
) -> list[str]:
    """Every neighbour of a depth-1 paper that is not itself depth-1 or the seed.

    Order is deterministic: references then citations, depth-1 order, ids
    sorted within one edge set.
    """
    excluded = set(depth1)
    if seed_id:
        excluded.add(seed_id)

    pool: dict[str, None] = {}
    for edges in (references, citations):
        for paper_id in depth1:
            for neighbour in sorted(edges.get(paper_id, ())):
                if neighbour not in excluded:
                    pool.setdefault(neighbour)
    return list(pool)


def score_candidates(
    candidates: list[str],
    depth1: list[str],
    references: Mapping[str, Set[str]],
    citations: Mapping[str, Set[str]],
    seed_citations: Set[str],
) -> list[ScoredCandidate]:
    """Score candidates, highest first.

    bc hits: depth-1 papers whose citing set holds the candidate.
    cc hits: depth-1 papers whose reference set holds the candidate, plus one
    if the candidate cites the seed, clamped to the depth-1 size so a single
    well-connected paper cannot dominate on volume.
    Both are divided by the depth-1 size; the score is their even blend.
    Ties keep candidate order.
    """
    pool = set(candidates)
    bc_hits: Counter[str] = Counter()
    cc_hits: Counter[str] = Counter()
    for paper_id in depth1:
        bc_hits.update(pool.intersection(citations.get(paper_id, ())))
        cc_hits.update(pool.intersection(references.get(paper_id, ())))

    size = max(len(depth1), 1)
    scored = []
    for c in candidates:
        bc = bc_hits[c]
        cc = min(cc_hits[c] + (1 if c in seed_citations else 0), size)
        bc_score = bc / size
        cc_score = cc / size
        scored.append(ScoredCandidate(
            paper_id=c,
            bc_hits=bc,
            cc_hits=cc,
            bc_score=bc_score,
            cc_score=cc_score,
            score=BC_WEIGHT * bc_score + CC_WEIGHT * cc_score,
        ))

    # sorted() is stable, so equal scores keep pool order
    return sorted(scored, key=lambda s: s.score, reverse=True)
