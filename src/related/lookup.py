"""Per-title search of a document's references.

A lighter alternative to the snowball crawl: each reference title is sent to
keyword search and the top hits are returned as display cards.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from related.backends.semanticscholar import METADATA_FIELDS, SEARCH_LIMIT, SemanticScholarGraph
from related.models import TitleLookup, TitleLookupResponse
from related.presentation import paper_to_card

logger = logging.getLogger(__name__)

CONCURRENCY = 3
PAUSE_SECONDS = 0.5


async def _lookup_one(client: SemanticScholarGraph, query: str) -> TitleLookup:
    hits = await client.search(query, limit=SEARCH_LIMIT, fields=METADATA_FIELDS)
    return TitleLookup(query=query, results=[paper_to_card(h, fallback_title=query) for h in hits])


async def lookup_titles(
    titles: Sequence[str],
    client: SemanticScholarGraph,
    *,
    pdf_title: str = "",
    concurrency: int = CONCURRENCY,
    pause: float = PAUSE_SECONDS,
    sleep=asyncio.sleep,
) -> TitleLookupResponse:
    """Search every title, ``concurrency`` at a time, pausing between batches.

    Raises:
        ValueError: if ``titles`` is empty.
    """
    if not titles:
        raise ValueError("No titles provided.")

    results: list[TitleLookup] = []
    domains: dict[str, None] = {}
    for start in range(0, len(titles), concurrency):
        batch = titles[start:start + concurrency]
        lookups = await asyncio.gather(*(_lookup_one(client, t) for t in batch))
        results.extend(lookups)
        for lookup in lookups:
            for card in lookup.results:
                if card.is_academic and card.domain:
                    domains.setdefault(card.domain)
        if start + concurrency < len(titles):
            await sleep(pause)

    logger.info("Looked up %d titles, %d academic domains", len(titles), len(domains))
    return TitleLookupResponse(
        pdf_title=pdf_title,
        results=results,
        academic_domains=list(domains),
        total_citations=len(titles),
    )
