"""Entry points for ranking related papers.

``find_related_papers`` takes already-extracted search terms and a seed;
``related_papers_for_document`` runs the extractors over an OCR payload first.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence, Union

from related.backends.semanticscholar import SemanticScholarGraph
from related.config import SnowballSettings, get_graph_method, load_settings
from related.models import GraphConstructionMethod, RelatedPapersResponse
from related.ratelimit import RateLimiter
from related.snowball import SnowballGraphBuilder

logger = logging.getLogger(__name__)

_BUILDERS = {
    GraphConstructionMethod.SNOWBALL: SnowballGraphBuilder,
}


def resolve_method(method: Union[str, GraphConstructionMethod, None]) -> GraphConstructionMethod:
    """Parse a method name, falling back to RELATED_GRAPH_METHOD."""
    if isinstance(method, GraphConstructionMethod):
        return method
    name = (method or get_graph_method()).strip().lower()
    try:
        return GraphConstructionMethod(name)
    except ValueError:
        valid = ", ".join(m.value for m in GraphConstructionMethod)
        raise ValueError(f"Unknown graph construction method {name!r} (expected one of: {valid})") from None


def _usable_terms(
    search_terms: Sequence[str],
    is_doi_flags: Sequence[bool],
) -> tuple[list[str], list[bool]]:
    terms: list[str] = []
    flags: list[bool] = []
    for i, term in enumerate(search_terms):
        term = (term or "").strip()
        if not term:
            continue
        terms.append(term)
        flags.append(bool(is_doi_flags[i]) if i < len(is_doi_flags) else False)
    return terms, flags


async def find_related_papers(
    search_terms: Sequence[str],
    is_doi_flags: Sequence[bool],
    seed_title: str,
    seed_doi: Optional[str] = None,
    *,
    method: Union[str, GraphConstructionMethod, None] = None,
    client: Optional[SemanticScholarGraph] = None,
    settings: Optional[SnowballSettings] = None,
) -> RelatedPapersResponse:
    """Rank papers related to a document and its references.

    Args:
        search_terms: One DOI or title per reference.
        is_doi_flags: Parallel to ``search_terms``; missing entries count as titles.
        seed_title: Title of the document itself.
        seed_doi: DOI of the document itself, if known.
        method: Graph construction method; defaults to RELATED_GRAPH_METHOD.
        client: Graph client to use. When omitted one is created from the
            environment and closed afterwards.
        settings: Crawl tunables; defaults to ``load_settings()``.

    Raises:
        ValueError: if there are no usable search terms and no seed, or the
            method is unknown.
    """
    terms, flags = _usable_terms(search_terms, is_doi_flags)
    seed_title = (seed_title or "").strip()
    seed_doi = (seed_doi or "").strip() or None
    if not terms and not seed_title and not seed_doi:
        raise ValueError("Nothing to search: no reference terms and no seed title or DOI")

    builder_cls = _BUILDERS[resolve_method(method)]
    settings = settings or load_settings()
    logger.debug("Finding related papers for %r from %d terms", seed_title or seed_doi, len(terms))

    if client is not None:
        return await builder_cls(client, settings).build(terms, flags, seed_title, seed_doi)

    limiter = RateLimiter(settings.max_requests_per_second)
    async with SemanticScholarGraph(limiter, max_edges=settings.max_edges) as graph:
        return await builder_cls(graph, settings).build(terms, flags, seed_title, seed_doi)


async def related_papers_for_document(
    ocr_document: Any,
    *,
    method: Union[str, GraphConstructionMethod, None] = None,
    client: Optional[SemanticScholarGraph] = None,
    settings: Optional[SnowballSettings] = None,
) -> RelatedPapersResponse:
    """Extract references and metadata from an OCR payload, then rank."""
    from bibliography.metadata import extract_document_metadata
    from bibliography.parser import parse_references

    references = parse_references(ocr_document)
    metadata = extract_document_metadata(ocr_document)
    logger.info("Extracted %d references (title found: %s)", len(references), bool(metadata.title))

    return await find_related_papers(
        [r.search_term for r in references],
        [r.is_doi for r in references],
        metadata.title or "",
        metadata.doi,
        method=method,
        client=client,
        settings=settings,
    )
