"""Map Semantic Scholar paper records to display fields."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote, urlparse

from related.models import PaperCard, RankedPaper, ScoredCandidate

SNIPPET_LENGTH = 250
MAX_AUTHORS = 3

ACADEMIC_DOMAINS = [
    "arxiv.org",
    "science.org",
    "nature.com",
    "springer.com",
    "ieee.org",
    "ieeexplore.ieee.org",
    "acm.org",
    "dl.acm.org",
    "sciencedirect.com",
    "wiley.com",
    "onlinelibrary.wiley.com",
    "plos.org",
    "cell.com",
    "pnas.org",
    "oup.com",
    "academic.oup.com",
    "tandfonline.com",
    "mdpi.com",
    "frontiersin.org",
    "biorxiv.org",
    "medrxiv.org",
    "pubmed.ncbi.nlm.nih.gov",
    "researchgate.net",
]


def _external_ids(paper: dict) -> dict:
    ext = paper.get("externalIds")
    return ext if isinstance(ext, dict) else {}


def paper_url(paper: dict) -> str:
    """Best landing page: arXiv abstract, then DOI resolver, then PubMed."""
    ext = _external_ids(paper)
    if ext.get("ArXiv"):
        return f"https://arxiv.org/abs/{ext['ArXiv']}"
    if ext.get("DOI"):
        return f"https://doi.org/{quote(str(ext['DOI']), safe='/')}"
    if ext.get("PubMed"):
        return f"https://pubmed.ncbi.nlm.nih.gov/{ext['PubMed']}"
    return paper.get("url") or ""


def paper_domain(paper: dict) -> str:
    ext = _external_ids(paper)
    if ext.get("ArXiv"):
        return "arxiv.org"
    if ext.get("DOI"):
        return "doi.org"
    if ext.get("PubMed"):
        return "pubmed.ncbi.nlm.nih.gov"
    host = urlparse(paper.get("url") or "").hostname or ""
    return host.removeprefix("www.")


def is_academic(domain: str, url: str) -> bool:
    return any(d in domain or d in url for d in ACADEMIC_DOMAINS)


def format_authors(paper: dict) -> str:
    authors = paper.get("authors") or []
    names = [a.get("name", "") for a in authors[:MAX_AUTHORS] if isinstance(a, dict)]
    names = [n for n in names if n]
    if not names:
        return ""
    joined = ", ".join(names)
    if len(authors) > MAX_AUTHORS:
        joined += " et al."
    return joined


def make_snippet(abstract: Optional[str]) -> str:
    if not abstract:
        return ""
    if len(abstract) > SNIPPET_LENGTH:
        return abstract[:SNIPPET_LENGTH] + "…"
    return abstract


def _year(paper: dict) -> Optional[int]:
    year = paper.get("year")
    return year if isinstance(year, int) else None


def paper_to_card(paper: dict, fallback_title: str = "") -> PaperCard:
    url = paper_url(paper)
    domain = paper_domain(paper)
    return PaperCard(
        title=paper.get("title") or fallback_title,
        url=url,
        snippet=make_snippet(paper.get("abstract")),
        authors=format_authors(paper),
        year=_year(paper),
        venue=paper.get("venue") or "",
        domain=domain,
        is_academic=is_academic(domain, url),
    )


def paper_to_ranked(paper: dict, candidate: ScoredCandidate) -> RankedPaper:
    card = paper_to_card(paper)
    return RankedPaper(
        title=card.title,
        url=card.url,
        snippet=card.snippet,
        authors=card.authors,
        year=card.year,
        venue=card.venue,
        domain=card.domain,
        is_academic=card.is_academic,
        paper_id=candidate.paper_id,
        score=candidate.score,
        bc_score=candidate.bc_score,
        cc_score=candidate.cc_score,
    )
