"""Data models for related-paper results."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional


class EdgeDirection(str, Enum):
    """Which side of a paper's citation edges to list."""
    REFERENCES = "references"   # papers this paper cites
    CITATIONS = "citations"     # papers citing this paper

    @property
    def neighbour_key(self) -> str:
        return "citedPaper" if self is EdgeDirection.REFERENCES else "citingPaper"


class GraphConstructionMethod(str, Enum):
    SNOWBALL = "snowball"


@dataclass(frozen=True)
class PaperHit:
    """A paper resolved in the graph API."""
    paper_id: str
    title: str = ""
    doi: str = ""


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate paper and its coupling / co-citation evidence."""
    paper_id: str
    bc_hits: int
    cc_hits: int
    bc_score: float
    cc_score: float
    score: float


@dataclass
class PaperCard:
    """Display fields for a paper record."""

    title: str
    url: str = ""
    snippet: str = ""
    authors: str = ""
    year: Optional[int] = None
    venue: str = ""
    domain: str = ""
    is_academic: bool = False

    def has_arxiv(self) -> bool:
        return "arxiv.org" in self.url


@dataclass
class RankedPaper(PaperCard):
    """A recommended paper with its relevance scores in [0, 1]."""

    paper_id: str = ""
    score: float = 0.0
    bc_score: float = 0.0
    cc_score: float = 0.0


@dataclass
class RelatedPapersResponse:
    """Outcome of one related-papers run."""

    pdf_title: str
    pdf_doi: Optional[str] = None
    seed_paper_id: Optional[str] = None
    ranked_papers: list[RankedPaper] = field(default_factory=list)
    total_candidates: int = 0      # pool size before top-N pruning
    resolved_citations: int = 0    # references resolved to graph ids

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TitleLookup:
    """Search hits for one reference title."""

    query: str
    results: list[PaperCard] = field(default_factory=list)


@dataclass
class TitleLookupResponse:
    """Per-title search results for a document's references."""

    pdf_title: str
    results: list[TitleLookup] = field(default_factory=list)
    academic_domains: list[str] = field(default_factory=list)
    total_citations: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
