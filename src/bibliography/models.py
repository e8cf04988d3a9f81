"""Data models for references extracted from OCR output."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Optional


@dataclass(frozen=True)
class SourceBlock:
    """Where a fragment of a reference came from in the OCR document."""
    page_index: int
    block_id: Optional[int]
    block_order: Optional[int]
    segment_index: int


@dataclass(frozen=True)
class RawBlock:
    """One OCR block labeled as bibliography content."""
    page_index: int
    block_id: Optional[int]
    block_order: Optional[int]
    bbox_y0: float
    bbox_x0: float
    content: str


@dataclass(frozen=True)
class Segment:
    """A RawBlock slice holding at most one reference starter."""
    text: str
    page_index: int
    block_id: Optional[int]
    block_order: Optional[int]
    segment_index: int

    def source(self) -> SourceBlock:
        return SourceBlock(
            page_index=self.page_index,
            block_id=self.block_id,
            block_order=self.block_order,
            segment_index=self.segment_index,
        )


@dataclass(frozen=True)
class ParsedReference:
    """A stitched bibliography entry and the key used to look it up."""
    ref_num: int            # number printed in the document (1-based)
    index: int              # position in the output list (0-based)
    text: str               # stitched text without the leading number
    search_term: str        # DOI if present, otherwise heuristic title
    is_doi: bool
    raw_fragments: tuple[str, ...] = ()
    source_blocks: tuple[SourceBlock, ...] = ()

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DocumentMetadata:
    """Title and DOI of the scanned document itself."""
    title: Optional[str] = None
    doi: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EntryBuilder:
    """Mutable state for the reference currently being stitched."""
    ref_num: int
    text_parts: list[str] = field(default_factory=list)
    raw_fragments: list[str] = field(default_factory=list)
    source_blocks: list[SourceBlock] = field(default_factory=list)

    def finalize(self, index: int, search_term: str, is_doi: bool) -> ParsedReference:
        return ParsedReference(
            ref_num=self.ref_num,
            index=index,
            text=self.stitched_text(),
            search_term=search_term,
            is_doi=is_doi,
            raw_fragments=tuple(self.raw_fragments),
            source_blocks=tuple(self.source_blocks),
        )

    def stitched_text(self) -> str:
        return " ".join(self.text_parts).strip()
