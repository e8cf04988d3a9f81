"""Reconstruct bibliography entries from block-level OCR output.

OCR splits a reference list into blocks that rarely line up with entries:
one entry may wrap over several blocks (or pages), and one block may hold
several entries. The pipeline below rebuilds entries in reading order and
derives one search key per entry (a DOI when present, otherwise a title
guessed from common citation styles).

    collect -> order -> split at starters -> stitch -> extract key -> filter
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Optional

from bibliography.models import EntryBuilder, ParsedReference, RawBlock, Segment
from bibliography.ocr import (
    REFERENCE_LABEL,
    OcrPage,
    UnrecognizedOcrShape,
    load_ocr_file,
    normalize_text,
    read_pages,
)

logger = logging.getLogger(__name__)

MIN_SEARCH_TERM_LENGTH = 4

# Optional OCR noise (0-2 non-digit chars), 1-4 digit number, a period, rest.
_STARTER_RE = re.compile(r"^[ \t]*([^0-9\n]{0,2}?)(\d{1,4})\.\s*(.*)$", re.DOTALL)
_CITATION_LINE_RE = re.compile(r"^\s*Citation:\s+\S", re.IGNORECASE)
_URL_TAIL_RE = re.compile(r"(?:https?://|doi:|10\.\d{4,})$", re.IGNORECASE)
_LEADING_LETTER_RE = re.compile(r"^[a-zA-Z]")

DOI_PATTERNS = [
    re.compile(r"(?:https?://)?(?:dx\.)?doi\.org/(10\.\d{4,}/\S+)", re.IGNORECASE),
    re.compile(r"\bDOI:\s*(10\.\d{4,}/\S+)", re.IGNORECASE),
    re.compile(r"\b(10\.\d{4,}/\S+)"),
]
_DOI_TRAILING = ".,;:)]}\"'"

_QUOTES = "\"“”"
_EDGE_QUOTES_RE = re.compile("^[\"'“”‘’]+|[\"'“”‘’]+$")
_QUOTED_TITLE_RE = re.compile(f"[{_QUOTES}]([^{_QUOTES}]{{10,300}})[{_QUOTES}]")
# "(2019). Title. Journal" - the title starts right after the year marker
_APA_YEAR_RE = re.compile(r"\(\d{4}\)\.\s+")
# "Nature 421, ..." / "Rev. Sci. Instrum. 74, ..."
_JOURNAL_PREFIX_RE = re.compile(
    r"(?:^|[\s(])([A-Z][A-Za-z.]+(?:\s+[A-Z][A-Za-z.]+)*\.?)\s+\d+,"
)
# "Smith, J., Doe, A. B. & Roe, C." / "et al."
_AUTHOR_LIST_RE = re.compile(
    r"^(?:[A-Z][A-Za-zÀ-ÖØ-öø-ÿ'-]+,\s*(?:[A-Z]\.\s?)+"
    r"(?:,\s*|&\s*|and\s*)?|et al\.?,?\s*)+"
)
_YEAR_SKIP_RE = re.compile(r"^\(?\d{4}\)?\.\s*")
_SENTENCE_END_RE = re.compile(r"\.\s+")
_JOURNAL_AFTER_TITLE_RE = re.compile(r"^[A-Z][A-Za-z.]*(?:\s+[A-Z][A-Za-z.]+)*\.?\s+\d")


def parse_references(document: Any) -> list[ParsedReference]:
    """Extract bibliography entries from an OCR document.

    Never raises on malformed input: unknown shapes, missing reference blocks
    and unparsable entries yield an empty or partial list. Output is
    deterministic for identical input.
    """
    try:
        pages = read_pages(document)
    except UnrecognizedOcrShape as exc:
        logger.info("No references extracted: %s", exc)
        return []

    segments: list[Segment] = []
    for block in collect_raw_blocks(pages):
        segments.extend(split_block(block))

    references = []
    for entry in stitch_segments(segments):
        text = entry.stitched_text()
        doi = extract_doi(text)
        search_term = doi if doi else extract_title(text)
        if len(search_term) < MIN_SEARCH_TERM_LENGTH:
            logger.debug("Dropping reference %d: search term %r too short", entry.ref_num, search_term)
            continue
        references.append(entry.finalize(len(references), search_term, doi is not None))

    logger.debug("Extracted %d references from %d segments", len(references), len(segments))
    return references


def parse_references_file(path: Path) -> list[ParsedReference]:
    """Load an OCR JSON file and extract its references."""
    return parse_references(load_ocr_file(path))


# ---------------------------------------------------------------------------
# Collect and order
# ---------------------------------------------------------------------------


def collect_raw_blocks(pages: list[OcrPage]) -> list[RawBlock]:
    """Gather reference blocks in reading order.

    OCR block order wins when present; visual position is unreliable on
    multi-column layouts and is only the fallback.
    """
    raw = []
    for page in pages:
        for block in page.blocks:
            if block.label != REFERENCE_LABEL:
                continue
            content = normalize_text(block.content)
            if not content:
                continue
            raw.append(RawBlock(
                page_index=page.index,
                block_id=block.block_id,
                block_order=block.block_order,
                bbox_y0=block.bbox[1],
                bbox_x0=block.bbox[0],
                content=content,
            ))
    raw.sort(key=_reading_order_key)
    return raw


def _reading_order_key(block: RawBlock) -> tuple:
    if block.block_order is not None:
        return (block.page_index, 0, block.block_order, 0.0, 0.0)
    return (block.page_index, 1, 0, block.bbox_y0, block.bbox_x0)


# ---------------------------------------------------------------------------
# Starter detection and block splitting
# ---------------------------------------------------------------------------


def match_starter(text: str) -> Optional[tuple[int, str]]:
    """Return (reference number, remaining text) if ``text`` opens an entry."""
    m = _STARTER_RE.match(text)
    if not m:
        return None
    return int(m.group(2)), m.group(3).strip()


def is_citation_line(text: str) -> bool:
    return bool(_CITATION_LINE_RE.match(text))


def split_block(block: RawBlock) -> list[Segment]:
    """Split a block at every line that starts a new entry.

    Lines before the first starter form their own segment; it continues
    whatever entry precedes this block.
    """
    lines = block.content.split("\n")
    starters = [i for i, line in enumerate(lines) if match_starter(line) is not None]

    if not starters or starters == [0]:
        return [_segment(block, block.content, 0)]

    bounds = [0] + starters + [len(lines)] if starters[0] > 0 else starters + [len(lines)]
    segments = []
    for start, end in zip(bounds, bounds[1:]):
        text = "\n".join(lines[start:end]).strip()
        if text:
            segments.append(_segment(block, text, len(segments)))
    return segments


def _segment(block: RawBlock, text: str, index: int) -> Segment:
    return Segment(
        text=text,
        page_index=block.page_index,
        block_id=block.block_id,
        block_order=block.block_order,
        segment_index=index,
    )


# ---------------------------------------------------------------------------
# Stitching
# ---------------------------------------------------------------------------


def join_chunk(current: str, chunk: str) -> str:
    """Append a wrapped fragment to the text built so far."""
    if not current:
        return chunk
    if not chunk:
        return current
    # "continu-" + "ation" -> "continuation"
    if current.endswith("-") and _LEADING_LETTER_RE.match(chunk):
        return current[:-1] + chunk
    # URLs and DOIs broken across lines
    if _URL_TAIL_RE.search(current):
        return current + chunk
    return current + " " + chunk


def fold_lines(text: str) -> str:
    """Join the lines of one segment, dropping "Citation:" artifacts."""
    folded = ""
    for line in text.split("\n"):
        line = line.strip()
        if not line or is_citation_line(line):
            continue
        folded = join_chunk(folded, line)
    return folded


def stitch_segments(segments: list[Segment]) -> list[EntryBuilder]:
    """Walk segments in order and group them into entries.

    A starter segment opens a new entry; anything else continues the current
    one. Fragments seen before any entry exists are held as orphans and
    prepended to the next entry that opens.
    """
    output: list[EntryBuilder] = []
    current: Optional[EntryBuilder] = None
    orphans: list[tuple[Segment, str]] = []

    for seg in segments:
        text = seg.text.strip()
        if not text:
            continue

        starter = match_starter(text)
        if starter is not None:
            if current is not None:
                output.append(current)
            ref_num, rest = starter
            rest = fold_lines(rest)
            current = EntryBuilder(
                ref_num=ref_num,
                text_parts=[rest] if rest else [],
                raw_fragments=[text],
                source_blocks=[seg.source()],
            )
            if orphans:
                _prepend_orphans(current, orphans)
                orphans = []
            continue

        folded = fold_lines(text)
        if not folded:
            continue
        if current is None:
            orphans.append((seg, folded))
            continue

        if current.text_parts:
            current.text_parts[-1] = join_chunk(current.text_parts[-1], folded)
        else:
            current.text_parts.append(folded)
        current.raw_fragments.append(text)
        current.source_blocks.append(seg.source())

    if current is not None:
        output.append(current)

    if orphans and output:
        last = output[-1]
        for seg, folded in orphans:
            last.text_parts.append(folded)
            last.raw_fragments.append(seg.text)
            last.source_blocks.append(seg.source())

    return output


def _prepend_orphans(entry: EntryBuilder, orphans: list[tuple[Segment, str]]) -> None:
    entry.text_parts[:0] = [folded for _, folded in orphans]
    entry.raw_fragments[:0] = [seg.text for seg, _ in orphans]
    entry.source_blocks[:0] = [seg.source() for seg, _ in orphans]


# ---------------------------------------------------------------------------
# Search key extraction
# ---------------------------------------------------------------------------


def extract_doi(text: str) -> Optional[str]:
    """Find the first DOI in ``text``, trailing punctuation removed."""
    for pattern in DOI_PATTERNS:
        m = pattern.search(text)
        if m:
            doi = m.group(1).rstrip(_DOI_TRAILING)
            if doi:
                return doi
    return None


def extract_title(text: str) -> str:
    """Guess the title of a reference that has no DOI.

    Tries, in order: a quoted title, APA "(YYYY). Title.", the text before a
    "Journal 12," marker, the sentence after an author list, the first
    plausible sentence, and finally the first 150 characters.
    """
    t = _EDGE_QUOTES_RE.sub("", text).strip()

    m = _QUOTED_TITLE_RE.search(t)
    if m:
        return m.group(1).strip()

    m = _APA_YEAR_RE.search(t)
    if m:
        after_year = t[m.end():]
        end = _find_title_end(after_year)
        if end > 10:
            return after_year[:end].strip()

    m = _JOURNAL_PREFIX_RE.search(t)
    if m:
        candidate = _title_before_journal(t[:m.start()].strip())
        if candidate and len(candidate) > 10:
            return candidate

    m = _AUTHOR_LIST_RE.match(t)
    if m and len(m.group(0)) > 5:
        after_authors = t[m.end():].strip()
        year = _YEAR_SKIP_RE.match(after_authors)
        body = after_authors[year.end():] if year else after_authors
        end = _find_title_end(body)
        if end > 10:
            return body[:end].strip()

    parts = _SENTENCE_END_RE.split(t)
    if len(parts) >= 3:
        candidate = parts[1].strip()
        if 10 < len(candidate) < 300:
            return candidate
    if len(parts) >= 2:
        for part in parts:
            part = part.strip()
            if 10 < len(part) < 300:
                return part

    return t[:150].strip()


def _title_before_journal(text: str) -> str:
    for part in reversed(_SENTENCE_END_RE.split(text)):
        part = part.strip()
        if 10 < len(part) < 300 and re.search(r"[a-z]", part):
            return part
    return text.strip()


def _find_title_end(text: str) -> int:
    """Index where the title ends: before a "Journal 12" sentence if any."""
    for m in _SENTENCE_END_RE.finditer(text):
        if _JOURNAL_AFTER_TITLE_RE.match(text[m.end():]):
            return m.start()
    first_period = text.find(".")
    return first_period if first_period > 10 else len(text)
