"""Title and DOI of the scanned document itself."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from bibliography.models import DocumentMetadata
from bibliography.ocr import (
    TITLE_LABEL,
    OcrPage,
    UnrecognizedOcrShape,
    load_ocr_file,
    normalize_text,
    read_pages,
)
from bibliography.parser import extract_doi

logger = logging.getLogger(__name__)

PAGES_TO_SCAN = 3
MIN_TITLE_LENGTH = 11


def extract_document_metadata(document: Any) -> DocumentMetadata:
    """Find the document title and DOI on its first pages.

    Both fields are None when absent; malformed input is not an error.
    """
    try:
        pages = read_pages(document)[:PAGES_TO_SCAN]
    except UnrecognizedOcrShape as exc:
        logger.info("No document metadata extracted: %s", exc)
        return DocumentMetadata()
    return DocumentMetadata(title=_find_title(pages), doi=_find_doi(pages))


def extract_document_metadata_file(path: Path) -> DocumentMetadata:
    return extract_document_metadata(load_ocr_file(path))


def _find_title(pages: list[OcrPage]) -> Optional[str]:
    # Title blocks on the same page are pieces of one wrapped title
    for page in pages:
        parts = [
            normalize_text(b.content) for b in page.blocks if b.label == TITLE_LABEL
        ]
        title = " ".join(p for p in parts if p)
        if len(title) >= MIN_TITLE_LENGTH:
            return title
    return None


def _find_doi(pages: list[OcrPage]) -> Optional[str]:
    for page in pages:
        for block in page.blocks:
            doi = extract_doi(block.content)
            if doi:
                return doi
    return None
