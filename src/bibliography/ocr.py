"""Adapters from OCR layout JSON to typed pages and blocks.

The OCR service emits PaddleOCR-style layout results. Two page shapes are
recognized:

- ``{"page": 0, "data": {...}}`` where ``data`` holds a ``parsing_res_list``,
  either directly or nested under ``res`` / ``result`` / ``parsing_result`` /
  ``blocks`` / ``children`` (objects or lists of objects, any depth).
- ``{"page": 0, "blocks": [...]}`` with the blocks listed on the page itself.

Blocks carry their label, text, and optional id / order / bbox under a few
alternative key names depending on the OCR pipeline version.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)

REFERENCE_LABEL = "reference_content"
TITLE_LABEL = "doc_title"

_LABEL_KEYS = ("block_label", "label")
_CONTENT_KEYS = ("block_content", "text", "content", "rec_text")
_BBOX_KEYS = ("block_bbox", "bbox")
_NESTING_KEYS = ("res", "result", "parsing_result", "blocks", "children")

_WS_RUN_RE = re.compile(r"[ \t]+")


class UnrecognizedOcrShape(ValueError):
    """The OCR document matches none of the known layouts."""


@dataclass(frozen=True)
class OcrBlock:
    label: str
    content: str
    block_id: Optional[int] = None
    block_order: Optional[int] = None
    bbox: tuple[float, float] = (0.0, 0.0)  # (x0, y0)


@dataclass(frozen=True)
class OcrPage:
    index: int
    blocks: tuple[OcrBlock, ...]


def normalize_text(text: str) -> str:
    """Collapse whitespace runs and drop spaces around line breaks."""
    text = text.strip().replace("\r\n", "\n")
    text = _WS_RUN_RE.sub(" ", text)
    return text.replace(" \n", "\n").replace("\n ", "\n")


def load_ocr_file(path: Path) -> Any:
    """Read an OCR result JSON file."""
    return json.loads(Path(path).read_text(encoding="utf-8"))


def read_pages(document: Any) -> list[OcrPage]:
    """Convert an OCR document into typed pages.

    Raises UnrecognizedOcrShape when the top-level shape is not a mapping
    with a ``pages`` list. Individual malformed pages or blocks are skipped.
    """
    if not isinstance(document, dict):
        raise UnrecognizedOcrShape(
            f"expected an object with 'pages', got {type(document).__name__}"
        )
    pages = document.get("pages")
    if not isinstance(pages, list):
        raise UnrecognizedOcrShape("OCR document has no 'pages' list")

    result = []
    for position, page in enumerate(pages):
        if not isinstance(page, dict):
            logger.debug("Skipping non-object page at position %d", position)
            continue
        blocks = tuple(
            block for block in (_to_block(raw) for raw in _page_raw_blocks(page))
            if block is not None
        )
        result.append(OcrPage(index=_page_index(page, position), blocks=blocks))
    return result


def _page_index(page: dict, position: int) -> int:
    data = page.get("data")
    if isinstance(data, dict):
        idx = _as_int(data.get("page_index"))
        if idx is not None:
            return idx
    idx = _as_int(page.get("page"))
    return idx if idx is not None else position


def _page_raw_blocks(page: dict) -> list[dict]:
    if "data" in page:
        return list(_walk_parsing_results(page["data"]))
    # Flat layout: blocks listed on the page itself
    return list(_walk_parsing_results(page))


def _walk_parsing_results(data: Any) -> Iterator[dict]:
    """Yield every block found in any parsing_res_list under ``data``."""
    if isinstance(data, list):
        for item in data:
            yield from _walk_parsing_results(item)
        return
    if not isinstance(data, dict):
        return

    parsing = data.get("parsing_res_list")
    if isinstance(parsing, list):
        for block in parsing:
            if isinstance(block, dict):
                yield block

    for key in _NESTING_KEYS:
        nested = data.get(key)
        if not nested:
            continue
        if key == "blocks" and isinstance(nested, list) and _looks_like_blocks(nested):
            yield from (b for b in nested if isinstance(b, dict))
        else:
            yield from _walk_parsing_results(nested)


def _looks_like_blocks(items: list) -> bool:
    return any(isinstance(b, dict) and _first(b, _LABEL_KEYS) is not None for b in items)


def _to_block(raw: dict) -> Optional[OcrBlock]:
    label = _first(raw, _LABEL_KEYS)
    if not isinstance(label, str):
        return None
    content = _first(raw, _CONTENT_KEYS)
    if not isinstance(content, str):
        content = ""
    return OcrBlock(
        label=label,
        content=content,
        block_id=_as_int(raw.get("block_id")),
        block_order=_as_int(raw.get("block_order")),
        bbox=_bbox_origin(_first(raw, _BBOX_KEYS)),
    )


def _first(raw: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _bbox_origin(bbox: Any) -> tuple[float, float]:
    if not isinstance(bbox, (list, tuple)):
        return (0.0, 0.0)
    coords = []
    for value in bbox[:2]:
        try:
            coords.append(float(value))
        except (TypeError, ValueError):
            coords.append(0.0)
    while len(coords) < 2:
        coords.append(0.0)
    return coords[0], coords[1]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None
