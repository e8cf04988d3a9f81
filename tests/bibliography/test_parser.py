"""Tests for bibliography.parser: reference stitching and key extraction."""

import pytest

from bibliography.models import RawBlock
from bibliography.parser import (
    extract_doi,
    extract_title,
    fold_lines,
    join_chunk,
    match_starter,
    parse_references,
    split_block,
)


def _ref_block(content, order=None, bbox=None, block_id=None):
    block = {"block_label": "reference_content", "block_content": content}
    if order is not None:
        block["block_order"] = order
    if block_id is not None:
        block["block_id"] = block_id
    if bbox is not None:
        block["block_bbox"] = bbox
    return block


def _doc(*pages):
    return {"pages": [
        {"page": i, "data": {"parsing_res_list": list(blocks)}} for i, blocks in enumerate(pages)
    ]}


def _raw(content, page=0, order=0):
    return RawBlock(page_index=page, block_id=order, block_order=order, bbox_y0=0.0, bbox_x0=0.0, content=content)


class TestMatchStarter:
    def test_plain_number(self):
        assert match_starter("12. Smith, J. Title") == (12, "Smith, J. Title")

    def test_ocr_noise_before_number(self):
        assert match_starter("[3. Doe, A.") == (3, "Doe, A.")

    def test_not_a_starter(self):
        assert match_starter("Nature 521, 436-444.") is None
        assert match_starter("continued text") is None

    def test_too_many_digits(self):
        assert match_starter("12345. Too long") is None


class TestSplitBlock:
    def test_one_starter(self):
        segments = split_block(_raw("1. Smith, A. Title one."))
        assert [s.text for s in segments] == ["1. Smith, A. Title one."]

    def test_two_starters(self):
        segments = split_block(_raw("1. Smith, A. Title one.\n2. Jones, B. Title two."))
        assert [s.text for s in segments] == ["1. Smith, A. Title one.", "2. Jones, B. Title two."]
        assert [s.segment_index for s in segments] == [0, 1]

    def test_prefix_is_own_segment(self):
        segments = split_block(_raw("tail of previous entry.\n4. Next, C. Entry."))
        assert [s.text for s in segments] == ["tail of previous entry.", "4. Next, C. Entry."]

    def test_no_starter(self):
        segments = split_block(_raw("just a wrapped line\nand another"))
        assert len(segments) == 1
        assert segments[0].segment_index == 0


class TestJoinChunk:
    def test_space_join(self):
        assert join_chunk("first part", "second") == "first part second"

    def test_dehyphenate(self):
        assert join_chunk("continu-", "ation of work") == "continuation of work"

    def test_hyphen_before_digit_kept(self):
        assert join_chunk("pages 12-", "14") == "pages 12- 14"

    def test_url_tail_joins_without_space(self):
        assert join_chunk("see https://", "doi.org/10.1/x") == "see https://doi.org/10.1/x"
        assert join_chunk("doi:", "10.1000/abc") == "doi:10.1000/abc"

    def test_empty_sides(self):
        assert join_chunk("", "x") == "x"
        assert join_chunk("x", "") == "x"


class TestFoldLines:
    def test_drops_citation_lines(self):
        assert fold_lines("Some text\nCitation: Smith 2020\nmore") == "Some text more"

    def test_dehyphenates_across_lines(self):
        assert fold_lines("Graph neu-\nral networks") == "Graph neural networks"


class TestExtractDoi:
    def test_doi_url(self):
        assert extract_doi("see https://doi.org/10.1000/xyz123.") == "10.1000/xyz123"

    def test_dx_doi_url(self):
        assert extract_doi("http://dx.doi.org/10.5555/ABC-1") == "10.5555/ABC-1"

    def test_doi_prefix(self):
        assert extract_doi("Journal 3, 4 (2001). DOI: 10.1234/abc)") == "10.1234/abc"

    def test_bare_doi(self):
        assert extract_doi("Cell 5, 6 (2010) 10.1016/j.cell.2010.01.001;") == "10.1016/j.cell.2010.01.001"

    def test_url_form_wins_over_bare(self):
        text = "10.9999/first and https://doi.org/10.1111/second"
        assert extract_doi(text) == "10.1111/second"

    def test_none(self):
        assert extract_doi("No identifier here 10.12/short") is None


class TestExtractTitle:
    def test_quoted_title(self):
        text = "A. Author, “A quoted title of a paper,” Proc. IEEE, 2020."
        assert extract_title(text) == "A quoted title of a paper,"

    def test_apa_year(self):
        text = "Smith, J. & Doe, A. (2019). Deep learning for citation graphs. Nature 521, 436-444."
        assert extract_title(text) == "Deep learning for citation graphs"

    def test_title_before_journal(self):
        text = "Smith J, Doe A. Measuring coupling between papers. Rev. Sci. Instrum. 74, 12-19 (2003)."
        assert extract_title(text) == "Measuring coupling between papers."

    def test_fallback_first_150_chars(self):
        text = "x" * 200
        assert extract_title(text) == "x" * 150

    def test_strips_edge_quotes(self):
        assert extract_title("'short'") == "short"


class TestParseReferences:
    def test_two_entries_in_one_block(self):
        doc = _doc([_ref_block("1. Smith, A. Title one.\n2. Jones, B. Title two.", order=0)])
        refs = parse_references(doc)
        assert [r.ref_num for r in refs] == [1, 2]
        assert [r.index for r in refs] == [0, 1]
        assert refs[0].text == "Smith, A. Title one."

    def test_entry_wrapped_across_blocks_dehyphenated(self):
        doc = _doc([
            _ref_block("4. Smith, J. (2020). A continu-", order=0),
            _ref_block("ation of work on graphs. Science 1, 2.", order=1),
        ])
        refs = parse_references(doc)
        assert len(refs) == 1
        ref = refs[0]
        assert ref.text == "Smith, J. (2020). A continuation of work on graphs. Science 1, 2."
        assert ref.search_term == "A continuation of work on graphs"
        assert ref.is_doi is False
        assert ref.raw_fragments == (
            "4. Smith, J. (2020). A continu-",
            "ation of work on graphs. Science 1, 2.",
        )
        assert [b.block_order for b in ref.source_blocks] == [0, 1]

    def test_entry_wrapped_across_pages(self):
        doc = _doc(
            [_ref_block("1. Alpha, B. (2017). Spanning two", order=5)],
            [_ref_block("pages of a scan. Nature 1, 2.", order=0)],
        )
        refs = parse_references(doc)
        assert len(refs) == 1
        assert refs[0].search_term == "Spanning two pages of a scan"
        assert [b.page_index for b in refs[0].source_blocks] == [0, 1]

    def test_prefix_continues_previous_entry(self):
        doc = _doc([
            _ref_block("1. Alpha, B. (2017). First paper title here. Nature 1, 2.", order=0),
            _ref_block("Extra tail (2001).\n2. Beta, C. (2016). Second paper title here. Cell 5, 6.", order=1),
        ])
        refs = parse_references(doc)
        assert [r.ref_num for r in refs] == [1, 2]
        assert refs[0].text.endswith("Nature 1, 2. Extra tail (2001).")
        assert refs[1].text.startswith("Beta, C.")
        assert refs[1].source_blocks[0].segment_index == 1

    def test_doi_preferred_over_title(self):
        doc = _doc([_ref_block(
            "3. Roe, C. (2011). Some title of a paper. J. Chem. 12, 1-2. https://doi.org/10.1000/xyz123.",
            order=0,
        )])
        ref = parse_references(doc)[0]
        assert ref.search_term == "10.1000/xyz123"
        assert ref.is_doi is True

    def test_doi_preferred_over_quoted_title(self):
        doc = _doc([_ref_block(
            "7. A. Author, “A quoted title of a paper,” Proc. IEEE 87, 1999, doi:10.1109/5.771073",
            order=0,
        )])
        ref = parse_references(doc)[0]
        assert ref.search_term == "10.1109/5.771073"
        assert ref.is_doi is True

    def test_doi_split_across_lines(self):
        doc = _doc([_ref_block("5. Lee, K. (2012). Work on things. Cell 1, 2. https://\ndoi.org/10.1000/split.9", order=0)])
        ref = parse_references(doc)[0]
        assert "https://doi.org/10.1000/split.9" in ref.text
        assert ref.search_term == "10.1000/split.9"

    def test_citation_lines_dropped(self):
        doc = _doc([_ref_block(
            "6. Kim, D. (2015). Some work about citations. Cell 7, 8.\nCitation: Kim D (2015)",
            order=0,
        )])
        ref = parse_references(doc)[0]
        assert "Citation:" not in ref.text
        assert ref.search_term == "Some work about citations"

    def test_orphans_prepended_to_first_entry(self):
        doc = _doc([
            _ref_block("orphan one", order=0),
            _ref_block("orphan two", order=1),
            _ref_block("1. Smith, A. (2010). Title after orphans. Nature 1, 2.", order=2),
        ])
        refs = parse_references(doc)
        assert len(refs) == 1
        assert refs[0].raw_fragments[:2] == ("orphan one", "orphan two")
        assert refs[0].text.startswith("orphan one orphan two Smith, A.")
        assert refs[0].ref_num == 1

    def test_block_order_wins_over_listing_order(self):
        doc = _doc([
            _ref_block("2. Second, B. (2001). The second entry title. Cell 1, 2.", order=1),
            _ref_block("1. First, A. (2000). The first entry title. Cell 1, 2.", order=0),
        ])
        assert [r.ref_num for r in parse_references(doc)] == [1, 2]

    def test_bbox_order_without_block_order(self):
        doc = _doc([
            _ref_block("2. Second, B. (2001). The second entry title. Cell 1, 2.", bbox=[50, 300, 500, 320]),
            _ref_block("1. First, A. (2000). The first entry title. Cell 1, 2.", bbox=[50, 100, 500, 120]),
        ])
        assert [r.ref_num for r in parse_references(doc)] == [1, 2]

    def test_short_terms_filtered_and_reindexed(self):
        doc = _doc([_ref_block(
            "1. ab\n2. Jones, B. (2009). A long enough title here. Cell 3, 4.",
            order=0,
        )])
        refs = parse_references(doc)
        assert [r.ref_num for r in refs] == [2]
        assert refs[0].index == 0

    def test_every_search_term_longer_than_three(self):
        doc = _doc([_ref_block("1. abc\n2. x\n3. Real, R. (2000). Real title words. Cell 1, 2.", order=0)])
        assert all(len(r.search_term) > 3 for r in parse_references(doc))

    def test_non_reference_blocks_ignored(self):
        doc = _doc([
            {"block_label": "text", "block_content": "1. Introduction to the paper body"},
            _ref_block("1. Smith, A. (2010). The only reference. Nature 1, 2.", order=3),
        ])
        refs = parse_references(doc)
        assert len(refs) == 1
        assert refs[0].search_term == "The only reference"

    def test_deterministic(self):
        doc = _doc(
            [_ref_block("1. Smith, A. Title one.\n2. Jones, B. Title two.", order=0)],
            [_ref_block("continued on page two", order=0)],
        )
        assert parse_references(doc) == parse_references(doc)

    @pytest.mark.parametrize("document", [None, {}, {"pages": "x"}, {"pages": []}, {"pages": [{}]}])
    def test_malformed_input_yields_empty(self, document):
        assert parse_references(document) == []

    def test_to_dict(self):
        doc = _doc([_ref_block("1. Smith, A. (2010). The only reference. Nature 1, 2.", order=0, block_id=9)])
        data = parse_references(doc)[0].to_dict()
        assert data["ref_num"] == 1
        assert data["source_blocks"][0] == {
            "page_index": 0, "block_id": 9, "block_order": 0, "segment_index": 0,
        }
