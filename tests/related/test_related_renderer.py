"""Tests for related.renderer output formatting."""

from io import StringIO

from rich.console import Console

from related.models import PaperCard, RankedPaper, RelatedPapersResponse, TitleLookup, TitleLookupResponse
from related.renderer import render_lookup, render_related


def _capture_output(render_fn, *args, **kwargs) -> str:
    """Capture Rich console output as plain text."""
    buf = StringIO()
    import related.renderer as mod
    original = mod.console
    mod.console = Console(file=buf, force_terminal=False, width=120)
    try:
        render_fn(*args, **kwargs)
    finally:
        mod.console = original
    return buf.getvalue()


class TestRenderRelated:
    def test_empty(self):
        response = RelatedPapersResponse(pdf_title="My Paper", resolved_citations=4)
        output = _capture_output(render_related, response)
        assert "My Paper" in output
        assert "4 references resolved | 0 candidates | seed not found" in output
        assert "No related papers found" in output

    def test_ranked(self):
        response = RelatedPapersResponse(
            pdf_title="My Paper",
            seed_paper_id="S1",
            total_candidates=12,
            resolved_citations=5,
            ranked_papers=[RankedPaper(
                title="Neighbour Paper",
                url="https://arxiv.org/abs/2101.00001",
                snippet="An abstract.",
                authors="A, B",
                year=2021,
                venue="ICML",
                paper_id="N1",
                score=0.625,
                bc_score=0.5,
                cc_score=0.75,
            )],
        )
        output = _capture_output(render_related, response)
        assert "seed S1" in output
        assert "[1] Neighbour Paper" in output
        assert "https://arxiv.org/abs/2101.00001" in output
        assert "A, B | 2021 | ICML" in output
        assert "score 0.625 (coupling 0.50, co-citation 0.75)" in output
        assert "An abstract." in output

    def test_hide_snippets(self):
        response = RelatedPapersResponse(
            pdf_title="T",
            ranked_papers=[RankedPaper(title="P", snippet="hidden abstract")],
        )
        output = _capture_output(render_related, response, show_snippets=False)
        assert "hidden abstract" not in output


class TestRenderLookup:
    def test_results(self):
        response = TitleLookupResponse(
            pdf_title="My Paper",
            total_citations=2,
            academic_domains=["arxiv.org"],
            results=[
                TitleLookup(query="first query", results=[
                    PaperCard(title="Hit One", url="https://arxiv.org/abs/1", year=2020, is_academic=True),
                ]),
                TitleLookup(query="second query"),
            ],
        )
        output = _capture_output(render_lookup, response)
        assert "Searched 2 reference titles" in output
        assert "Academic sources: arxiv.org" in output
        assert "first query" in output
        assert "- Hit One" in output
        assert "no matches" in output
