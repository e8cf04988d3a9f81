"""Tests for related.lookup: per-title search."""

import pytest

from related.lookup import lookup_titles


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


SEARCHES = {
    "Graph methods": [
        {"paperId": "A", "title": "Graph Methods", "externalIds": {"ArXiv": "2101.00001"}},
        {"paperId": "B", "title": None, "url": "https://www.example.com/b"},
    ],
    "Biology paper": [
        {"paperId": "C", "title": "Cells", "externalIds": {"DOI": "10.1/c"}},
        {"paperId": "D", "title": "More arXiv", "externalIds": {"ArXiv": "2101.00002"}},
    ],
}


class TestLookupTitles:
    @pytest.mark.asyncio
    async def test_results_per_query(self, make_graph):
        sleep = RecordingSleep()
        response = await lookup_titles(
            ["Graph methods", "Biology paper", "No hits here"],
            make_graph(searches=SEARCHES),
            pdf_title="My Paper",
            sleep=sleep,
        )
        assert response.pdf_title == "My Paper"
        assert response.total_citations == 3
        assert [r.query for r in response.results] == ["Graph methods", "Biology paper", "No hits here"]
        assert [c.title for c in response.results[0].results] == ["Graph Methods", "Graph methods"]
        assert response.results[2].results == []
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_academic_domains_in_first_seen_order(self, make_graph):
        response = await lookup_titles(
            ["Graph methods", "Biology paper"], make_graph(searches=SEARCHES), sleep=RecordingSleep(),
        )
        assert response.academic_domains == ["arxiv.org"]

    @pytest.mark.asyncio
    async def test_pauses_between_batches(self, make_graph):
        sleep = RecordingSleep()
        titles = [f"Title {i}" for i in range(7)]
        response = await lookup_titles(titles, make_graph(), concurrency=3, pause=0.5, sleep=sleep)
        assert sleep.calls == [0.5, 0.5]
        assert [r.query for r in response.results] == titles

    @pytest.mark.asyncio
    async def test_empty_input(self, make_graph):
        with pytest.raises(ValueError, match="No titles"):
            await lookup_titles([], make_graph())

    @pytest.mark.asyncio
    async def test_to_dict(self, make_graph):
        response = await lookup_titles(["Graph methods"], make_graph(searches=SEARCHES), sleep=RecordingSleep())
        data = response.to_dict()
        assert data["results"][0]["results"][0]["url"] == "https://arxiv.org/abs/2101.00001"
        assert data["results"][0]["results"][0]["is_academic"] is True
