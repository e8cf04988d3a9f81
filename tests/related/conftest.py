"""Shared fixtures: an in-memory stand-in for SemanticScholarGraph."""

import pytest

from related.models import EdgeDirection


class StubGraph:
    """Answers graph calls from dicts; anything unknown is absent."""

    def __init__(self, dois=None, titles=None, references=None, citations=None, metadata=None, searches=None):
        self.dois = dois or {}
        self.titles = titles or {}
        self.references = references or {}
        self.citations = citations or {}
        self.metadata = metadata or {}
        self.searches = searches or {}
        self.calls = []

    async def resolve_by_doi(self, doi):
        self.calls.append(("doi", doi))
        return self.dois.get(doi)

    async def resolve_by_title(self, title):
        self.calls.append(("title", title))
        return self.titles.get(title)

    async def resolve(self, term, is_doi):
        if is_doi:
            return await self.resolve_by_doi(term)
        return await self.resolve_by_title(term)

    async def search(self, query, *, limit=5, fields=""):
        self.calls.append(("search", query))
        return list(self.searches.get(query, []))[:limit]

    async def fetch_edges(self, paper_id, direction):
        self.calls.append((direction.value, paper_id))
        edges = self.references if direction is EdgeDirection.REFERENCES else self.citations
        return set(edges.get(paper_id, ()))

    async def batch_metadata(self, paper_ids):
        ids = list(paper_ids)
        self.calls.append(("batch", tuple(ids)))
        return {i: self.metadata[i] for i in ids if i in self.metadata}


@pytest.fixture
def make_graph():
    return StubGraph

