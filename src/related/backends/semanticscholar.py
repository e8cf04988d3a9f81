"""Semantic Scholar graph API client.

Every request waits for a slot from the shared RateLimiter. Failed calls
(non-2xx, network errors, timeouts, malformed JSON) are logged and come back
as "no result" so one unresolved reference never aborts a whole crawl.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional
from urllib.parse import quote

import httpx
from tenacity import retry, retry_if_result, stop_after_attempt, wait_exponential

from related.config import get_batch_timeout, get_max_attempts, get_s2_key, get_timeout
from related.models import EdgeDirection, PaperHit
from related.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

S2_BASE = "https://api.semanticscholar.org/graph/v1"
MAX_EDGES = 500
BATCH_SIZE = 500
SEARCH_LIMIT = 5

SEARCH_FIELDS = "paperId,title,year,externalIds"
METADATA_FIELDS = "paperId,title,abstract,url,externalIds,venue,year,authors"


def _headers() -> dict[str, str]:
    headers = {"Accept": "application/json"}
    key = get_s2_key()
    if key:
        headers["x-api-key"] = key
    return headers


def _is_rate_limited(response: httpx.Response) -> bool:
    return response.status_code == 429


def _last_response(retry_state) -> httpx.Response:
    return retry_state.outcome.result()


class SemanticScholarGraph:
    """Async wrapper over the four graph calls the snowball crawl needs."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        *,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = S2_BASE,
        timeout: Optional[float] = None,
        batch_timeout: Optional[float] = None,
        max_edges: int = MAX_EDGES,
    ):
        self.rate_limiter = rate_limiter
        self.timeout = timeout if timeout is not None else get_timeout()
        self.batch_timeout = batch_timeout if batch_timeout is not None else get_batch_timeout()
        self.max_edges = max_edges
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, headers=_headers())

    async def __aenter__(self) -> SemanticScholarGraph:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- transport ---------------------------------------------------------

    @retry(
        retry=retry_if_result(_is_rate_limited),
        stop=stop_after_attempt(get_max_attempts()),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry_error_callback=_last_response,
    )
    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        await self.rate_limiter.throttle()
        return await self._client.request(method, path, **kwargs)

    async def _request_json(self, method: str, path: str, **kwargs) -> Any:
        """Issue one request; None on any failure."""
        try:
            resp = await self._send(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("S2 %s %s failed: %s", method, path, e)
            return None
        if not resp.is_success:
            logger.warning("S2 %s %s returned HTTP %d", method, path, resp.status_code)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("S2 %s %s returned malformed JSON", method, path)
            return None

    async def _get(self, path: str, params: dict) -> Any:
        return await self._request_json("GET", path, params=params, timeout=self.timeout)

    # -- graph calls -------------------------------------------------------

    async def resolve_by_doi(self, doi: str) -> Optional[PaperHit]:
        """Look a paper up by DOI; the hit carries its canonical title.

        The DOI is percent-encoded into the path; its slashes stay literal.
        """
        data = await self._get(f"/paper/DOI:{quote(doi, safe='/')}", {"fields": "paperId,title"})
        if not isinstance(data, dict) or not data.get("paperId"):
            logger.debug("DOI %s not found", doi)
            return None
        return PaperHit(paper_id=data["paperId"], title=data.get("title") or "", doi=doi)

    async def resolve_by_title(self, title: str) -> Optional[PaperHit]:
        """Take the top search hit for ``title``.

        Hits sharing a DOI are duplicate indexings of one work (preprint and
        journal version) and count once.
        """
        hits = await self.search(title, limit=SEARCH_LIMIT, fields=SEARCH_FIELDS)
        seen_dois: set[str] = set()
        for hit in hits:
            doi = (hit.get("externalIds") or {}).get("DOI") or ""
            if doi:
                if doi in seen_dois:
                    continue
                seen_dois.add(doi)
            if hit.get("paperId"):
                return PaperHit(paper_id=hit["paperId"], title=hit.get("title") or "", doi=doi)
        logger.debug("Title not found: %r", title)
        return None

    async def resolve(self, term: str, is_doi: bool) -> Optional[PaperHit]:
        if is_doi:
            return await self.resolve_by_doi(term)
        return await self.resolve_by_title(term)

    async def search(
        self,
        query: str,
        *,
        limit: int = SEARCH_LIMIT,
        fields: str = METADATA_FIELDS,
    ) -> list[dict]:
        """Keyword search, returning raw paper records in relevance order."""
        data = await self._get("/paper/search", {"query": query, "limit": limit, "fields": fields})
        if not isinstance(data, dict):
            return []
        return [p for p in data.get("data") or [] if isinstance(p, dict)]

    async def fetch_edges(self, paper_id: str, direction: EdgeDirection) -> set[str]:
        """Ids on one side of a paper's citation edges (first page only)."""
        data = await self._get(
            f"/paper/{quote(paper_id, safe='')}/{direction.value}",
            {"fields": "paperId", "limit": self.max_edges},
        )
        ids: set[str] = set()
        if not isinstance(data, dict):
            return ids
        key = direction.neighbour_key
        for item in data.get("data") or []:
            neighbour = item.get(key) if isinstance(item, dict) else None
            if isinstance(neighbour, dict) and neighbour.get("paperId"):
                ids.add(neighbour["paperId"])
        return ids

    async def batch_metadata(self, paper_ids: Iterable[str]) -> dict[str, dict]:
        """Full records for ``paper_ids``, in chunks the API accepts.

        A failed chunk contributes nothing; the others are still returned.
        """
        ids = list(paper_ids)
        result: dict[str, dict] = {}
        for start in range(0, len(ids), BATCH_SIZE):
            chunk = ids[start:start + BATCH_SIZE]
            data = await self._request_json(
                "POST",
                "/paper/batch",
                params={"fields": METADATA_FIELDS},
                json={"ids": chunk},
                timeout=self.batch_timeout,
            )
            if not isinstance(data, list):
                continue
            for paper in data:
                if isinstance(paper, dict) and paper.get("paperId"):
                    result[paper["paperId"]] = paper
        return result
