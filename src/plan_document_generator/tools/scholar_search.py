"""Semantic Scholar paper search used by the research stage."""

from __future__ import annotations

import logging

import httpx

from ..errors import ProviderError
from ..models import PaperReference, PaperSource

logger = logging.getLogger(__name__)

_FIELDS = "paperId,title,abstract,year,citationCount,authors,url,venue"


class SemanticScholarClient:
    def __init__(
        self,
        base_url: str = "https://api.semanticscholar.org/graph/v1",
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def search_papers(self, query: str, limit: int = 10) -> list[PaperReference]:
        params = {"query": query, "limit": max(1, min(limit, 100)), "fields": _FIELDS}
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            transport=self._transport,
        ) as client:
            try:
                response = await client.get("/paper/search", params=params)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ProviderError("semantic-scholar", str(e)) from e
            payload = response.json()

        papers: list[PaperReference] = []
        for item in payload.get("data") or []:
            if not item.get("title"):
                continue
            papers.append(PaperReference(
                paper_id=item.get("paperId") or "",
                title=item["title"],
                abstract=item.get("abstract"),
                year=item.get("year"),
                citation_count=item.get("citationCount") or 0,
                authors=[a.get("name", "") for a in item.get("authors") or [] if a.get("name")],
                url=item.get("url"),
                venue=item.get("venue") or None,
                source=PaperSource.SEMANTIC_SCHOLAR,
            ))
        logger.debug("Semantic Scholar %r → %d papers", query, len(papers))
        return papers
