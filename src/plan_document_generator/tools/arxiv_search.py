"""arXiv preprint search used by the research stage.

Queries the public Atom API and maps each ``<entry>`` to a
``PaperReference``. Requests from one client are spaced at least
``min_interval`` seconds apart.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
import xml.etree.ElementTree as ET

import httpx

from ..errors import ProviderError
from ..models import PaperReference, PaperSource

logger = logging.getLogger(__name__)

_ATOM = {"atom": "http://www.w3.org/2005/Atom"}


def _entry_text(entry: ET.Element, tag: str) -> str:
    node = entry.find(f"atom:{tag}", _ATOM)
    if node is None or not node.text:
        return ""
    return re.sub(r"\s+", " ", node.text).strip()


def parse_atom_feed(xml_text: str) -> list[PaperReference]:
    """Papers from an arXiv Atom response; entries without a title are skipped."""
    root = ET.fromstring(xml_text)
    papers: list[PaperReference] = []
    for entry in root.findall("atom:entry", _ATOM):
        title = _entry_text(entry, "title")
        if not title:
            continue
        entry_id = _entry_text(entry, "id")
        published = _entry_text(entry, "published")
        authors = [
            name.text.strip()
            for name in entry.findall("atom:author/atom:name", _ATOM)
            if name.text and name.text.strip()
        ]
        papers.append(PaperReference(
            paper_id=entry_id.rstrip("/").rsplit("/", 1)[-1] if entry_id else "",
            title=title,
            abstract=_entry_text(entry, "summary") or None,
            year=int(published[:4]) if published[:4].isdigit() else None,
            authors=authors,
            url=entry_id or None,
            venue="arXiv",
            source=PaperSource.ARXIV,
        ))
    return papers


class ArxivClient:
    def __init__(
        self,
        base_url: str = "https://export.arxiv.org/api/query",
        *,
        timeout: float = 15.0,
        min_interval: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.min_interval = min_interval
        self._transport = transport
        self._last_request: float | None = None

    async def _throttle(self) -> None:
        if self._last_request is not None and self.min_interval > 0:
            wait = self._last_request + self.min_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
        self._last_request = time.monotonic()

    async def search_papers(self, query: str, limit: int = 10) -> list[PaperReference]:
        await self._throttle()
        params = {
            "search_query": f"all:{query}",
            "start": 0,
            "max_results": max(1, min(limit, 100)),
            "sortBy": "relevance",
        }
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
            try:
                response = await client.get(self.base_url, params=params)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ProviderError("arxiv", str(e)) from e
            xml_text = response.text

        try:
            papers = parse_atom_feed(xml_text)
        except ET.ParseError as e:
            raise ProviderError("arxiv", f"malformed feed: {e}") from e
        logger.debug("arXiv %r → %d papers", query, len(papers))
        return papers
