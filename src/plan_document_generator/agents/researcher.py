"""Researcher agent: academic background for the brief.

Extracts search keywords from the idea, queries Semantic Scholar and arXiv
in parallel, and summarises the findings so the planner and writers can
cite them. An outage of either source only empties that source's share.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from ..errors import ProviderError
from ..model_router import planner_model, resolve_model_name
from ..models import PaperReference, PaperSource, ProjectConfig, ResearchResult, ResearchStats, TokenUsage
from ..structured_output import parse_string_list
from ..tools.arxiv_search import ArxivClient
from ..tools.scholar_search import SemanticScholarClient
from ..tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

KEYWORD_PROMPT = (
    "Extract 3-5 academic search keywords from the business idea. Return ONLY a JSON "
    'array of strings in English. Example: ["smart farming", "IoT agriculture", '
    '"precision agriculture"]'
)

SUMMARY_PROMPT = (
    "Summarise the research trends relevant to the business idea, based on the papers "
    "listed. Write 3-5 paragraphs covering the key findings and their implications."
)

MAX_KEYWORDS = 5
SCHOLAR_KEYWORDS = 3
ARXIV_KEYWORDS = 2
PAPERS_PER_KEYWORD = 5
SUMMARISED_PAPERS = 10
MAX_REFERENCES = 15

SOURCE_LABELS = {
    PaperSource.SEMANTIC_SCHOLAR: "Semantic Scholar",
    PaperSource.ARXIV: "arXiv",
}


class PaperSearch(Protocol):
    async def search_papers(self, query: str, limit: int = 10) -> list[PaperReference]: ...


def format_reference(n: int, paper: PaperReference) -> str:
    authors = ", ".join(paper.authors) or "Unknown"
    year = paper.year or "n.d."
    url = f", {paper.url}" if paper.url else ""
    return f'[{n}] {authors}, "{paper.title}", {SOURCE_LABELS[paper.source]}, {year}{url}'


def merge_papers(*groups: list[PaperReference]) -> list[PaperReference]:
    """Concatenate in order, dropping repeated titles (case-insensitive)."""
    merged: list[PaperReference] = []
    seen: set[str] = set()
    for group in groups:
        for paper in group:
            key = paper.title.strip().lower()
            if key in seen:
                continue
            seen.add(key)
            merged.append(paper)
    return merged


class ResearchAgent:
    name = "Researcher"

    def __init__(
        self,
        generator: TextGenerator,
        config: ProjectConfig,
        *,
        scholar: PaperSearch | None = None,
        arxiv: PaperSearch | None = None,
    ) -> None:
        self.generator = generator
        self.config = config
        self.scholar = scholar or SemanticScholarClient(config.scholar_base_url)
        self.arxiv = arxiv or ArxivClient(config.arxiv_base_url)
        self.usage = TokenUsage()

    def _model(self) -> str:
        return resolve_model_name(planner_model(), self.config.models)

    def _add_usage(self, usage: TokenUsage) -> None:
        self.usage.input_tokens += usage.input_tokens
        self.usage.output_tokens += usage.output_tokens

    async def extract_keywords(self, idea: str) -> list[str]:
        response = await self.generator.generate_text(
            idea[:500], model=self._model(), max_tokens=200, temperature=0.2,
            system_prompt=KEYWORD_PROMPT,
        )
        self._add_usage(response.usage)
        parsed = parse_string_list(response.text, default=[idea[:50]])
        return parsed.value[:MAX_KEYWORDS] or [idea[:50]]

    async def _search_source(self, client: PaperSearch, keywords: list[str]) -> list[PaperReference]:
        papers: list[PaperReference] = []
        for keyword in keywords:
            try:
                papers.extend(await client.search_papers(keyword, PAPERS_PER_KEYWORD))
            except ProviderError as e:
                logger.warning("Paper search for %r failed: %s", keyword, e)
        return papers

    async def search(self, keywords: list[str]) -> tuple[list[PaperReference], ResearchStats]:
        """Search both sources concurrently; a failing source contributes nothing."""
        outcomes = await asyncio.gather(
            self._search_source(self.scholar, keywords[:SCHOLAR_KEYWORDS]),
            self._search_source(self.arxiv, keywords[:ARXIV_KEYWORDS]),
            return_exceptions=True,
        )
        found: list[list[PaperReference]] = []
        for label, outcome in zip(("Semantic Scholar", "arXiv"), outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("%s search failed, continuing without it: %s", label, outcome)
                found.append([])
            else:
                found.append(outcome)
        scholar_papers, arxiv_papers = found
        papers = merge_papers(scholar_papers, arxiv_papers)
        stats = ResearchStats(
            semantic_scholar=len(scholar_papers),
            arxiv=len(arxiv_papers),
            total_papers=len(papers),
        )
        return papers[:self.config.research_max_papers], stats

    async def summarize(self, idea: str, papers: list[PaperReference]) -> str:
        if not papers:
            return "No related academic sources were found."
        listing = "\n".join(
            f"[{i}] {p.title} ({p.year or 'n.d.'}) - {(p.abstract or '')[:150]}"
            for i, p in enumerate(papers[:SUMMARISED_PAPERS], start=1)
        )
        response = await self.generator.generate_text(
            f"Business idea: {idea[:200]}\n\nPapers:\n{listing}",
            model=self._model(), max_tokens=1000, temperature=0.5,
            system_prompt=SUMMARY_PROMPT,
        )
        self._add_usage(response.usage)
        return response.text.strip()

    async def research(self, idea: str) -> ResearchResult:
        self.usage = TokenUsage()
        keywords = await self.extract_keywords(idea)
        logger.info("Research keywords: %s", ", ".join(keywords))
        papers, stats = await self.search(keywords)
        summary = await self.summarize(idea, papers)
        references = [format_reference(i, p) for i, p in enumerate(papers[:MAX_REFERENCES], start=1)]
        logger.info("Research found %d paper(s): Semantic Scholar %d, arXiv %d",
                    stats.total_papers, stats.semantic_scholar, stats.arxiv)
        return ResearchResult(
            keywords=keywords,
            papers=papers,
            summary=summary,
            references=references,
            stats=stats,
        )
