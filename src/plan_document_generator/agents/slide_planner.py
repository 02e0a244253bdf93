"""SlidePlanner agent: turns the outline into a presentation slide plan."""

from __future__ import annotations

import logging

from ..model_router import planner_model, resolve_model_name
from ..models import DocumentOutline, ProjectBrief, ProjectConfig, ResearchResult, SlidePlan, TokenUsage
from ..structured_output import parse_structured
from ..tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

TYPE_LAYOUT_MAP: dict[str, str] = {
    "cover": "cover-hero",
    "overview": "left-right-split",
    "market": "chart-with-metrics",
    "technology": "icon-grid",
    "architecture": "left-right-split",
    "comparison": "comparison",
    "timeline": "timeline-horizontal",
    "data-cards": "data-cards",
    "qa": "qa-cards",
    "closing": "closing-summary",
    "team": "icon-grid",
    "revenue": "chart-with-metrics",
    "strategy": "left-right-split",
    "problem": "left-right-split",
    "solution": "icon-grid",
    "competitive": "comparison",
    "roadmap": "timeline-horizontal",
    "financials": "data-cards",
    "traction": "data-cards",
    "risks": "icon-grid",
}
DEFAULT_LAYOUT = "left-right-split"

SYSTEM_PROMPT = f"""\
You plan investor-style presentation decks from document outlines.

Produce 10-15 slides: a cover first, a closing slide last. Each slide has a
type from: {", ".join(TYPE_LAYOUT_MAP)}. Each slide carries 3-5 short bullet
points (under 60 characters each) and optional speaker notes.

Output ONLY valid JSON:
{{"slides": [{{"page_number": 1, "type": "cover", "title": "", "points": [""], "notes": ""}}]}}
"""


class SlidePlanner:
    name = "SlidePlanner"

    def __init__(self, generator: TextGenerator, config: ProjectConfig) -> None:
        self.generator = generator
        self.config = config

    def _prompt(self, brief: ProjectBrief, outline: DocumentOutline, research: ResearchResult | None) -> str:
        lines = [f"Project: {brief.title}", f"Idea: {brief.idea[:500]}", "", "Outline:"]
        for section in outline.sections:
            lines.append(f"- {section.title}")
            lines.extend(f"  - {leaf.title}" for leaf in section.subsections)
        if research and research.keywords:
            lines.extend(["", f"Research keywords: {', '.join(research.keywords)}"])
        return "\n".join(lines)

    async def plan(
        self,
        brief: ProjectBrief,
        outline: DocumentOutline,
        research: ResearchResult | None = None,
    ) -> tuple[SlidePlan, TokenUsage]:
        response = await self.generator.generate_text(
            self._prompt(brief, outline, research),
            model=resolve_model_name(planner_model(), self.config.models),
            max_tokens=4000,
            temperature=0.7,
            system_prompt=SYSTEM_PROMPT,
        )
        parsed = parse_structured(response.text, SlidePlan, default=SlidePlan())
        plan = parsed.value
        for i, slide in enumerate(plan.slides, start=1):
            slide.page_number = slide.page_number or i
            slide.layout = TYPE_LAYOUT_MAP.get(slide.type, slide.layout or DEFAULT_LAYOUT)
        logger.info("Slide plan: %d slide(s)", len(plan.slides))
        return plan, response.usage
