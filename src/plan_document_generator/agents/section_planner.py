"""SectionPlanner agent: turns a project brief into a bounded outline.

The raw outline is parsed with recovery, then normalised: sections with no
subsections get one mirrored leaf, the top-level and leaf caps are enforced
by trimming from the tail, and missing word targets are backfilled.
"""

from __future__ import annotations

import logging

from ..model_router import classify_importance, planner_model, resolve_model_name, select_token_budget, select_writer_model
from ..models import (
    DocumentOutline,
    OutlineSection,
    OutlineSubsection,
    PlanningResult,
    ProjectBrief,
    ProjectConfig,
    SectionTask,
)
from ..structured_output import parse_structured
from ..tools.category_templates import render_category_template
from ..tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

MAX_TOP_LEVEL_SECTIONS = 10
MAX_LEAF_SECTIONS = 30
DEFAULT_WORD_TARGET = 1000
MIN_WORD_TARGET = 300
_IDEA_PROMPT_LIMIT = 1500

SYSTEM_PROMPT = """\
You are a document architect for long-form planning documents such as business
plans, technical reports and government project proposals.

Design the outline of the requested document. Use at most 10 top-level
sections and at most 30 subsections in total. Classify every subsection's
importance as core (key argument), standard (supporting) or simple (appendix,
glossary, references).

{template_block}\
Output ONLY a valid JSON object, no markdown:
{{
  "title": "Document title",
  "sections": [
    {{
      "title": "Market Analysis",
      "priority": "high",
      "subsections": [
        {{
          "title": "Target Market Size",
          "importance": "core",
          "estimated_words": 1200,
          "requirements": ["TAM/SAM/SOM with sources", "growth rate table"]
        }}
      ]
    }}
  ]
}}
"""


# ---------------------------------------------------------------------------
# Outline normalisation
# ---------------------------------------------------------------------------

def fallback_outline(brief: ProjectBrief) -> DocumentOutline:
    """Minimal single-section outline used when planner output is unusable."""
    return DocumentOutline(
        title=brief.title,
        sections=[OutlineSection(
            id="1",
            title=brief.title,
            priority="high",
            subsections=[OutlineSubsection(
                id="1.1",
                title=brief.title,
                estimated_words=DEFAULT_WORD_TARGET,
                requirements=brief.idea,
            )],
        )],
    )


def normalize_outline(outline: DocumentOutline) -> DocumentOutline:
    """Enforce section caps (tail trimming), mirrored leaves and word targets."""
    sections: list[OutlineSection] = []
    for section in outline.sections[:MAX_TOP_LEVEL_SECTIONS]:
        section = section.model_copy(deep=True)
        if not section.subsections:
            section.subsections = [OutlineSubsection(title=section.title)]
        sections.append(section)

    dropped_sections = len(outline.sections) - len(sections)
    if dropped_sections > 0:
        logger.warning("Planner produced %d top-level sections; dropped %d from the tail",
                       len(outline.sections), dropped_sections)

    kept: list[OutlineSection] = []
    remaining = MAX_LEAF_SECTIONS
    for section in sections:
        if remaining <= 0:
            break
        if len(section.subsections) > remaining:
            logger.warning("Leaf cap reached: trimming %d subsection(s) from %r",
                           len(section.subsections) - remaining, section.title)
            section.subsections = section.subsections[:remaining]
        remaining -= len(section.subsections)
        kept.append(section)

    for s_idx, section in enumerate(kept, start=1):
        if not section.id:
            section.id = str(s_idx)
        for l_idx, leaf in enumerate(section.subsections, start=1):
            if not leaf.id:
                leaf.id = f"{section.id}.{l_idx}"
            if not leaf.estimated_words or leaf.estimated_words < MIN_WORD_TARGET:
                leaf.estimated_words = DEFAULT_WORD_TARGET

    title = outline.title.strip() or (kept[0].title if kept else "Document")
    return DocumentOutline(title=title, sections=kept)


def build_section_tasks(outline: DocumentOutline, config: ProjectConfig) -> list[SectionTask]:
    """Flatten leaves into tasks and fill importance, tier and token budget."""
    tasks: list[SectionTask] = []
    seen_ids: set[str] = set()
    for section in outline.sections:
        for leaf in section.subsections:
            task_id = leaf.id or leaf.title
            if task_id in seen_ids:
                task_id = f"{task_id}-{len(tasks) + 1}"
            seen_ids.add(task_id)
            tasks.append(SectionTask(
                id=task_id,
                title=leaf.title,
                level=leaf.level,
                importance=leaf.importance or classify_importance(leaf.title),
                priority=section.priority,
                parent_title=section.title,
                estimated_words=leaf.estimated_words or DEFAULT_WORD_TARGET,
                requirements=leaf.requirements,
            ))

    total = len(tasks)
    for i, task in enumerate(tasks):
        budget = select_token_budget(task.title)
        task.model_tier = select_writer_model(task.title, i, total, config.pro_mode)
        task.max_output_tokens = budget.max_output_tokens
        task.target_chars = budget.target_chars
    return tasks


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------

class SectionPlanner:
    """Architect stage: one provider call, then outline repair and caps."""

    name = "Architect"

    def __init__(self, generator: TextGenerator, config: ProjectConfig) -> None:
        self.generator = generator
        self.config = config

    def _system_prompt(self, category: str | None) -> str:
        template = render_category_template(category)
        block = f"{template}\n\n" if template else ""
        return SYSTEM_PROMPT.format(template_block=block)

    def _user_prompt(self, brief: ProjectBrief) -> str:
        idea = brief.idea
        if len(idea) > _IDEA_PROMPT_LIMIT:
            idea = idea[:_IDEA_PROMPT_LIMIT] + "…"
        return f"Project: {brief.title}\nIdea: {idea}"

    async def plan(self, brief: ProjectBrief) -> PlanningResult:
        tier = planner_model()
        response = await self.generator.generate_text(
            self._user_prompt(brief),
            model=resolve_model_name(tier, self.config.models),
            max_tokens=4000,
            temperature=0.7,
            system_prompt=self._system_prompt(brief.category),
        )
        parsed = parse_structured(response.text, DocumentOutline, default=fallback_outline(brief))
        if parsed.repaired:
            logger.info("Planner output needed JSON repair")
        outline = normalize_outline(parsed.value)
        if not outline.sections:
            outline = normalize_outline(fallback_outline(brief))
        logger.info("Outline: %d sections, %d leaves", len(outline.sections), outline.leaf_count)
        return PlanningResult(
            outline=outline,
            usage=response.usage,
            failure=parsed.failure.value if parsed.failure else None,
        )
