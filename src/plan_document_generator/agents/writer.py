"""Writer agent: drafts the markdown body of one leaf section."""

from __future__ import annotations

import logging
import time

from ..model_router import resolve_model_name
from ..models import ModelTier, ProjectBrief, ProjectConfig, SectionResult, SectionTask
from ..tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """\
You are a professional writer of business and technical planning documents.

Write the body of ONE section in Markdown:
- Start directly with content; do not repeat the section title as a heading.
- Use ### for sub-headings, bullet lists for enumerations, and **bold** for key figures.
- Back claims with concrete numbers (market sizes, percentages, dates, costs).
- Include at least one Markdown table where data can be compared.
- Keep a confident, formal tone. No filler, no meta commentary.
"""


def build_writer_prompt(
    task: SectionTask,
    brief: ProjectBrief,
    prev_title: str | None,
    next_title: str | None,
) -> str:
    target = task.target_chars or task.estimated_words
    lines = [
        f"Project: {brief.title}",
        f"Project idea: {brief.idea}",
        "",
        f"Section: {task.title}",
    ]
    if task.parent_title and task.parent_title != task.title:
        lines.append(f"Part of: {task.parent_title}")
    lines.append(f"Importance: {task.importance.value}")
    lines.append(f"Target length: about {target} characters")
    if prev_title:
        lines.append(f"Previous section: {prev_title}")
    if next_title:
        lines.append(f"Next section: {next_title}")
    if task.requirements:
        lines.extend(["", "Requirements:", task.requirements])
    lines.extend(["", "Write the section now."])
    return "\n".join(lines)


class WriterAgent:
    def __init__(self, name: str, generator: TextGenerator, config: ProjectConfig) -> None:
        self.name = name
        self.generator = generator
        self.config = config

    async def write_section(
        self,
        task: SectionTask,
        brief: ProjectBrief,
        *,
        prev_title: str | None = None,
        next_title: str | None = None,
    ) -> SectionResult:
        tier = task.model_tier or ModelTier.STANDARD
        started = time.perf_counter()
        response = await self.generator.generate_text(
            build_writer_prompt(task, brief, prev_title, next_title),
            model=resolve_model_name(tier, self.config.models),
            max_tokens=task.max_output_tokens or 1200,
            temperature=self.config.writer_temperature,
            system_prompt=SYSTEM_PROMPT,
        )
        content = response.text.strip()
        logger.debug("%s wrote %r (%d chars)", self.name, task.title, len(content))
        return SectionResult(
            section_id=task.id,
            title=task.title,
            content=content,
            word_count=len(content.split()),
            model_tier=tier,
            usage=response.usage,
            duration_seconds=round(time.perf_counter() - started, 3),
        )
