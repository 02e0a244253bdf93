"""Reviewer agent: scores sections on a 100-point rubric.

Rubric caps: structure 30, style 25, content 30, emphasis 15. A review that
cannot be obtained or parsed degrades to a neutral 60 / ``revise`` record so
the quality gate keeps running.
"""

from __future__ import annotations

import asyncio
import logging

from pydantic import BaseModel, Field

from ..model_router import resolve_model_name, reviewer_model
from ..models import (
    ProjectConfig,
    ReviewImprovement,
    ReviewRecord,
    ReviewScores,
    ReviewSummary,
    SectionResult,
    SectionTask,
    TokenUsage,
    Verdict,
)
from ..structured_output import parse_structured
from ..tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

SCORE_CAPS = {"structure": 30.0, "style": 25.0, "content": 30.0, "emphasis": 15.0}
PASS_SCORE = 70
REVISE_SCORE = 55
DEGRADED_SCORE = 60.0

SYSTEM_PROMPT = """\
You are a strict reviewer of business planning documents.

Score the section on four criteria:
- structure (0-30): logical flow, headings, lists and tables
- style (0-25): concise, formal, professional wording
- content (0-30): concrete numbers, evidence, specificity
- emphasis (0-15): key points highlighted in bold, clear takeaways

overall_score is the sum (0-100). verdict: "pass" if >= 70, "revise" if 55-69,
"fail" if below 55.

Output ONLY valid JSON:
{"scores": {"structure": 0, "style": 0, "content": 0, "emphasis": 0},
 "overall_score": 0, "verdict": "pass|revise|fail",
 "strengths": [""], "weaknesses": [""],
 "improvements": [{"issue": "", "suggestion": ""}]}
"""


class _RawReview(BaseModel):
    scores: dict[str, float] = Field(default_factory=dict)
    overall_score: float | None = None
    verdict: str | None = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    improvements: list[ReviewImprovement] = Field(default_factory=list)


def _clamp(value: float, upper: float) -> float:
    return max(0.0, min(float(value), upper))


def verdict_for(score: float) -> Verdict:
    if score >= PASS_SCORE:
        return Verdict.PASS
    if score >= REVISE_SCORE:
        return Verdict.REVISE
    return Verdict.FAIL


def to_review_record(raw: _RawReview, task: SectionTask, usage: TokenUsage) -> ReviewRecord:
    scores = ReviewScores(**{
        name: _clamp(raw.scores.get(name, 0.0), cap) for name, cap in SCORE_CAPS.items()
    })
    overall = raw.overall_score if raw.overall_score is not None else scores.total
    overall = _clamp(overall, 100.0)
    try:
        verdict = Verdict((raw.verdict or "").strip().lower())
    except ValueError:
        verdict = verdict_for(overall)
    return ReviewRecord(
        section_id=task.id,
        section_title=task.title,
        scores=scores,
        overall_score=overall,
        verdict=verdict,
        strengths=raw.strengths,
        weaknesses=raw.weaknesses,
        improvements=raw.improvements,
        usage=usage,
    )


def degraded_review(task: SectionTask, error: str, usage: TokenUsage | None = None) -> ReviewRecord:
    return ReviewRecord(
        section_id=task.id,
        section_title=task.title,
        overall_score=DEGRADED_SCORE,
        verdict=Verdict.REVISE,
        usage=usage or TokenUsage(),
        error=error,
    )


def summarize_reviews(records: list[ReviewRecord]) -> ReviewSummary:
    if not records:
        return ReviewSummary()
    return ReviewSummary(
        records=records,
        average_score=sum(r.overall_score for r in records) / len(records),
        passed=sum(1 for r in records if r.verdict is Verdict.PASS),
        revise=sum(1 for r in records if r.verdict is Verdict.REVISE),
        failed=sum(1 for r in records if r.verdict is Verdict.FAIL),
    )


class ReviewerAgent:
    name = "Reviewer"

    def __init__(self, generator: TextGenerator, config: ProjectConfig) -> None:
        self.generator = generator
        self.config = config

    async def review_section(self, task: SectionTask, result: SectionResult) -> ReviewRecord:
        prompt = (
            f"Section: {task.title}\n"
            f"Importance: {task.importance.value}\n\n"
            f"Content:\n{result.content}"
        )
        try:
            response = await self.generator.generate_text(
                prompt,
                model=resolve_model_name(reviewer_model(), self.config.models),
                max_tokens=1500,
                temperature=0.3,
                system_prompt=SYSTEM_PROMPT,
            )
        except Exception as e:
            logger.warning("Review of %r failed: %s", task.title, e)
            return degraded_review(task, str(e))

        parsed = parse_structured(response.text, _RawReview, default=_RawReview())
        if not parsed.ok:
            return degraded_review(task, f"unparseable review ({parsed.failure.value})", response.usage)
        return to_review_record(parsed.value, task, response.usage)

    async def review_sections(
        self,
        tasks: list[SectionTask],
        results: list[SectionResult],
    ) -> list[ReviewRecord]:
        """Review pairs one at a time with a fixed delay between calls."""
        records: list[ReviewRecord] = []
        for i, (task, result) in enumerate(zip(tasks, results)):
            if i and self.config.review_delay > 0:
                await asyncio.sleep(self.config.review_delay)
            record = await self.review_section(task, result)
            logger.info("Review %d/%d %r: %.0f (%s)", i + 1, len(tasks), task.title,
                        record.overall_score, record.verdict.value)
            records.append(record)
        return records
