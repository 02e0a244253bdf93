"""Quality gate: sampled review plus a bounded rewrite loop.

Round 1 reviews the initial drafts; up to ``max_rewrite_rounds`` further
rounds rewrite only flagged sections and review again. The best full result
list seen so far is kept as ``(best_score, best_snapshot)`` and restored when
the last allowed round ends below threshold and below that best.
"""

from __future__ import annotations

import logging

from .agents.reviewer import ReviewerAgent, summarize_reviews
from .logging_config import ProgressReporter
from .model_router import reviewer_model
from .models import (
    AgentName,
    ProjectBrief,
    ProjectConfig,
    QualityGateOutcome,
    ReviewRecord,
    SectionResult,
    SectionTask,
    Verdict,
)
from .token_tracker import TokenTracker
from .writer_pool import WriterPool

logger = logging.getLogger(__name__)

AGENT_KEY = "reviewer"

REWRITE_CHECKLIST = (
    "- Include at least three concrete figures or data points\n"
    "- Include at least one Markdown table\n"
    "- Use **bold** to emphasise key points\n"
    "- Use precise domain terminology\n"
    "- Keep each bullet under 50 characters"
)


def sample_review_indices(tasks: list[SectionTask], cap: int) -> list[int]:
    """Deterministic subset of section indices to review.

    Always the first and last section, every high/critical-priority or
    level 1-2 section, then evenly strided padding. Sorted, then cut to *cap*.
    """
    n = len(tasks)
    if n <= cap:
        return list(range(n))

    picked = {0, n - 1}
    for i, task in enumerate(tasks):
        if task.priority in ("high", "critical") or task.level in (1, 2):
            picked.add(i)

    if len(picked) < cap:
        step = max(1, n // (cap - len(picked)))
        i = 0
        while i < n and len(picked) < cap:
            picked.add(i)
            i += step
    return sorted(picked)[:cap]


def build_rewrite_requirements(task: SectionTask, feedback: str) -> str:
    parts = [task.requirements.strip()] if task.requirements.strip() else []
    parts.append(f"[Reviewer feedback: must be addressed]\n- {feedback}")
    parts.append(f"[Mandatory checklist]\n{REWRITE_CHECKLIST}")
    return "\n\n".join(parts)


def needs_rewrite(record: ReviewRecord, threshold: float) -> bool:
    return record.overall_score < threshold or record.verdict is not Verdict.PASS


class QualityGate:
    def __init__(
        self,
        reviewer: ReviewerAgent,
        pool: WriterPool,
        config: ProjectConfig,
        *,
        tracker: TokenTracker,
        reporter: ProgressReporter,
    ) -> None:
        self.reviewer = reviewer
        self.pool = pool
        self.config = config
        self.tracker = tracker
        self.reporter = reporter

    async def _review(
        self, tasks: list[SectionTask], results: list[SectionResult], indices: list[int],
    ) -> list[ReviewRecord]:
        records = await self.reviewer.review_sections(
            [tasks[i] for i in indices], [results[i] for i in indices],
        )
        for record in records:
            self.tracker.record(AgentName.REVIEWER, record.usage, model_tier=reviewer_model())
        return records

    async def run(
        self,
        tasks: list[SectionTask],
        results: list[SectionResult],
        brief: ProjectBrief,
    ) -> QualityGateOutcome:
        threshold = self.config.quality_threshold
        max_rewrites = self.config.max_rewrite_rounds
        max_rounds = max_rewrites + 1
        current = list(results)
        indices = sample_review_indices(tasks, self.config.max_review_sections)
        logger.info("Quality gate: reviewing %d of %d sections", len(indices), len(tasks))

        best_score = float("-inf")
        best_snapshot = list(current)
        records: list[ReviewRecord] = []
        mean = 0.0
        rewrite_count = 0
        round_num = 0

        for round_num in range(1, max_rounds + 1):
            self.reporter.agent(AGENT_KEY, status="running", progress=round((round_num - 1) / max_rounds * 100),
                                detail=f"Review round {round_num}/{max_rounds}")
            records = await self._review(tasks, current, indices)
            mean = sum(r.overall_score for r in records) / len(records) if records else 100.0
            logger.info("Review round %d/%d: mean score %.1f", round_num, max_rounds, mean)
            self.reporter.log(AGENT_KEY, "success" if mean >= threshold else "warn",
                              f"Round {round_num}: mean score {mean:.1f}")

            if mean > best_score:
                best_score = mean
                best_snapshot = list(current)

            if mean >= threshold:
                break
            if round_num == max_rounds:
                if mean < best_score:
                    logger.info("Final round %.1f below best %.1f; restoring best snapshot", mean, best_score)
                    current = list(best_snapshot)
                break

            flagged: dict[int, str] = {}
            for record in records:
                if not needs_rewrite(record, threshold):
                    continue
                idx = next((i for i, t in enumerate(tasks) if t.title == record.section_title), None)
                if idx is None:
                    continue
                flagged[idx] = "\n- ".join(record.feedback_lines())
            logger.info("%d section(s) flagged for rewrite", len(flagged))

            for idx, feedback in flagged.items():
                task = tasks[idx].model_copy(update={
                    "requirements": build_rewrite_requirements(tasks[idx], feedback),
                })
                try:
                    current[idx] = await self.pool.rewrite(idx, task, tasks, brief)
                    rewrite_count += 1
                except Exception as e:
                    logger.warning("Rewrite of %r failed, keeping previous draft: %s", task.title, e)
                    self.reporter.log(AGENT_KEY, "warn", f"Rewrite failed for {task.title}: {e}")

        self.reporter.agent(AGENT_KEY, status="completed", progress=100,
                            detail=f"Best score {best_score:.1f}")
        return QualityGateOutcome(
            results=current,
            summary=summarize_reviews(records),
            rounds=round_num,
            best_score=best_score,
            rewrite_count=rewrite_count,
        )
