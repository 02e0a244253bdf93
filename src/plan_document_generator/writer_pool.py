"""Bounded pool of writer agents processing sections in ordered rounds.

Tasks are chunked into consecutive rounds of at most ``pool_size``. Each
round fans out with ``asyncio.gather`` and joins before the next one starts.
Results are placed by index, so completion order never reorders output.
A failing task fails its round: the remaining tasks of that round are
cancelled and the error propagates.
"""

from __future__ import annotations

import asyncio
import logging

from .agents.writer import WriterAgent
from .logging_config import ProgressReporter
from .models import AgentName, ModelTier, ProjectBrief, ProjectConfig, SectionResult, SectionTask
from .token_tracker import TokenTracker
from .tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

AGENT_KEY = "writerTeam"
LOG_EVERY = 5


def chunk_rounds(tasks: list[SectionTask], size: int) -> list[list[int]]:
    """Split task indices into consecutive rounds of at most *size*."""
    indices = list(range(len(tasks)))
    return [indices[i:i + size] for i in range(0, len(indices), size)]


def neighbour_titles(tasks: list[SectionTask], index: int) -> tuple[str | None, str | None]:
    prev_title = tasks[index - 1].title if index > 0 else None
    next_title = tasks[index + 1].title if index + 1 < len(tasks) else None
    return prev_title, next_title


class WriterPool:
    def __init__(
        self,
        generator: TextGenerator,
        config: ProjectConfig,
        *,
        tracker: TokenTracker,
        reporter: ProgressReporter,
    ) -> None:
        self.config = config
        self.tracker = tracker
        self.reporter = reporter
        self.size = config.writer_pool_size
        self.writers = [
            WriterAgent(f"Writer-{i + 1}", generator, config) for i in range(self.size)
        ]
        self._completed = 0

    def worker_for(self, index: int) -> WriterAgent:
        return self.writers[index % self.size]

    def _record(self, task: SectionTask, result: SectionResult) -> None:
        self.tracker.record(
            AgentName.WRITER,
            result.usage,
            model_tier=task.model_tier or ModelTier.STANDARD,
            section_title=task.title,
        )

    async def _write_one(
        self,
        index: int,
        task: SectionTask,
        tasks: list[SectionTask],
        brief: ProjectBrief,
        writer: WriterAgent,
    ) -> SectionResult:
        prev_title, next_title = neighbour_titles(tasks, index)
        result = await writer.write_section(task, brief, prev_title=prev_title, next_title=next_title)
        self._record(task, result)

        self._completed += 1
        total = len(tasks)
        self.reporter.agent(
            AGENT_KEY,
            status="running",
            progress=round(self._completed / total * 100),
            completedSections=self._completed,
            totalSections=total,
            detail=f"{writer.name}: {task.title}",
        )
        if self._completed % LOG_EVERY == 0 or self._completed == total:
            logger.info("Writing progress: %d/%d sections", self._completed, total)
            self.reporter.log(AGENT_KEY, "info", f"{self._completed}/{total} sections written")
        return result

    async def write_all(self, tasks: list[SectionTask], brief: ProjectBrief) -> list[SectionResult]:
        """Write every task; ``results[i]`` always belongs to ``tasks[i]``."""
        results: list[SectionResult | None] = [None] * len(tasks)
        rounds = chunk_rounds(tasks, self.size)
        self._completed = 0
        self.reporter.agent(AGENT_KEY, status="running", progress=0,
                            completedSections=0, totalSections=len(tasks))

        for r, indices in enumerate(rounds, start=1):
            logger.info("Writer round %d/%d: %d section(s)", r, len(rounds), len(indices))
            jobs = [
                asyncio.ensure_future(self._write_one(i, tasks[i], tasks, brief, self.writers[slot]))
                for slot, i in enumerate(indices)
            ]
            try:
                round_results = await asyncio.gather(*jobs)
            except BaseException:
                # Siblings of a failed section must not keep writing to the ledger.
                for job in jobs:
                    job.cancel()
                await asyncio.gather(*jobs, return_exceptions=True)
                raise
            for i, result in zip(indices, round_results):
                results[i] = result
            if r < len(rounds) and self.config.writer_round_delay > 0:
                await asyncio.sleep(self.config.writer_round_delay)

        self.reporter.agent(AGENT_KEY, status="completed", progress=100,
                            completedSections=len(tasks), totalSections=len(tasks))
        return [r for r in results if r is not None]

    async def rewrite(
        self,
        index: int,
        task: SectionTask,
        tasks: list[SectionTask],
        brief: ProjectBrief,
    ) -> SectionResult:
        """Re-run one section on worker ``index % pool_size``."""
        writer = self.worker_for(index)
        prev_title, next_title = neighbour_titles(tasks, index)
        result = await writer.write_section(task, brief, prev_title=prev_title, next_title=next_title)
        self._record(task, result)
        return result
