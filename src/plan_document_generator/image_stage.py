"""Image curation stage raced against a wall-clock timeout.

The curation work and a timer are started as two independent tasks and
joined first-completed. If the timer wins, the work task keeps running but
its eventual result is discarded; sections finished before the deadline
keep their images and every other section gets an empty list. Curator
usage reaches the ledger only for the sections whose images are kept, and
nothing is reported to the sink once the stage has resolved.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .agents.image_curator import ImageCuratorAgent
from .logging_config import ProgressReporter
from .model_router import image_analysis_model
from .models import AgentName, ImageRecord, SectionImages, SectionResult, SectionTask, StageStatus, TokenUsage
from .token_tracker import TokenTracker

logger = logging.getLogger(__name__)

AGENT_KEY = "imageCurator"


@dataclass
class ImageStageOutcome:
    images: list[SectionImages]
    status: StageStatus
    completed_sections: int = 0
    background: asyncio.Task | None = field(default=None, repr=False)


def _consume_result(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Late image curation failure ignored: %s", exc)


def _assemble(tasks: list[SectionTask], completed: dict[int, list[ImageRecord]]) -> list[SectionImages]:
    return [
        SectionImages(section_id=task.id, images=list(completed.get(i, [])))
        for i, task in enumerate(tasks)
    ]


async def run_image_stage(
    curator: ImageCuratorAgent,
    tasks: list[SectionTask],
    results: list[SectionResult],
    *,
    tracker: TokenTracker,
    reporter: ProgressReporter,
    timeout: float = 120.0,
    section_delay: float = 1.0,
) -> ImageStageOutcome:
    completed: dict[int, list[ImageRecord]] = {}
    usages: dict[int, TokenUsage] = {}
    resolved = False
    total = len(tasks)

    def _record(kept: dict[int, list[ImageRecord]]) -> None:
        for i in sorted(kept):
            tracker.record(AgentName.IMAGE_CURATOR, usages[i], model_tier=image_analysis_model())

    async def _work() -> None:
        for i, (task, result) in enumerate(zip(tasks, results)):
            if i and section_delay > 0:
                await asyncio.sleep(section_delay)
            images, usage = await curator.curate_section(task, result.content)
            completed[i] = images
            usages[i] = usage
            if resolved:
                continue
            reporter.agent(
                AGENT_KEY,
                status="running",
                progress=round((i + 1) / total * 100) if total else 100,
                detail=f"{task.title}: {len(images)} image(s)",
            )

    reporter.agent(AGENT_KEY, status="running", progress=0, detail=f"{total} sections")
    work = asyncio.ensure_future(_work())
    timer = asyncio.ensure_future(asyncio.sleep(timeout))
    done, _ = await asyncio.wait({work, timer}, return_when=asyncio.FIRST_COMPLETED)

    resolved = True
    if work in done:
        timer.cancel()
        exc = work.exception()
        if exc is not None:
            logger.warning("Image curation failed, continuing without images: %s", exc)
            reporter.log(AGENT_KEY, "warn", f"Image curation skipped: {exc}")
            return ImageStageOutcome(images=_assemble(tasks, {}), status=StageStatus.SKIPPED)
        _record(completed)
        count = sum(len(v) for v in completed.values())
        reporter.agent(AGENT_KEY, status="completed", progress=100, detail=f"{count} image(s)")
        return ImageStageOutcome(
            images=_assemble(tasks, completed),
            status=StageStatus.COMPLETED,
            completed_sections=len(completed),
        )

    snapshot = dict(completed)
    _record(snapshot)
    work.add_done_callback(_consume_result)
    logger.warning("Image curation timed out after %.0fs (%d/%d sections done)",
                   timeout, len(snapshot), total)
    reporter.log(AGENT_KEY, "warn", f"Image curation timed out after {timeout:.0f}s")
    reporter.agent(AGENT_KEY, status="timeout", progress=100,
                   detail=f"{len(snapshot)}/{total} sections")
    return ImageStageOutcome(
        images=_assemble(tasks, snapshot),
        status=StageStatus.TIMED_OUT,
        completed_sections=len(snapshot),
        background=work,
    )
