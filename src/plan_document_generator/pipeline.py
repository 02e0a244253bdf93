"""Pipeline: stage orchestration for plan document generation.

RESEARCH        optional academic enrichment (soft-failing)
PLANNING        SectionPlanner builds the bounded outline (fatal on error)
SLIDE_PLANNING  optional slide plan (soft-failing)
WRITING         WriterPool drafts every leaf in ordered rounds (fatal on error)
IMAGE_CURATION  per-section visuals, raced against a timeout (soft-failing)
QUALITY_GATE    sampled review + bounded rewrite loop
ASSEMBLY        bundle with token summary and optimization report

All run state (token ledger, progress counters) is created per call to
``generate_document`` and dropped when it returns or raises.
"""

from __future__ import annotations

import logging
import time
import uuid

from .agents.image_curator import ImageCuratorAgent
from .agents.researcher import PaperSearch, ResearchAgent
from .agents.reviewer import ReviewerAgent
from .agents.section_planner import SectionPlanner, build_section_tasks
from .agents.slide_planner import SlidePlanner
from .image_stage import run_image_stage
from .logging_config import ProgressReporter, ProgressSink
from .model_router import planner_model
from .models import (
    AgentName,
    DocumentBundle,
    DocumentOutline,
    PipelinePhase,
    ProjectBrief,
    ProjectConfig,
    ResearchResult,
    RunMetadata,
    SectionImages,
    SectionResult,
    SectionTask,
    SlidePlan,
    StageStatus,
)
from .quality_gate import QualityGate
from .token_tracker import TokenTracker
from .tools.arxiv_search import ArxivClient
from .tools.image_generation import ImageGenerationProvider, OpenAIImageGenerator
from .tools.image_search import ImageSearchProvider, UnsplashImageSearch
from .tools.scholar_search import SemanticScholarClient
from .tools.text_generation import AG2TextGenerator, TextGenerator
from .writer_pool import WriterPool

logger = logging.getLogger(__name__)


PLANNER_RESEARCH_HEADING = "Academic research context"
WRITER_RESEARCH_HEADING = "Background research"


def enrich_brief(
    brief: ProjectBrief,
    research: ResearchResult | None,
    heading: str = WRITER_RESEARCH_HEADING,
) -> ProjectBrief:
    """Append the research summary and keywords to the idea under *heading*."""
    if research is None or not research.summary:
        return brief
    context = (
        f"\n\n[{heading}]\n{research.summary}"
        f"\n\n[Research keywords: {', '.join(research.keywords)}]"
    )
    return brief.model_copy(update={"idea": brief.idea + context})


class _Run:
    """State owned by exactly one ``generate_document`` call."""

    def __init__(self, brief: ProjectBrief, sink: ProgressSink | None) -> None:
        self.run_id = brief.correlation_id or uuid.uuid4().hex
        self.started = time.monotonic()
        self.tracker = TokenTracker()
        self.reporter = ProgressReporter(self.run_id, sink)
        self.stages: dict[str, StageStatus] = {}

    def phase(self, phase: PipelinePhase, message: str) -> None:
        logger.info("[%s] %s", phase.value, message)
        self.reporter.log("pipeline", "info", message)


class Pipeline:
    """Sequences the generation stages; the only caller-facing component."""

    def __init__(
        self,
        config: ProjectConfig,
        generator: TextGenerator,
        *,
        image_search: ImageSearchProvider | None = None,
        image_generator: ImageGenerationProvider | None = None,
        scholar: PaperSearch | None = None,
        arxiv: PaperSearch | None = None,
    ) -> None:
        self.config = config
        self.generator = generator
        self.image_search = image_search or UnsplashImageSearch(config.images)
        self.image_generator = image_generator or OpenAIImageGenerator(config.images)
        self.scholar = scholar
        self.arxiv = arxiv

    # ------------------------------------------------------------------
    # Soft-failing stages
    # ------------------------------------------------------------------

    async def _research(self, brief: ProjectBrief, run: _Run) -> ResearchResult | None:
        if not self.config.research_enabled:
            run.stages[PipelinePhase.RESEARCH.value] = StageStatus.DISABLED
            return None
        run.phase(PipelinePhase.RESEARCH, "Researching background sources")
        run.reporter.agent("researcher", status="running", progress=0)
        agent = ResearchAgent(self.generator, self.config, scholar=self.scholar, arxiv=self.arxiv)
        try:
            result = await agent.research(brief.idea)
        except Exception as e:
            logger.warning("Research failed, continuing without it: %s", e)
            run.reporter.log("researcher", "warn", f"Research skipped: {e}")
            run.reporter.agent("researcher", status="skipped", progress=100)
            run.stages[PipelinePhase.RESEARCH.value] = StageStatus.SKIPPED
            return None
        finally:
            if agent.usage.total_tokens:
                run.tracker.record(AgentName.RESEARCHER, agent.usage, model_tier=planner_model())
        run.reporter.agent("researcher", status="completed", progress=100,
                           detail=f"{result.stats.total_papers} paper(s): "
                                  f"Semantic Scholar {result.stats.semantic_scholar}, arXiv {result.stats.arxiv}")
        run.stages[PipelinePhase.RESEARCH.value] = StageStatus.COMPLETED
        return result

    async def _slides(
        self,
        brief: ProjectBrief,
        outline: DocumentOutline,
        research: ResearchResult | None,
        run: _Run,
    ) -> SlidePlan | None:
        if not self.config.slide_planning_enabled:
            run.stages[PipelinePhase.SLIDE_PLANNING.value] = StageStatus.DISABLED
            return None
        run.phase(PipelinePhase.SLIDE_PLANNING, "Planning presentation slides")
        try:
            plan, usage = await SlidePlanner(self.generator, self.config).plan(brief, outline, research)
        except Exception as e:
            logger.warning("Slide planning failed, continuing without it: %s", e)
            run.reporter.log("slidePlanner", "warn", f"Slide planning skipped: {e}")
            run.stages[PipelinePhase.SLIDE_PLANNING.value] = StageStatus.SKIPPED
            return None
        run.tracker.record(AgentName.SLIDE_PLANNER, usage, model_tier=planner_model())
        run.stages[PipelinePhase.SLIDE_PLANNING.value] = StageStatus.COMPLETED
        return plan

    async def _images(
        self, tasks: list[SectionTask], results: list[SectionResult], run: _Run,
    ) -> list[SectionImages]:
        if not self.config.image_curation_enabled:
            run.stages[PipelinePhase.IMAGE_CURATION.value] = StageStatus.DISABLED
            return [SectionImages(section_id=t.id) for t in tasks]
        run.phase(PipelinePhase.IMAGE_CURATION, f"Curating images for {len(tasks)} sections")
        curator = ImageCuratorAgent(
            self.generator,
            self.config,
            searcher=self.image_search,
            image_generator=self.image_generator,
        )
        try:
            outcome = await run_image_stage(
                curator, tasks, results,
                tracker=run.tracker,
                reporter=run.reporter,
                timeout=self.config.image_stage_timeout,
                section_delay=self.config.image_section_delay,
            )
        except Exception as e:
            logger.warning("Image curation failed, continuing without images: %s", e)
            run.reporter.log("imageCurator", "warn", f"Image curation skipped: {e}")
            run.stages[PipelinePhase.IMAGE_CURATION.value] = StageStatus.SKIPPED
            return [SectionImages(section_id=t.id) for t in tasks]
        run.stages[PipelinePhase.IMAGE_CURATION.value] = outcome.status
        return outcome.images

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def plan_only(self, brief: ProjectBrief) -> tuple[list[SectionTask], TokenTracker]:
        """Run the planner and router only (no writing)."""
        tracker = TokenTracker()
        planning = await SectionPlanner(self.generator, self.config).plan(brief)
        tracker.record(AgentName.ARCHITECT, planning.usage, model_tier=planner_model())
        return build_section_tasks(planning.outline, self.config), tracker

    async def generate_document(
        self,
        brief: ProjectBrief,
        progress_sink: ProgressSink | None = None,
    ) -> DocumentBundle:
        run = _Run(brief, progress_sink)
        logger.info("Run %s: generating %r", run.run_id, brief.title)

        research = await self._research(brief, run)
        planner_brief = enrich_brief(brief, research, PLANNER_RESEARCH_HEADING)
        writer_brief = enrich_brief(brief, research)

        # Planning failures are fatal.
        run.phase(PipelinePhase.PLANNING, "Designing document structure")
        run.reporter.agent("architect", status="running", progress=0)
        try:
            planning = await SectionPlanner(self.generator, self.config).plan(planner_brief)
        except Exception as e:
            run.reporter.log("architect", "error", f"Planning failed: {e}")
            raise
        run.tracker.record(AgentName.ARCHITECT, planning.usage, model_tier=planner_model())
        outline = planning.outline
        tasks = build_section_tasks(outline, self.config)
        run.stages[PipelinePhase.PLANNING.value] = StageStatus.COMPLETED
        run.reporter.agent("architect", status="completed", progress=100,
                           detail=f"{len(outline.sections)} sections, {len(tasks)} leaves")

        slides = await self._slides(brief, outline, research, run)

        # Writing failures are fatal.
        run.phase(PipelinePhase.WRITING,
                  f"Writing {len(tasks)} sections with {self.config.writer_pool_size} writers")
        pool = WriterPool(self.generator, self.config, tracker=run.tracker, reporter=run.reporter)
        try:
            results = await pool.write_all(tasks, writer_brief)
        except Exception as e:
            run.reporter.log("writerTeam", "error", f"Writing failed: {e}")
            raise
        run.stages[PipelinePhase.WRITING.value] = StageStatus.COMPLETED

        images = await self._images(tasks, results, run)

        run.phase(PipelinePhase.QUALITY_GATE, "Reviewing and rewriting below-threshold sections")
        gate = QualityGate(
            ReviewerAgent(self.generator, self.config),
            pool,
            self.config,
            tracker=run.tracker,
            reporter=run.reporter,
        )
        quality = await gate.run(tasks, results, writer_brief)
        run.stages[PipelinePhase.QUALITY_GATE.value] = StageStatus.COMPLETED

        run.phase(PipelinePhase.ASSEMBLY, "Assembling document bundle")
        metadata = RunMetadata(
            run_id=run.run_id,
            elapsed_seconds=round(time.monotonic() - run.started, 3),
            writer_pool_size=self.config.writer_pool_size,
            review_rounds=quality.rounds,
            stages=run.stages,
            token_summary=run.tracker.summary(),
            optimization_report=run.tracker.optimization_report(),
        )
        logger.info("Run %s finished in %.1fs, cost $%.4f",
                    run.run_id, metadata.elapsed_seconds, metadata.token_summary.total.cost)
        run.reporter.log("pipeline", "success", "Document generation complete")
        return DocumentBundle(
            outline=outline,
            tasks=tasks,
            sections=quality.results,
            images=images,
            reviews=quality.summary,
            research=research,
            slides=slides,
            metadata=metadata,
        )


# ---------------------------------------------------------------------------
# Convenience constructors
# ---------------------------------------------------------------------------

def build_pipeline(config: ProjectConfig) -> Pipeline:
    """Pipeline wired to the AG2, Unsplash, OpenAI Images, Semantic Scholar and arXiv providers."""
    return Pipeline(
        config,
        AG2TextGenerator(config),
        image_search=UnsplashImageSearch(config.images),
        image_generator=OpenAIImageGenerator(config.images),
        scholar=SemanticScholarClient(config.scholar_base_url),
        arxiv=ArxivClient(config.arxiv_base_url),
    )


async def generate_document(
    brief: ProjectBrief,
    config: ProjectConfig,
    progress_sink: ProgressSink | None = None,
) -> DocumentBundle:
    return await build_pipeline(config).generate_document(brief, progress_sink)
