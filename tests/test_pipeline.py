"""End-to-end pipeline tests with scripted providers."""

from __future__ import annotations

import asyncio
import json

import pytest

from conftest import (
    FakeImageGenerator,
    FakeImageSearch,
    FakePaperSearch,
    FakeTextGenerator,
    RecordingSink,
    outline_json,
    review_json,
)
from plan_document_generator.errors import ProviderError
from plan_document_generator.models import (
    ImageSearchHit,
    ModelTier,
    PaperReference,
    ProjectBrief,
    ResearchResult,
    StageStatus,
)
from plan_document_generator.pipeline import PLANNER_RESEARCH_HEADING, Pipeline, enrich_brief

ARCHITECT = "document architect"
REVIEWER = "strict reviewer"
CURATOR = "needs visuals"
KEYWORDS = "academic search keywords"
SUMMARY = "Summarise the research"
SLIDES = "presentation decks"


class FakeScholar:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error

    async def search_papers(self, query: str, limit: int = 10) -> list[PaperReference]:
        if self.error is not None:
            raise self.error
        return [PaperReference(title=f"Study of {query}", year=2023, authors=["Lee"])]


def make_responder(*, outline: str | None = None, review_score: float = 95, overrides: dict | None = None):
    """Route each call by the agent's system prompt."""
    overrides = overrides or {}

    def respond(call):
        system = call["system_prompt"]
        for marker, reply in overrides.items():
            if marker in system:
                return reply(call) if callable(reply) else reply
        if ARCHITECT in system:
            return outline or outline_json(2, 2)
        if REVIEWER in system:
            return review_json(review_score)
        if CURATOR in system:
            return json.dumps({"needs_images": True, "images": [
                {"type": "photo", "method": "search", "keywords": ["farm"], "caption": "Farm"},
            ]})
        if KEYWORDS in system:
            return '["smart farming", "greenhouse IoT"]'
        if SUMMARY in system:
            return "Academic interest in greenhouse IoT is rising."
        if SLIDES in system:
            return json.dumps({"slides": [{"type": "cover", "title": "Smart Farm"}]})
        return f"Body for {call['prompt'].splitlines()[3]}"

    return respond


def _pipeline(config, responder, **kwargs) -> tuple[Pipeline, FakeTextGenerator]:
    generator = FakeTextGenerator(responder)
    kwargs.setdefault("image_search", FakeImageSearch(hits=[ImageSearchHit(url="https://img/farm.jpg")]))
    kwargs.setdefault("image_generator", FakeImageGenerator())
    kwargs.setdefault("scholar", FakeScholar())
    kwargs.setdefault("arxiv", FakePaperSearch(provider="arxiv"))
    return Pipeline(config, generator, **kwargs), generator


class TestEnrichBrief:
    def test_no_research(self, brief):
        assert enrich_brief(brief, None) is brief

    def test_appends_summary(self, brief):
        enriched = enrich_brief(brief, ResearchResult(keywords=["a", "b"], summary="S"))
        assert enriched.idea.startswith(brief.idea)
        assert "[Background research]\nS" in enriched.idea
        assert "[Research keywords: a, b]" in enriched.idea
        assert brief.idea != enriched.idea

    def test_planner_heading(self, brief):
        enriched = enrich_brief(brief, ResearchResult(keywords=["a"], summary="S"), PLANNER_RESEARCH_HEADING)
        assert "[Academic research context]\nS" in enriched.idea
        assert "[Background research]" not in enriched.idea


class TestGenerateDocument:
    @pytest.mark.asyncio
    async def test_minimal_run(self, config, brief):
        pipeline, generator = _pipeline(config, make_responder())
        bundle = await pipeline.generate_document(brief)

        assert [t.id for t in bundle.tasks] == ["1.1", "1.2", "2.1", "2.2"]
        assert [s.section_id for s in bundle.sections] == [t.id for t in bundle.tasks]
        assert bundle.sections[0].content == "Body for Section: Topic 1.1"
        assert bundle.reviews.average_score == 95
        assert bundle.metadata.run_id == "run-test"
        assert bundle.metadata.review_rounds == 1
        assert bundle.metadata.stages == {
            "research": StageStatus.DISABLED,
            "planning": StageStatus.COMPLETED,
            "slide_planning": StageStatus.DISABLED,
            "writing": StageStatus.COMPLETED,
            "image_curation": StageStatus.DISABLED,
            "quality_gate": StageStatus.COMPLETED,
        }
        assert all(s.images == [] for s in bundle.images)
        assert bundle.research is None
        assert bundle.slides is None

        summary = bundle.metadata.token_summary
        assert set(summary.agents) == {"architect", "reviewer"}
        assert summary.writer.sections == 4
        assert summary.total.total_tokens == 150 * len(generator.calls)

    @pytest.mark.asyncio
    async def test_all_stages_enabled(self, config, brief):
        config.research_enabled = True
        config.image_curation_enabled = True
        config.slide_planning_enabled = True
        sink = RecordingSink()
        pipeline, generator = _pipeline(config, make_responder())
        bundle = await pipeline.generate_document(brief, sink)

        assert bundle.research is not None
        assert bundle.research.keywords == ["smart farming", "greenhouse IoT"]
        assert bundle.slides.slides[0].layout == "cover-hero"
        assert all(len(s.images) == 1 for s in bundle.images)
        assert bundle.images[0].images[0].url == "https://img/farm.jpg"
        assert bundle.metadata.stages["image_curation"] is StageStatus.COMPLETED
        assert set(bundle.metadata.token_summary.agents) == {
            "architect", "reviewer", "image_curator", "researcher", "slide_planner",
        }

        assert bundle.research.stats.semantic_scholar == 2
        assert bundle.research.stats.arxiv == 0

        # Both the planner and the writers see the research summary.
        writer_call = next(c for c in generator.calls if "professional writer" in c["system_prompt"])
        planner_call = generator.calls_for(ARCHITECT)[0]
        assert "[Background research]" in writer_call["prompt"]
        assert "[Academic research context]" in planner_call["prompt"]
        assert "Academic interest in greenhouse IoT is rising." in planner_call["prompt"]
        assert "smart farming, greenhouse IoT" in planner_call["prompt"]
        assert {run_id for run_id, _, _ in sink.updates} == {"run-test"}
        assert sink.logs[-1]["level"] == "success"

    @pytest.mark.asyncio
    async def test_premium_routing_reaches_writers(self, config, brief):
        pipeline, generator = _pipeline(config, make_responder(outline=outline_json(3, 3)))
        bundle = await pipeline.generate_document(brief)
        tiers = [t.model_tier for t in bundle.tasks]
        assert tiers[:3] == [ModelTier.PREMIUM] * 3
        assert tiers[3] is ModelTier.STANDARD
        assert tiers[-2:] == [ModelTier.PREMIUM] * 2
        writer_models = [c["model"] for c in generator.calls if "professional writer" in c["system_prompt"]]
        assert writer_models.count(config.models.premium) == 5

    @pytest.mark.asyncio
    async def test_low_scores_trigger_rewrites(self, config, brief):
        scores = iter([60, 60, 60, 60, 95, 95, 95, 95])
        pipeline, _ = _pipeline(config, make_responder(overrides={REVIEWER: lambda call: review_json(next(scores))}))
        bundle = await pipeline.generate_document(brief)
        assert bundle.metadata.review_rounds == 2
        assert bundle.metadata.token_summary.writer.sections == 8
        assert bundle.reviews.average_score == 95

    @pytest.mark.asyncio
    async def test_runs_are_isolated(self, config):
        pipeline, _ = _pipeline(config, make_responder())
        first, second = await asyncio.gather(
            pipeline.generate_document(ProjectBrief(title="A", idea="a", correlation_id="a")),
            pipeline.generate_document(ProjectBrief(title="B", idea="b", correlation_id="b")),
        )
        assert first.metadata.run_id == "a"
        assert second.metadata.run_id == "b"
        assert first.metadata.token_summary.total.total_tokens == second.metadata.token_summary.total.total_tokens

    @pytest.mark.asyncio
    async def test_generated_run_id(self, config):
        pipeline, _ = _pipeline(config, make_responder())
        bundle = await pipeline.generate_document(ProjectBrief(title="A", idea="a"))
        assert len(bundle.metadata.run_id) == 32


class TestFailureHandling:
    @pytest.mark.asyncio
    async def test_planner_failure_is_fatal(self, config, brief):
        sink = RecordingSink()
        pipeline, _ = _pipeline(config, make_responder(overrides={ARCHITECT: RuntimeError("planner down")}))
        with pytest.raises(RuntimeError, match="planner down"):
            await pipeline.generate_document(brief, sink)
        assert sink.logs[-1]["level"] == "error"

    @pytest.mark.asyncio
    async def test_writer_failure_is_fatal(self, config, brief):
        def respond(call):
            if "professional writer" in call["system_prompt"] and "Topic 2.1" in call["prompt"]:
                return RuntimeError("writer quota exceeded")
            return make_responder()(call)

        pipeline, _ = _pipeline(config, respond)
        with pytest.raises(RuntimeError, match="writer quota exceeded"):
            await pipeline.generate_document(brief)

    @pytest.mark.asyncio
    async def test_research_failure_is_soft(self, config, brief):
        config.research_enabled = True
        pipeline, _ = _pipeline(config, make_responder(overrides={KEYWORDS: RuntimeError("no keywords")}))
        bundle = await pipeline.generate_document(brief)
        assert bundle.research is None
        assert bundle.metadata.stages["research"] is StageStatus.SKIPPED
        assert len(bundle.sections) == 4

    @pytest.mark.asyncio
    async def test_scholar_outage_still_completes_research(self, config, brief):
        config.research_enabled = True
        scholar = FakeScholar(error=ProviderError("semantic-scholar", "503"))
        pipeline, _ = _pipeline(config, make_responder(), scholar=scholar)
        bundle = await pipeline.generate_document(brief)
        assert bundle.metadata.stages["research"] is StageStatus.COMPLETED
        assert bundle.research.papers == []
        assert bundle.research.summary == "No related academic sources were found."

    @pytest.mark.asyncio
    async def test_slide_failure_is_soft(self, config, brief):
        config.slide_planning_enabled = True
        pipeline, _ = _pipeline(config, make_responder(overrides={SLIDES: RuntimeError("slides down")}))
        bundle = await pipeline.generate_document(brief)
        assert bundle.slides is None
        assert bundle.metadata.stages["slide_planning"] is StageStatus.SKIPPED

    @pytest.mark.asyncio
    async def test_image_timeout_is_soft(self, config, brief):
        config.image_curation_enabled = True
        config.image_stage_timeout = 0.05
        hang = asyncio.Event()

        async def stall(call):
            await hang.wait()

        pipeline, _ = _pipeline(config, make_responder(overrides={CURATOR: stall}))
        bundle = await pipeline.generate_document(brief)
        assert bundle.metadata.stages["image_curation"] is StageStatus.TIMED_OUT
        assert all(s.images == [] for s in bundle.images)
        assert len(bundle.sections) == 4
        for task in asyncio.all_tasks():
            if task is not asyncio.current_task():
                task.cancel()

    @pytest.mark.asyncio
    async def test_failing_progress_sink_is_ignored(self, config, brief):
        class BrokenSink:
            def update_agent(self, run_id, agent_name, data):
                raise ConnectionError("socket closed")

            def add_log(self, run_id, entry):
                raise ConnectionError("socket closed")

        pipeline, _ = _pipeline(config, make_responder())
        bundle = await pipeline.generate_document(brief, BrokenSink())
        assert len(bundle.sections) == 4


class TestPlanOnly:
    @pytest.mark.asyncio
    async def test_plan_only(self, config, brief):
        pipeline, generator = _pipeline(config, make_responder())
        tasks, tracker = await pipeline.plan_only(brief)
        assert len(tasks) == 4
        assert len(generator.calls) == 1
        assert tracker.total.total_tokens == 150
