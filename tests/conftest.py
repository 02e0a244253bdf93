"""Shared test fixtures and scripted provider fakes."""

from __future__ import annotations

import inspect
import json
from pathlib import Path
from typing import Any, Callable

import pytest

from plan_document_generator.errors import ProviderError
from plan_document_generator.logging_config import ProgressReporter
from plan_document_generator.models import (
    GeneratedImage,
    GenerationResult,
    ImageSearchHit,
    PaperReference,
    ProjectBrief,
    ProjectConfig,
    SectionTask,
    TokenUsage,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_CONFIG = FIXTURES_DIR / "sample_config.yaml"

DEFAULT_USAGE = TokenUsage(input_tokens=100, output_tokens=50)


# ---------------------------------------------------------------------------
# Provider fakes
# ---------------------------------------------------------------------------


class FakeTextGenerator:
    """Scripted ``TextGenerator``.

    *responder* receives the call dict and returns a string, a
    ``GenerationResult`` or an exception instance (raised). It may be async.
    """

    def __init__(self, responder: Callable[[dict[str, Any]], Any] | None = None, *, default: str = "ok") -> None:
        self.responder = responder
        self.default = default
        self.calls: list[dict[str, Any]] = []

    async def generate_text(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None = None,
    ) -> GenerationResult:
        call = {
            "prompt": prompt,
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system_prompt": system_prompt or "",
        }
        self.calls.append(call)
        out: Any = self.default if self.responder is None else self.responder(call)
        if inspect.isawaitable(out):
            out = await out
        if isinstance(out, BaseException):
            raise out
        if isinstance(out, GenerationResult):
            return out
        return GenerationResult(text=out, usage=DEFAULT_USAGE.model_copy())

    def calls_for(self, marker: str) -> list[dict[str, Any]]:
        return [c for c in self.calls if marker in c["system_prompt"]]


class QueueResponder:
    """Returns queued responses in order, then repeats the last one."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)

    def __call__(self, call: dict[str, Any]) -> Any:
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class FakeImageSearch:
    def __init__(self, hits: list[ImageSearchHit] | None = None, error: Exception | None = None) -> None:
        self.hits = hits or []
        self.error = error
        self.queries: list[list[str]] = []

    async def search_images(self, keywords: list[str], count: int) -> list[ImageSearchHit]:
        self.queries.append(list(keywords))
        if self.error is not None:
            raise self.error
        return self.hits[:count]


class FakeImageGenerator:
    def __init__(self, url: str = "https://images.example/generated.png", error: Exception | None = None) -> None:
        self.url = url
        self.error = error
        self.prompts: list[tuple[str, str]] = []

    async def generate_image(self, prompt: str, category: str) -> GeneratedImage:
        self.prompts.append((prompt, category))
        if self.error is not None:
            raise self.error
        return GeneratedImage(url=self.url, revised_prompt=None)


class FakePaperSearch:
    """Paper search keyed by query. Queries listed in *failing* raise ``ProviderError``."""

    def __init__(
        self,
        papers: dict[str, list[PaperReference]] | None = None,
        failing: set[str] | None = None,
        *,
        provider: str = "semantic-scholar",
        error: Exception | None = None,
    ) -> None:
        self.papers = papers or {}
        self.failing = failing or set()
        self.provider = provider
        self.error = error
        self.queries: list[str] = []

    async def search_papers(self, query: str, limit: int = 10) -> list[PaperReference]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        if query in self.failing:
            raise ProviderError(self.provider, "503")
        return self.papers.get(query, [])[:limit]


class RecordingSink:
    def __init__(self) -> None:
        self.updates: list[tuple[str, str, dict[str, Any]]] = []
        self.logs: list[dict[str, Any]] = []

    def update_agent(self, run_id: str, agent_name: str, data: dict[str, Any]) -> None:
        self.updates.append((run_id, agent_name, data))

    def add_log(self, run_id: str, entry: dict[str, Any]) -> None:
        self.logs.append(entry)


# ---------------------------------------------------------------------------
# Canned provider output
# ---------------------------------------------------------------------------


def outline_json(section_count: int = 2, leaves_per_section: int = 2) -> str:
    sections = []
    for s in range(1, section_count + 1):
        sections.append({
            "title": f"Part {s}",
            "priority": "medium",
            "subsections": [
                {"title": f"Topic {s}.{leaf}", "estimated_words": 800, "requirements": ["be concrete"]}
                for leaf in range(1, leaves_per_section + 1)
            ],
        })
    return json.dumps({"title": "Generated Plan", "sections": sections})


def review_json(score: float, verdict: str | None = None, weaknesses: list[str] | None = None) -> str:
    if verdict is None:
        verdict = "pass" if score >= 70 else "revise"
    return json.dumps({
        "scores": {"structure": 25, "style": 20, "content": 25, "emphasis": 10},
        "overall_score": score,
        "verdict": verdict,
        "strengths": ["clear"],
        "weaknesses": weaknesses if weaknesses is not None else ["needs more data"],
        "improvements": [{"issue": "thin evidence", "suggestion": "add market figures"}],
    })


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


@pytest.fixture
def sample_config_path() -> Path:
    return SAMPLE_CONFIG


@pytest.fixture
def config() -> ProjectConfig:
    """Config with every inter-call delay disabled and optional stages off."""
    return ProjectConfig(
        project_name="Test",
        writer_round_delay=0.0,
        review_delay=0.0,
        image_section_delay=0.0,
        research_enabled=False,
        image_curation_enabled=False,
        slide_planning_enabled=False,
    )


@pytest.fixture
def brief() -> ProjectBrief:
    return ProjectBrief(
        title="Smart Farm Platform",
        idea="IoT sensors and analytics for greenhouse crop monitoring",
        category="business-plan",
        correlation_id="run-test",
    )


@pytest.fixture
def reporter() -> ProgressReporter:
    return ProgressReporter("run-test")


@pytest.fixture
def make_tasks() -> Callable[..., list[SectionTask]]:
    def _make(n: int, **overrides: Any) -> list[SectionTask]:
        return [
            SectionTask(id=f"1.{i + 1}", title=f"Topic {i + 1}", **overrides)
            for i in range(n)
        ]
    return _make
