"""Pydantic models for the plan document generator pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Importance(str, Enum):
    CORE = "core"
    STANDARD = "standard"
    SIMPLE = "simple"


class ModelTier(str, Enum):
    """Cost/quality class of the backing model, cheapest first."""
    ECONOMY = "economy"
    STANDARD = "standard"
    PREMIUM = "premium"
    FLAGSHIP = "flagship"


class Verdict(str, Enum):
    PASS = "pass"
    REVISE = "revise"
    FAIL = "fail"


class ImageMethod(str, Enum):
    SEARCH = "search"
    GENERATE = "generate"


class ImagePlacement(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class ImageProvenance(str, Enum):
    SEARCH = "search"
    GENERATED = "generated"
    FALLBACK_PLACEHOLDER = "fallback-placeholder"


class PaperSource(str, Enum):
    SEMANTIC_SCHOLAR = "semantic-scholar"
    ARXIV = "arxiv"


class AgentName(str, Enum):
    ARCHITECT = "architect"
    WRITER = "writer"
    IMAGE_CURATOR = "image_curator"
    REVIEWER = "reviewer"
    RESEARCHER = "researcher"
    SLIDE_PLANNER = "slide_planner"


class PipelinePhase(str, Enum):
    RESEARCH = "research"
    PLANNING = "planning"
    SLIDE_PLANNING = "slide_planning"
    WRITING = "writing"
    IMAGE_CURATION = "image_curation"
    QUALITY_GATE = "quality_gate"
    ASSEMBLY = "assembly"


class StageStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    DISABLED = "disabled"
    TIMED_OUT = "timed_out"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

class ProjectBrief(BaseModel):
    """Immutable description of the document to produce."""
    model_config = ConfigDict(frozen=True)

    title: str = Field(..., description="Project / document title")
    idea: str = Field(..., description="Free-text project idea")
    category: str | None = Field(default=None, description="Category tag, e.g. 'business-plan'")
    correlation_id: str | None = Field(default=None, description="Caller-supplied run id")


# ---------------------------------------------------------------------------
# Usage accounting
# ---------------------------------------------------------------------------

class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class GenerationResult(BaseModel):
    """Text returned by a text-generation provider plus its token usage."""
    text: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


class UsageEntry(BaseModel):
    agent: AgentName
    section_title: str | None = None
    model_tier: ModelTier
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0


class AgentUsage(BaseModel):
    """Running total for a non-writer agent."""
    model_tier: ModelTier
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class WriterUsageSummary(BaseModel):
    sections: int = 0
    tiers: list[ModelTier] = Field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


class UsageTotals(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost: float = 0.0


class TokenSummary(BaseModel):
    elapsed_seconds: float
    agents: dict[str, AgentUsage] = Field(default_factory=dict)
    writer: WriterUsageSummary = Field(default_factory=WriterUsageSummary)
    total: UsageTotals = Field(default_factory=UsageTotals)


class OptimizationSuggestion(BaseModel):
    kind: str = Field(..., description="over_budget | model_mix | downgrade_possible | cost_warning | cost_ok")
    message: str
    sections: list[str] = Field(default_factory=list)


class TierBreakdown(BaseModel):
    premium_count: int = 0
    premium_cost: float = 0.0
    standard_count: int = 0
    standard_cost: float = 0.0


class OptimizationReport(BaseModel):
    """Advisory cost signals derived from the ledger. Never used for routing."""
    total_cost: float = 0.0
    target_cost: float = 0.20
    suggestions: list[OptimizationSuggestion] = Field(default_factory=list)
    tier_breakdown: TierBreakdown = Field(default_factory=TierBreakdown)


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------

class OutlineSubsection(BaseModel):
    id: str = Field(default="", description="Leaf id, e.g. '2.3'")
    title: str
    level: int = 2
    importance: Importance | None = None
    estimated_words: int | None = None
    requirements: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _str_id(cls, v: object) -> object:
        return "" if v is None else str(v)

    @field_validator("level", mode="before")
    @classmethod
    def _default_level(cls, v: object) -> object:
        return 2 if v in (None, "") else v

    @field_validator("importance", mode="before")
    @classmethod
    def _lenient_importance(cls, v: object) -> object:
        if isinstance(v, str) and v.lower() in {i.value for i in Importance}:
            return v.lower()
        return None

    @field_validator("estimated_words", mode="before")
    @classmethod
    def _lenient_words(cls, v: object) -> object:
        try:
            return int(v) if v is not None else None
        except (TypeError, ValueError):
            return None

    @field_validator("requirements", mode="before")
    @classmethod
    def _join_requirements(cls, v: object) -> object:
        if v is None:
            return ""
        if isinstance(v, list):
            return "\n".join(f"- {item}" for item in v if item)
        return v


class OutlineSection(BaseModel):
    id: str = Field(default="", description="Top-level id, e.g. '2'")
    title: str
    level: int = 1
    priority: str = Field(default="medium", description="critical | high | medium | low")
    subsections: list[OutlineSubsection] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _str_id(cls, v: object) -> object:
        return "" if v is None else str(v)

    @field_validator("priority", mode="before")
    @classmethod
    def _normalise_priority(cls, v: object) -> object:
        return str(v).strip().lower() if v else "medium"


class DocumentOutline(BaseModel):
    title: str = ""
    sections: list[OutlineSection] = Field(default_factory=list)

    @property
    def leaf_count(self) -> int:
        return sum(len(s.subsections) for s in self.sections)


class TokenBudget(BaseModel):
    max_output_tokens: int
    target_chars: int


class SectionTask(BaseModel):
    """One leaf section assigned to exactly one writer invocation."""
    id: str
    title: str
    level: int = 2
    importance: Importance = Importance.STANDARD
    priority: str = "medium"
    parent_title: str = ""
    estimated_words: int = 1000
    requirements: str = ""
    model_tier: ModelTier | None = None
    max_output_tokens: int | None = None
    target_chars: int | None = None


class PlanningResult(BaseModel):
    outline: DocumentOutline
    usage: TokenUsage = Field(default_factory=TokenUsage)
    failure: str | None = Field(default=None, description="Parse failure kind when the fallback outline was used")


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SectionResult(BaseModel):
    """Generated content for one SectionTask. Replaced, never merged."""
    section_id: str
    title: str = ""
    content: str
    word_count: int = 0
    model_tier: ModelTier | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)
    duration_seconds: float = 0.0
    generated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------

class ReviewScores(BaseModel):
    structure: float = Field(default=0.0, ge=0, le=30)
    style: float = Field(default=0.0, ge=0, le=25)
    content: float = Field(default=0.0, ge=0, le=30)
    emphasis: float = Field(default=0.0, ge=0, le=15)

    @property
    def total(self) -> float:
        return self.structure + self.style + self.content + self.emphasis


class ReviewImprovement(BaseModel):
    issue: str = ""
    suggestion: str = ""


class ReviewRecord(BaseModel):
    section_id: str
    section_title: str = ""
    scores: ReviewScores = Field(default_factory=ReviewScores)
    overall_score: float = 0.0
    verdict: Verdict = Verdict.REVISE
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)
    improvements: list[ReviewImprovement] = Field(default_factory=list)
    usage: TokenUsage = Field(default_factory=TokenUsage)
    error: str | None = None

    def feedback_lines(self) -> list[str]:
        """Weaknesses followed by ``issue: suggestion`` lines."""
        lines = [w for w in self.weaknesses if w]
        lines.extend(f"{imp.issue}: {imp.suggestion}" for imp in self.improvements)
        return lines


class ReviewSummary(BaseModel):
    records: list[ReviewRecord] = Field(default_factory=list)
    average_score: float = 0.0
    passed: int = 0
    revise: int = 0
    failed: int = 0


class QualityGateOutcome(BaseModel):
    results: list[SectionResult]
    summary: ReviewSummary
    rounds: int
    best_score: float
    rewrite_count: int = 0


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------

class ImageSearchHit(BaseModel):
    url: str
    caption: str | None = None
    credit: str | None = None


class GeneratedImage(BaseModel):
    url: str
    revised_prompt: str | None = None


class ImageRequest(BaseModel):
    """One image slot proposed by the analysis agent."""
    type: str = "photo"
    method: ImageMethod = ImageMethod.SEARCH
    placement: ImagePlacement = ImagePlacement.MIDDLE
    keywords: list[str] = Field(default_factory=list)
    prompt: str = ""
    caption: str = ""

    @field_validator("method", mode="before")
    @classmethod
    def _lenient_method(cls, v: object) -> object:
        return "generate" if str(v).strip().lower() == "generate" else "search"

    @field_validator("placement", mode="before")
    @classmethod
    def _lenient_placement(cls, v: object) -> object:
        value = str(v).strip().lower()
        return value if value in {"top", "middle", "bottom"} else "middle"

    @field_validator("keywords", mode="before")
    @classmethod
    def _split_keywords(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, v: object) -> object:
        return str(v).strip().lower() if v else "photo"

    @field_validator("prompt", "caption", mode="before")
    @classmethod
    def _none_to_empty(cls, v: object) -> object:
        return "" if v is None else v


class ImageAnalysis(BaseModel):
    needs_images: bool = False
    images: list[ImageRequest] = Field(default_factory=list)


class ImageRecord(BaseModel):
    type: str
    method: ImageMethod
    placement: ImagePlacement
    url: str
    provenance: ImageProvenance
    caption: str = ""
    credit: str | None = None


class SectionImages(BaseModel):
    section_id: str
    images: list[ImageRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Auxiliary stages
# ---------------------------------------------------------------------------

class PaperReference(BaseModel):
    paper_id: str = ""
    title: str
    abstract: str | None = None
    year: int | None = None
    citation_count: int = 0
    authors: list[str] = Field(default_factory=list)
    url: str | None = None
    venue: str | None = None
    source: PaperSource = PaperSource.SEMANTIC_SCHOLAR

    def citation(self) -> str:
        authors = ", ".join(self.authors[:3])
        if len(self.authors) > 3:
            authors += " et al."
        year = f" ({self.year})" if self.year else ""
        venue = f". {self.venue}" if self.venue else ""
        return f"{authors}{year}. {self.title}{venue}".strip(". ")


class ResearchStats(BaseModel):
    """Papers found per source before de-duplication and the combined count."""

    semantic_scholar: int = 0
    arxiv: int = 0
    total_papers: int = 0


class ResearchResult(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    papers: list[PaperReference] = Field(default_factory=list)
    summary: str = ""
    references: list[str] = Field(default_factory=list)
    stats: ResearchStats = Field(default_factory=ResearchStats)


class SlideSpec(BaseModel):
    page_number: int = 0
    type: str = "overview"
    title: str
    layout: str = "left-right-split"
    points: list[str] = Field(default_factory=list)
    notes: str = ""


class SlidePlan(BaseModel):
    slides: list[SlideSpec] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Output bundle
# ---------------------------------------------------------------------------

class RunMetadata(BaseModel):
    run_id: str
    elapsed_seconds: float
    writer_pool_size: int
    review_rounds: int = 0
    stages: dict[str, StageStatus] = Field(default_factory=dict)
    token_summary: TokenSummary
    optimization_report: OptimizationReport


class DocumentBundle(BaseModel):
    outline: DocumentOutline
    tasks: list[SectionTask]
    sections: list[SectionResult]
    images: list[SectionImages] = Field(default_factory=list)
    reviews: ReviewSummary | None = None
    research: ResearchResult | None = None
    slides: SlidePlan | None = None
    metadata: RunMetadata


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ModelConfig(BaseModel):
    """Concrete model id per tier."""
    economy: str = "claude-haiku-4-5"
    standard: str = "claude-sonnet-4-5"
    premium: str = "claude-opus-4-6"
    flagship: str = "claude-opus-4-1"


class LLMEndpointConfig(BaseModel):
    api_type: str = Field(default="anthropic", description="AG2 api_type, e.g. 'anthropic' or 'openai'")
    api_key: str = ""
    base_url: str = ""


class ImageProviderConfig(BaseModel):
    unsplash_access_key: str = ""
    unsplash_base_url: str = "https://api.unsplash.com"
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    generation_model: str = "dall-e-3"
    generation_size: str = "1792x1024"
    request_timeout: float = 30.0


class ProjectConfig(BaseModel):
    """Top-level configuration loaded from YAML or Hydra."""
    project_name: str = "plan-document"
    output_dir: str = "output/"

    llm: LLMEndpointConfig = Field(default_factory=LLMEndpointConfig)
    models: ModelConfig = Field(default_factory=ModelConfig)
    images: ImageProviderConfig = Field(default_factory=ImageProviderConfig)

    pro_mode: bool = False
    writer_pool_size: int = Field(default=3, ge=1)
    writer_round_delay: float = 2.0
    writer_temperature: float = 0.7

    quality_threshold: float = 90.0
    max_rewrite_rounds: int = Field(default=2, ge=0)
    max_review_sections: int = Field(default=12, ge=1)
    review_delay: float = 2.0

    image_curation_enabled: bool = True
    image_stage_timeout: float = 120.0
    image_section_delay: float = 1.0

    research_enabled: bool = True
    research_max_papers: int = 10
    scholar_base_url: str = "https://api.semanticscholar.org/graph/v1"
    arxiv_base_url: str = "https://export.arxiv.org/api/query"
    slide_planning_enabled: bool = False

    timeout: int = 120
    seed: int = 42

