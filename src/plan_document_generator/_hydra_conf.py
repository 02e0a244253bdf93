"""Hydra structured config dataclasses.

These mirror the Pydantic ``ProjectConfig`` for Hydra schema validation.
At runtime the Hydra DictConfig is converted to ``ProjectConfig`` via
``cli._to_project_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hydra.core.config_store import ConfigStore


@dataclass
class LLMConf:
    api_type: str = "anthropic"
    api_key: str = "${oc.env:ANTHROPIC_API_KEY,''}"
    base_url: str = ""


@dataclass
class ModelConf:
    economy: str = "claude-haiku-4-5"
    standard: str = "claude-sonnet-4-5"
    premium: str = "claude-opus-4-6"
    flagship: str = "claude-opus-4-1"


@dataclass
class ImageConf:
    unsplash_access_key: str = "${oc.env:UNSPLASH_ACCESS_KEY,''}"
    unsplash_base_url: str = "https://api.unsplash.com"
    openai_api_key: str = "${oc.env:OPENAI_API_KEY,''}"
    openai_base_url: str = "https://api.openai.com/v1"
    generation_model: str = "dall-e-3"
    generation_size: str = "1792x1024"
    request_timeout: float = 30.0


@dataclass
class PdgConf:
    # --- Dispatch + CLI-only fields ---
    mode: str = "run"
    verbose: bool = False
    quiet: bool = False
    title: str = ""
    idea: str = ""
    category: str | None = None
    run_id: str | None = None
    output_file: str | None = None

    # --- ProjectConfig fields (1:1 mapping) ---
    project_name: str = "plan-document"
    output_dir: str = "output/"

    llm: LLMConf = field(default_factory=LLMConf)
    models: ModelConf = field(default_factory=ModelConf)
    images: ImageConf = field(default_factory=ImageConf)

    pro_mode: bool = False
    writer_pool_size: int = 3
    writer_round_delay: float = 2.0
    writer_temperature: float = 0.7

    quality_threshold: float = 90.0
    max_rewrite_rounds: int = 2
    max_review_sections: int = 12
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


# Keys present in PdgConf that are NOT part of ProjectConfig.
CLI_ONLY_KEYS = frozenset({
    "mode", "verbose", "quiet", "title", "idea", "category", "run_id", "output_file",
})


def register_configs() -> None:
    """Register the structured config schema with Hydra's ConfigStore."""
    cs = ConfigStore.instance()
    cs.store(name="pdg_schema", node=PdgConf)
