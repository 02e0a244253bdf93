"""Configuration loader and LLM config builder.

Reads project settings from a YAML config file with ``${ENV_VAR}``
interpolation and builds AG2 ``llm_config`` dicts for a concrete model id.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .models import LLMEndpointConfig, ProjectConfig

load_dotenv()

# ---------------------------------------------------------------------------
# YAML loading with ${ENV_VAR} interpolation
# ---------------------------------------------------------------------------

_ENV_RE = re.compile(r"\$\{([^}]+)\}")


def _resolve_env_vars(value: Any) -> Any:
    """Recursively resolve ``${ENV_VAR}`` references in strings."""
    if isinstance(value, str):
        return _ENV_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _resolve_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(v) for v in value]
    return value


def apply_credential_fallbacks(config: ProjectConfig) -> ProjectConfig:
    """Fill empty provider credentials from well-known environment variables."""
    if not config.llm.api_key:
        env_name = "OPENAI_API_KEY" if config.llm.api_type == "openai" else "ANTHROPIC_API_KEY"
        config.llm.api_key = os.getenv(env_name, "")
    if not config.llm.base_url:
        config.llm.base_url = os.getenv("LLM_BASE_URL", "")
    config.llm.base_url = config.llm.base_url.rstrip("/")
    if not config.images.unsplash_access_key:
        config.images.unsplash_access_key = os.getenv("UNSPLASH_ACCESS_KEY", "")
    if not config.images.openai_api_key:
        config.images.openai_api_key = os.getenv("OPENAI_API_KEY", "")
    return config


def load_config(config_path: str | Path) -> ProjectConfig:
    """Load a ``ProjectConfig`` from a YAML file.

    Environment variables referenced as ``${VAR_NAME}`` are resolved, then
    empty credentials fall back to ``ANTHROPIC_API_KEY``,
    ``UNSPLASH_ACCESS_KEY`` and ``OPENAI_API_KEY``.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    config = ProjectConfig.model_validate(_resolve_env_vars(raw))
    return apply_credential_fallbacks(config)


# ---------------------------------------------------------------------------
# LLM config builder
# ---------------------------------------------------------------------------

def _build_single_entry(model: str, llm: LLMEndpointConfig) -> dict[str, Any]:
    """Build a single AG2 config_list entry for *model*."""
    entry: dict[str, Any] = {
        "model": model,
        "api_key": llm.api_key,
        "api_type": llm.api_type,
    }
    if llm.base_url:
        entry["base_url"] = llm.base_url
    return entry


def build_model_llm_config(
    model: str,
    config: ProjectConfig,
    *,
    max_tokens: int | None = None,
    temperature: float | None = None,
) -> dict[str, Any]:
    """Return an AG2-compatible ``llm_config`` dict for one concrete model id."""
    entry = _build_single_entry(model, config.llm)
    if max_tokens is not None:
        entry["max_tokens"] = max_tokens
    if temperature is not None:
        entry["temperature"] = temperature
    return {
        "config_list": [entry],
        "timeout": config.timeout,
        "seed": config.seed,
    }
