"""Text-generation capability and its AG2-backed implementation.

Agents only see the ``TextGenerator`` protocol. ``AG2TextGenerator`` runs a
one-turn chat between an orchestrator ``UserProxyAgent`` and a freshly built
``AssistantAgent`` carrying the call's system prompt and model settings.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import autogen

from ..config import build_model_llm_config
from ..errors import ProviderError
from ..models import GenerationResult, ProjectConfig, TokenUsage

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate_text(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None = None,
    ) -> GenerationResult: ...


# ---------------------------------------------------------------------------
# AG2 response helpers
# ---------------------------------------------------------------------------

def extract_text(response: Any) -> str:
    """Extract the assistant's reply from an AG2 chat response."""
    if hasattr(response, "summary") and response.summary:
        return str(response.summary).strip()
    if hasattr(response, "chat_history"):
        if not response.chat_history:
            return ""
        last = response.chat_history[-1]
        text = last.get("content", "") if isinstance(last, dict) else str(last)
        return (text or "").strip()
    return str(response).strip()


def extract_usage(response: Any) -> TokenUsage:
    """Sum prompt/completion tokens across models in an AG2 cost summary."""
    cost = getattr(response, "cost", None) or {}
    bucket = cost.get("usage_including_cached_inference") or {}
    usage = TokenUsage()
    for key, stats in bucket.items():
        if key == "total_cost" or not isinstance(stats, dict):
            continue
        usage.input_tokens += int(stats.get("prompt_tokens", 0) or 0)
        usage.output_tokens += int(stats.get("completion_tokens", 0) or 0)
    return usage


# ---------------------------------------------------------------------------
# Implementation
# ---------------------------------------------------------------------------

class AG2TextGenerator:
    """``TextGenerator`` backed by AG2 assistant agents."""

    def __init__(self, config: ProjectConfig, *, agent_name: str = "Generator") -> None:
        self.config = config
        self.agent_name = agent_name

    def _make_agents(
        self, model: str, max_tokens: int, temperature: float, system_prompt: str | None,
    ) -> tuple[autogen.UserProxyAgent, autogen.AssistantAgent]:
        assistant = autogen.AssistantAgent(
            name=self.agent_name,
            system_message=system_prompt or "You are a helpful assistant.",
            llm_config=build_model_llm_config(
                model, self.config, max_tokens=max_tokens, temperature=temperature,
            ),
        )
        orchestrator = autogen.UserProxyAgent(
            name="Orchestrator",
            human_input_mode="NEVER",
            code_execution_config=False,
        )
        return orchestrator, assistant

    async def generate_text(
        self,
        prompt: str,
        *,
        model: str,
        max_tokens: int,
        temperature: float,
        system_prompt: str | None = None,
    ) -> GenerationResult:
        orchestrator, assistant = self._make_agents(model, max_tokens, temperature, system_prompt)
        try:
            response = await orchestrator.a_initiate_chat(
                assistant,
                message=prompt,
                max_turns=1,
                silent=True,
            )
        except Exception as e:
            raise ProviderError("text-generation", f"{model}: {e}") from e

        text = extract_text(response)
        if not text:
            raise ProviderError("text-generation", f"{model}: empty response")
        return GenerationResult(text=text, usage=extract_usage(response))
