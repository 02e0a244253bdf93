"""Image generation capability backed by the OpenAI Images API."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from ..errors import ProviderError
from ..models import GeneratedImage, ImageProviderConfig

logger = logging.getLogger(__name__)

DIAGRAM_PROMPT_TEMPLATES: dict[str, str] = {
    "architecture": (
        "A clean system architecture diagram for a business document: {prompt}. "
        "Flat vector style, labelled boxes connected by arrows, white background, "
        "blue and gray palette, no photographic elements."
    ),
    "flowchart": (
        "A professional process flowchart: {prompt}. Rounded step boxes, decision "
        "diamonds, directional arrows, minimal flat design on a white background."
    ),
    "chart": (
        "A presentation-quality business chart: {prompt}. Clear axes, labelled bars "
        "or lines, corporate color palette, flat infographic style."
    ),
    "workflow": (
        "A horizontal workflow illustration: {prompt}. Sequential numbered stages, "
        "icons for each stage, connecting arrows, flat vector style."
    ),
    "default": (
        "A professional illustration for a business planning document: {prompt}. "
        "Modern flat design, clean composition, no text overlays."
    ),
}


_IMAGE_TYPE_TO_DIAGRAM: dict[str, str] = {
    "diagram": "architecture",
    "architecture": "architecture",
    "flowchart": "flowchart",
    "flow": "flowchart",
    "process": "flowchart",
    "chart": "chart",
    "graph": "chart",
    "workflow": "workflow",
}


def diagram_type_for(image_type: str) -> str:
    """Map an analyzer image type to one of the diagram template keys."""
    return _IMAGE_TYPE_TO_DIAGRAM.get((image_type or "").strip().lower(), "default")


def build_image_prompt(prompt: str, category: str) -> str:
    template = DIAGRAM_PROMPT_TEMPLATES.get(category, DIAGRAM_PROMPT_TEMPLATES["default"])
    return template.format(prompt=prompt.strip())


class ImageGenerationProvider(Protocol):
    async def generate_image(self, prompt: str, category: str) -> GeneratedImage: ...


class OpenAIImageGenerator:
    """``ImageGenerationProvider`` calling ``POST /images/generations``."""

    def __init__(
        self,
        config: ImageProviderConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport

    async def generate_image(self, prompt: str, category: str) -> GeneratedImage:
        if not self.config.openai_api_key:
            raise ProviderError("image-generation", "OPENAI_API_KEY is not configured")

        body = {
            "model": self.config.generation_model,
            "prompt": build_image_prompt(prompt, category),
            "n": 1,
            "size": self.config.generation_size,
        }
        headers = {"Authorization": f"Bearer {self.config.openai_api_key}"}
        async with httpx.AsyncClient(
            base_url=self.config.openai_base_url,
            timeout=httpx.Timeout(max(self.config.request_timeout, 60.0)),
            transport=self._transport,
        ) as client:
            try:
                response = await client.post("/images/generations", json=body, headers=headers)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise ProviderError("image-generation", str(e)) from e
            payload = response.json()

        data = payload.get("data") or []
        if not data or not data[0].get("url"):
            raise ProviderError("image-generation", "response contained no image url")
        logger.debug("Generated %s image for prompt %.60s", category, prompt)
        return GeneratedImage(url=data[0]["url"], revised_prompt=data[0].get("revised_prompt"))
