"""ImageCurator agent: decides which visuals a section needs and acquires them.

Analysis runs on the cheapest tier. Acquisition follows two fallback chains:

* search   → photo search → SVG placeholder labelled with the keywords
* generate → image generation → SVG diagram in a type-specific layout
"""

from __future__ import annotations

import logging

from ..model_router import image_analysis_model, resolve_model_name
from ..models import (
    ImageAnalysis,
    ImageMethod,
    ImageProvenance,
    ImageRecord,
    ImageRequest,
    ProjectConfig,
    SectionTask,
    TokenUsage,
)
from ..structured_output import parse_structured
from ..tools.image_generation import ImageGenerationProvider, diagram_type_for
from ..tools.image_search import ImageSearchProvider
from ..tools.svg_graphics import diagram_svg, placeholder_svg
from ..tools.text_generation import TextGenerator

logger = logging.getLogger(__name__)

MAX_IMAGES_PER_SECTION = 2
SEARCH_RESULT_COUNT = 3
_CONTENT_PREVIEW = 1200

SYSTEM_PROMPT = """\
You decide whether a section of a planning document needs visuals.

Return ONLY valid JSON:
{"needs_images": true,
 "images": [{"type": "photo|diagram|flowchart|chart|workflow",
             "method": "search|generate",
             "placement": "top|middle|bottom",
             "keywords": ["two to four English search keywords"],
             "prompt": "one-sentence description for generated diagrams",
             "caption": "short caption"}]}

Use "search" for real-world photos and "generate" for diagrams and charts.
At most two images. Return {"needs_images": false, "images": []} when text suffices.
"""


class ImageCuratorAgent:
    name = "ImageCurator"

    def __init__(
        self,
        generator: TextGenerator,
        config: ProjectConfig,
        *,
        searcher: ImageSearchProvider,
        image_generator: ImageGenerationProvider,
    ) -> None:
        self.generator = generator
        self.config = config
        self.searcher = searcher
        self.image_generator = image_generator

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze(self, task: SectionTask, content: str) -> tuple[ImageAnalysis, TokenUsage]:
        """Ask the analysis model for image needs; one retry on unparseable output."""
        prompt = f"Section: {task.title}\n\nContent:\n{content[:_CONTENT_PREVIEW]}"
        usage = TokenUsage()
        for attempt in (1, 2):
            try:
                response = await self.generator.generate_text(
                    prompt,
                    model=resolve_model_name(image_analysis_model(), self.config.models),
                    max_tokens=800,
                    temperature=0.3,
                    system_prompt=SYSTEM_PROMPT,
                )
            except Exception as e:
                logger.warning("Image analysis for %r failed: %s", task.title, e)
                return ImageAnalysis(), usage
            usage.input_tokens += response.usage.input_tokens
            usage.output_tokens += response.usage.output_tokens
            parsed = parse_structured(response.text, ImageAnalysis, default=ImageAnalysis())
            if parsed.ok:
                return parsed.value, usage
            logger.debug("Image analysis attempt %d for %r unparseable (%s)",
                         attempt, task.title, parsed.failure.value)
        return ImageAnalysis(), usage

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------

    async def _search(self, request: ImageRequest, task: SectionTask) -> ImageRecord:
        keywords = request.keywords or [task.title]
        try:
            hits = await self.searcher.search_images(keywords, SEARCH_RESULT_COUNT)
        except Exception as e:
            logger.warning("Photo search for %r failed: %s", keywords, e)
            hits = []
        if hits:
            hit = hits[0]
            return ImageRecord(
                type=request.type,
                method=ImageMethod.SEARCH,
                placement=request.placement,
                url=hit.url,
                provenance=ImageProvenance.SEARCH,
                caption=request.caption or hit.caption or "",
                credit=hit.credit,
            )
        return ImageRecord(
            type=request.type,
            method=ImageMethod.SEARCH,
            placement=request.placement,
            url=placeholder_svg(keywords),
            provenance=ImageProvenance.FALLBACK_PLACEHOLDER,
            caption=request.caption or " ".join(keywords),
        )

    async def _generate(self, request: ImageRequest, task: SectionTask) -> ImageRecord:
        prompt = request.prompt or request.caption or task.title
        category = diagram_type_for(request.type)
        try:
            image = await self.image_generator.generate_image(prompt, category)
        except Exception as e:
            logger.warning("Image generation for %r failed, drawing %s diagram: %s", task.title, category, e)
            return ImageRecord(
                type=request.type,
                method=ImageMethod.GENERATE,
                placement=request.placement,
                url=diagram_svg(prompt, category),
                provenance=ImageProvenance.FALLBACK_PLACEHOLDER,
                caption=request.caption or prompt,
            )
        return ImageRecord(
            type=request.type,
            method=ImageMethod.GENERATE,
            placement=request.placement,
            url=image.url,
            provenance=ImageProvenance.GENERATED,
            caption=request.caption or image.revised_prompt or prompt,
        )

    async def curate_section(self, task: SectionTask, content: str) -> tuple[list[ImageRecord], TokenUsage]:
        analysis, usage = await self.analyze(task, content)
        if not analysis.needs_images or not analysis.images:
            return [], usage

        records: list[ImageRecord] = []
        for request in analysis.images[:MAX_IMAGES_PER_SECTION]:
            if request.method is ImageMethod.GENERATE:
                records.append(await self._generate(request, task))
            else:
                records.append(await self._search(request, task))
        return records, usage
