"""Provider adapters and deterministic helpers used by the agents."""

from .svg_graphics import diagram_svg, extract_label_keywords, placeholder_svg

__all__ = [
    "diagram_svg",
    "extract_label_keywords",
    "placeholder_svg",
]
