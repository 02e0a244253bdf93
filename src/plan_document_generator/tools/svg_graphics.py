"""Deterministic SVG fallbacks for the image stage.

Both helpers return ``data:image/svg+xml;base64,...`` URIs that depend only
on their inputs, so the same query or prompt always yields the same bytes.
"""

from __future__ import annotations

import base64
import re
import zlib
from xml.sax.saxutils import escape

WIDTH = 800
HEIGHT = 450

_PALETTE = ("#3B82F6", "#8B5CF6", "#10B981", "#F59E0B", "#EF4444", "#6366F1")

_DIAGRAM_COLORS: dict[str, tuple[str, str]] = {
    "architecture": ("#1E40AF", "#DBEAFE"),
    "flowchart": ("#047857", "#D1FAE5"),
    "chart": ("#B45309", "#FEF3C7"),
    "workflow": ("#6D28D9", "#EDE9FE"),
    "default": ("#374151", "#F3F4F6"),
}

_DEFAULT_LABELS: dict[str, tuple[str, ...]] = {
    "architecture": ("Client", "Gateway", "Service", "Storage", "Analytics", "Monitoring"),
    "flowchart": ("Start", "Input", "Process", "Review", "Output", "End"),
    "chart": ("Q1", "Q2", "Q3", "Q4", "Growth", "Target"),
    "workflow": ("Plan", "Build", "Test", "Launch", "Measure", "Improve"),
    "default": ("Overview", "Context", "Approach", "Result", "Impact", "Next"),
}

STOPWORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "for", "to", "in", "on", "with", "by", "at",
    "from", "as", "is", "are", "be", "this", "that", "these", "those", "it", "its",
    "into", "using", "use", "show", "shows", "showing", "illustrating", "depicting",
    "diagram", "chart", "image", "picture", "illustration", "graphic", "visual",
    "professional", "clean", "modern", "simple", "style", "design", "flat",
    "background", "white", "color", "colors", "high", "quality", "detailed",
    "및", "의", "를", "을", "에", "와", "과", "이", "가", "은", "는", "위한", "대한",
})

_TOKEN_RE = re.compile(r"[\w\-]+", re.UNICODE)


def _data_uri(svg: str) -> str:
    return "data:image/svg+xml;base64," + base64.b64encode(svg.encode("utf-8")).decode("ascii")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


# ---------------------------------------------------------------------------
# Keyword extraction
# ---------------------------------------------------------------------------

def extract_label_keywords(
    prompt: str,
    *,
    minimum: int = 4,
    maximum: int = 6,
    diagram_type: str = "default",
) -> list[str]:
    """Pick 4–6 salient words from *prompt* for use as diagram labels.

    Stopwords and pure numbers are dropped and duplicates removed. When the
    prompt is too sparse, the list is padded with type-specific defaults.
    """
    seen: set[str] = set()
    words: list[str] = []
    for token in _TOKEN_RE.findall(prompt or ""):
        lowered = token.lower().strip("-_")
        if not lowered or lowered in STOPWORDS or lowered.replace(".", "").isdigit():
            continue
        if len(lowered) < 2 or lowered in seen:
            continue
        seen.add(lowered)
        words.append(token.strip("-_"))
        if len(words) == maximum:
            break

    defaults = _DEFAULT_LABELS.get(diagram_type, _DEFAULT_LABELS["default"])
    for label in defaults:
        if len(words) >= minimum:
            break
        if label.lower() not in seen:
            seen.add(label.lower())
            words.append(label)
    return words


# ---------------------------------------------------------------------------
# Placeholder
# ---------------------------------------------------------------------------

def placeholder_svg(keywords: list[str]) -> str:
    """Framed placeholder labelled with the search keywords."""
    query = " ".join(k for k in keywords if k) or "image"
    color = _PALETTE[zlib.crc32(query.encode("utf-8")) % len(_PALETTE)]
    label = escape(_truncate(query, 40))
    cx, cy = WIDTH // 2, HEIGHT // 2
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {WIDTH} {HEIGHT}" '
        'style="font-family:sans-serif">'
        f'<rect width="{WIDTH}" height="{HEIGHT}" fill="#F8FAFC" rx="12"/>'
        f'<rect x="8" y="8" width="{WIDTH - 16}" height="{HEIGHT - 16}" fill="white" rx="8" '
        f'stroke="{color}" stroke-width="2" stroke-dasharray="8 4"/>'
        f'<circle cx="{cx}" cy="{cy - 30}" r="40" fill="{color}" opacity="0.15"/>'
        f'<text x="{cx}" y="{cy + 30}" text-anchor="middle" font-size="16" '
        f'font-weight="600" fill="#374151">{label}</text>'
        f'<text x="{cx}" y="{cy + 55}" text-anchor="middle" font-size="12" '
        'fill="#9CA3AF">Image placeholder</text>'
        "</svg>"
    )
    return _data_uri(svg)


# ---------------------------------------------------------------------------
# Diagrams
# ---------------------------------------------------------------------------

def _box(x: int, y: int, w: int, h: int, label: str, stroke: str, fill: str, rx: int = 8) -> str:
    return (
        f'<rect x="{x}" y="{y}" width="{w}" height="{h}" rx="{rx}" fill="{fill}" '
        f'stroke="{stroke}" stroke-width="2"/>'
        f'<text x="{x + w // 2}" y="{y + h // 2 + 5}" text-anchor="middle" font-size="14" '
        f'fill="{stroke}">{escape(_truncate(label, 16))}</text>'
    )


def _arrow(x1: int, y1: int, x2: int, y2: int, stroke: str) -> str:
    return (
        f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="{stroke}" '
        'stroke-width="2" marker-end="url(#arrow)"/>'
    )


def _architecture(labels: list[str], stroke: str, fill: str) -> str:
    # Top node fans out to a row of components.
    parts = [_box(WIDTH // 2 - 90, 90, 180, 56, labels[0], stroke, fill)]
    rest = labels[1:]
    slot = WIDTH // (len(rest) + 1)
    for i, label in enumerate(rest, start=1):
        x = slot * i - 60
        parts.append(_arrow(WIDTH // 2, 146, slot * i, 260, stroke))
        parts.append(_box(x, 262, 120, 56, label, stroke, fill))
    return "".join(parts)


def _flowchart(labels: list[str], stroke: str, fill: str) -> str:
    parts = []
    step = (WIDTH - 80) // len(labels)
    for i, label in enumerate(labels):
        x = 40 + step * i
        rx = 28 if i in (0, len(labels) - 1) else 8
        parts.append(_box(x, 200, step - 30, 56, label, stroke, fill, rx=rx))
        if i:
            parts.append(_arrow(x - 30, 228, x - 2, 228, stroke))
    return "".join(parts)


def _chart(labels: list[str], stroke: str, fill: str) -> str:
    parts = [
        _arrow(80, 380, 80, 90, stroke),
        _arrow(80, 380, 740, 380, stroke),
    ]
    slot = 640 // len(labels)
    for i, label in enumerate(labels):
        height = 60 + 40 * ((i * 3 + 1) % len(labels))
        x = 100 + slot * i
        parts.append(
            f'<rect x="{x}" y="{378 - height}" width="{slot - 24}" height="{height}" '
            f'fill="{fill}" stroke="{stroke}" stroke-width="2"/>'
        )
        parts.append(
            f'<text x="{x + (slot - 24) // 2}" y="402" text-anchor="middle" font-size="12" '
            f'fill="{stroke}">{escape(_truncate(label, 12))}</text>'
        )
    return "".join(parts)


def _workflow(labels: list[str], stroke: str, fill: str) -> str:
    parts = []
    step = (WIDTH - 80) // len(labels)
    for i, label in enumerate(labels):
        cx = 40 + step * i + step // 2
        parts.append(f'<circle cx="{cx}" cy="190" r="26" fill="{fill}" stroke="{stroke}" stroke-width="2"/>')
        parts.append(
            f'<text x="{cx}" y="196" text-anchor="middle" font-size="16" font-weight="700" '
            f'fill="{stroke}">{i + 1}</text>'
        )
        parts.append(
            f'<text x="{cx}" y="250" text-anchor="middle" font-size="13" '
            f'fill="{stroke}">{escape(_truncate(label, 14))}</text>'
        )
        if i:
            parts.append(_arrow(cx - step + 28, 190, cx - 30, 190, stroke))
    return "".join(parts)


_LAYOUTS = {
    "architecture": _architecture,
    "flowchart": _flowchart,
    "chart": _chart,
    "workflow": _workflow,
    "default": _flowchart,
}


def diagram_svg(prompt: str, diagram_type: str) -> str:
    """Labelled diagram whose layout depends on *diagram_type*."""
    kind = diagram_type if diagram_type in _LAYOUTS else "default"
    stroke, fill = _DIAGRAM_COLORS[kind]
    labels = extract_label_keywords(prompt, diagram_type=kind)
    title = escape(_truncate(" ".join(labels[:3]), 50))
    body = _LAYOUTS[kind](labels, stroke, fill)
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {WIDTH} {HEIGHT}" '
        'style="font-family:sans-serif">'
        '<defs><marker id="arrow" markerWidth="10" markerHeight="10" refX="8" refY="3" '
        f'orient="auto"><path d="M0,0 L0,6 L9,3 z" fill="{stroke}"/></marker></defs>'
        f'<rect width="{WIDTH}" height="{HEIGHT}" fill="white" rx="12"/>'
        f'<text x="{WIDTH // 2}" y="48" text-anchor="middle" font-size="20" font-weight="700" '
        f'fill="{stroke}">{title}</text>'
        f"{body}"
        "</svg>"
    )
    return _data_uri(svg)
