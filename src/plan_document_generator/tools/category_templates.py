"""Structural outline templates per document category."""

from __future__ import annotations

CATEGORY_TEMPLATES: dict[str, dict[str, object]] = {
    "business-plan": {
        "label": "Startup business plan",
        "sections": [
            "Executive Summary",
            "Business Overview",
            "Market Analysis",
            "Competitive Analysis",
            "Business Model",
            "Business Strategy",
            "Organization and Staffing",
            "Schedule and Milestones",
            "Financial Plan",
            "Appendix",
        ],
    },
    "marketing": {
        "label": "Marketing campaign plan",
        "sections": [
            "Campaign Overview",
            "Market Analysis",
            "Target Audience",
            "Channel Strategy",
            "Content Plan",
            "Budget Allocation",
            "Schedule and Milestones",
            "KPIs and Measurement",
        ],
    },
    "tech-doc": {
        "label": "Technical design document",
        "sections": [
            "Overview",
            "Technology Landscape",
            "Requirements",
            "System Architecture",
            "Data Design",
            "Interfaces",
            "Security and Operations",
            "Glossary",
        ],
    },
    "dev-plan": {
        "label": "Software development plan",
        "sections": [
            "Project Overview",
            "Scope and Requirements",
            "Technical Approach",
            "Organization and Staffing",
            "Schedule and Milestones",
            "Risk Management",
            "Quality Assurance",
            "Appendix",
        ],
    },
    "investment": {
        "label": "Investment proposal",
        "sections": [
            "Investment Highlights",
            "Business Model",
            "Market Analysis",
            "Competitive Analysis",
            "Traction",
            "Financial Plan",
            "Use of Funds",
            "Team",
        ],
    },
    "research-report": {
        "label": "Industry research report",
        "sections": [
            "Executive Summary",
            "Research Background",
            "Market Analysis",
            "Technology Landscape",
            "Case Studies",
            "Outlook",
            "Conclusions",
            "References",
        ],
    },
    "national-project": {
        "label": "Government R&D project proposal",
        "sections": [
            "Project Overview",
            "Technology Landscape",
            "R&D Objectives and Content",
            "Implementation Organization",
            "Schedule and Milestones",
            "Business Strategy",
            "Expected Outcomes",
            "Budget and Financial Plan",
            "Appendix",
        ],
    },
}


def get_category_template(category: str | None) -> dict[str, object] | None:
    if not category:
        return None
    return CATEGORY_TEMPLATES.get(category.strip().lower())


def render_category_template(category: str | None) -> str:
    """Prompt block describing the category's expected structure, or ``""``."""
    template = get_category_template(category)
    if template is None:
        return ""
    lines = [f"Document type: {template['label']}.", "Use these top-level sections in order:"]
    lines.extend(f"{i}. {title}" for i, title in enumerate(template["sections"], start=1))
    return "\n".join(lines)
