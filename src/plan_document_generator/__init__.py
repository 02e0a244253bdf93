"""Multi-agent generator for long-form planning documents."""

from .models import DocumentBundle, ProjectBrief, ProjectConfig
from .pipeline import Pipeline, build_pipeline, generate_document

__all__ = [
    "DocumentBundle",
    "Pipeline",
    "ProjectBrief",
    "ProjectConfig",
    "build_pipeline",
    "generate_document",
]

__version__ = "0.1.0"
