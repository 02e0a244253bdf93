"""CLI entry point using Hydra.

Usage examples:
  pdg mode=run title="Smart Farm Platform" idea="IoT-based crop monitoring" category=business-plan
  pdg mode=plan title="Cloud Migration" idea="..." category=national-project
  pdg mode=route title="..." idea="..." pro_mode=true
  pdg --config-dir . --config-name config mode=run output_file=bundle.json
"""

from __future__ import annotations

import asyncio
import re
import sys
from pathlib import Path
from typing import Any

import hydra
from omegaconf import DictConfig, OmegaConf
from rich.table import Table

from ._hydra_conf import CLI_ONLY_KEYS, register_configs
from .config import apply_credential_fallbacks
from .logging_config import RichProgressSink, console, setup_logging
from .models import ProjectBrief, ProjectConfig

register_configs()

# ---------------------------------------------------------------------------
# Hydra DictConfig → Pydantic ProjectConfig bridge
# ---------------------------------------------------------------------------


def _to_project_config(cfg: DictConfig) -> ProjectConfig:
    """Convert a Hydra *DictConfig* to a Pydantic ``ProjectConfig``.

    CLI-only keys (``mode``, ``title``, etc.) are stripped before validation.
    Credential env-var fallbacks are applied afterwards.
    """
    container: dict[str, Any] = OmegaConf.to_container(cfg, resolve=True)  # type: ignore[assignment]
    for key in CLI_ONLY_KEYS:
        container.pop(key, None)
    config = ProjectConfig.model_validate(container)
    return apply_credential_fallbacks(config)


def _to_brief(cfg: DictConfig) -> ProjectBrief:
    title = (cfg.get("title") or "").strip()
    idea = (cfg.get("idea") or "").strip()
    if not title or not idea:
        console.print("[red]Both title=... and idea=... are required[/]")
        sys.exit(1)
    return ProjectBrief(
        title=title,
        idea=idea,
        category=cfg.get("category"),
        correlation_id=cfg.get("run_id"),
    )


def _slug(text: str) -> str:
    slug = re.sub(r"[^\w]+", "-", text.lower(), flags=re.UNICODE).strip("-")
    return slug[:60] or "document"


# ---------------------------------------------------------------------------
# Mode handlers
# ---------------------------------------------------------------------------


def _run_mode(cfg: DictConfig) -> None:
    config = _to_project_config(cfg)
    brief = _to_brief(cfg)

    from .pipeline import build_pipeline

    pipeline = build_pipeline(config)
    console.print(f"[bold]Generating:[/] {brief.title}")
    bundle = asyncio.run(pipeline.generate_document(brief, RichProgressSink()))

    output = Path(cfg.get("output_file") or Path(config.output_dir) / f"{_slug(brief.title)}.json")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")

    meta = bundle.metadata
    console.print("\n[bold green]Document generated![/]")
    console.print(f"  Sections: {len(bundle.sections)}")
    if bundle.reviews:
        console.print(f"  Review score: {bundle.reviews.average_score:.1f} after {meta.review_rounds} round(s)")
    console.print(f"  Tokens: {meta.token_summary.total.total_tokens:,}")
    console.print(f"  Cost: ${meta.token_summary.total.cost:.4f}")
    console.print(f"  Elapsed: {meta.elapsed_seconds:.1f}s")
    for suggestion in meta.optimization_report.suggestions:
        console.print(f"    [dim]{suggestion.kind}:[/] {suggestion.message}")
    console.print(f"  Output: {output}")


def _plan_mode(cfg: DictConfig) -> None:
    config = _to_project_config(cfg)
    brief = _to_brief(cfg)

    from .pipeline import build_pipeline

    tasks, tracker = asyncio.run(build_pipeline(config).plan_only(brief))
    console.print("\n[bold]Document outline:[/]")
    parent = None
    for task in tasks:
        if task.parent_title != parent:
            parent = task.parent_title
            console.print(f"  [bold]{parent}[/]")
        console.print(f"    - {task.id} {task.title} (~{task.estimated_words} words)")
    console.print(f"  Leaves: {len(tasks)}, planner cost ${tracker.total.cost:.4f}")


def _route_mode(cfg: DictConfig) -> None:
    config = _to_project_config(cfg)
    brief = _to_brief(cfg)

    from .pipeline import build_pipeline

    tasks, _ = asyncio.run(build_pipeline(config).plan_only(brief))
    table = Table(title=f"Writer routing ({'pro' if config.pro_mode else 'standard'} mode)")
    for column in ("#", "Section", "Importance", "Tier", "Max tokens", "Target chars"):
        table.add_column(column)
    for i, task in enumerate(tasks):
        table.add_row(
            str(i + 1),
            task.title,
            task.importance.value,
            task.model_tier.value if task.model_tier else "-",
            str(task.max_output_tokens),
            str(task.target_chars),
        )
    console.print(table)


_MODE_DISPATCH: dict[str, Any] = {
    "run": _run_mode,
    "plan": _plan_mode,
    "route": _route_mode,
}


# ---------------------------------------------------------------------------
# Hydra entry point
# ---------------------------------------------------------------------------


@hydra.main(config_path="conf", config_name="config", version_base=None)
def hydra_entry(cfg: DictConfig) -> None:
    """Hydra-managed CLI entry point."""
    setup_logging(verbose=cfg.get("verbose", False), quiet=cfg.get("quiet", False))

    mode = cfg.get("mode", "run")
    handler = _MODE_DISPATCH.get(mode)
    if handler is None:
        console.print(f"[red]Unknown mode: {mode!r}. Choose from: {', '.join(_MODE_DISPATCH)}[/]")
        sys.exit(1)

    handler(cfg)


def main() -> None:
    """Package entry point (``[project.scripts]`` target)."""
    hydra_entry()  # pylint: disable=no-value-for-parameter
