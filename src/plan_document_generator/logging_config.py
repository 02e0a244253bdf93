"""Rich console setup and pipeline progress reporting."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from rich.console import Console
from rich.logging import RichHandler

console = Console()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure root logger with Rich handler."""
    level = logging.DEBUG if verbose else (logging.ERROR if quiet else logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )
    # AG2 and httpx are chatty at INFO.
    for noisy in ("autogen", "httpx"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if verbose else logging.WARNING)


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Progress sink protocol
# ---------------------------------------------------------------------------


class ProgressSink(Protocol):
    """Fire-and-forget observer for agent status and log lines."""

    def update_agent(self, run_id: str, agent_name: str, data: dict[str, Any]) -> None: ...
    def add_log(self, run_id: str, entry: dict[str, Any]) -> None: ...


class ProgressReporter:
    """Run-scoped wrapper that never lets a sink failure reach the pipeline."""

    def __init__(self, run_id: str, sink: ProgressSink | None = None) -> None:
        self.run_id = run_id
        self.sink = sink

    def agent(self, agent_name: str, **data: Any) -> None:
        if self.sink is None:
            return
        try:
            self.sink.update_agent(self.run_id, agent_name, data)
        except Exception as e:
            logger.debug("Progress sink update_agent failed: %s", e)

    def log(self, agent_name: str, level: str, message: str) -> None:
        if self.sink is None:
            return
        try:
            self.sink.add_log(self.run_id, {"agent": agent_name, "level": level, "message": message})
        except Exception as e:
            logger.debug("Progress sink add_log failed: %s", e)


_LEVEL_STYLE = {"info": "dim", "success": "green", "warn": "yellow", "error": "red"}


class RichProgressSink:
    """Rich-based implementation of ProgressSink."""

    def __init__(self, *, show_updates: bool = True) -> None:
        self.show_updates = show_updates

    def update_agent(self, run_id: str, agent_name: str, data: dict[str, Any]) -> None:
        if not self.show_updates:
            return
        status = data.get("status", "")
        progress = data.get("progress")
        detail = data.get("detail", "")
        pct = f" {progress:>3}%" if isinstance(progress, int) else ""
        console.print(f"  [cyan]{agent_name}[/] {status}{pct} [dim]{detail}[/]")

    def add_log(self, run_id: str, entry: dict[str, Any]) -> None:
        level = entry.get("level", "info")
        style = _LEVEL_STYLE.get(level, "dim")
        if level in ("success", "warn", "error"):
            console.rule(f"[{style}]{entry.get('agent', '')}[/]: {entry.get('message', '')}", style=style)
        else:
            console.print(f"  [{style}]{entry.get('agent', '')}:[/] {entry.get('message', '')}")
