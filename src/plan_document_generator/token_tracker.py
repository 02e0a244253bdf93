"""Run-scoped token and cost ledger.

A ``TokenTracker`` is created for a single pipeline run and discarded with
it, so concurrent runs in one process never share totals. Writer usage is
kept per section; every other agent accumulates into one running total.
"""

from __future__ import annotations

import logging
import time

from .model_router import estimate_cost, image_analysis_model, is_premium
from .models import (
    AgentName,
    AgentUsage,
    ModelTier,
    OptimizationReport,
    OptimizationSuggestion,
    TierBreakdown,
    TokenSummary,
    TokenUsage,
    UsageEntry,
    UsageTotals,
    WriterUsageSummary,
)

logger = logging.getLogger(__name__)

WRITER_OUTPUT_CEILING = 2500
TARGET_RUN_COST = 0.20


class TokenTracker:
    """Mutable usage ledger for one orchestration run."""

    def __init__(self, *, clock=time.monotonic) -> None:
        self._clock = clock
        self._started = clock()
        self.writer_entries: list[UsageEntry] = []
        self.agents: dict[AgentName, AgentUsage] = {}
        self.total = UsageTotals()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(
        self,
        agent: AgentName,
        usage: TokenUsage,
        *,
        model_tier: ModelTier,
        section_title: str | None = None,
    ) -> UsageEntry:
        cost = estimate_cost(model_tier, usage.input_tokens, usage.output_tokens)
        entry = UsageEntry(
            agent=agent,
            section_title=section_title,
            model_tier=model_tier,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost=cost,
        )

        if agent is AgentName.WRITER:
            if entry.section_title is None:
                entry.section_title = f"Section {len(self.writer_entries) + 1}"
            self.writer_entries.append(entry)
        else:
            running = self.agents.get(agent)
            if running is None:
                running = self.agents[agent] = AgentUsage(model_tier=model_tier)
            running.model_tier = model_tier
            running.input_tokens += usage.input_tokens
            running.output_tokens += usage.output_tokens
            running.cost += cost

        self.total.input_tokens += usage.input_tokens
        self.total.output_tokens += usage.output_tokens
        self.total.total_tokens += usage.total_tokens
        self.total.cost += cost
        logger.debug(
            "Usage %s%s: in=%d out=%d cost=$%.4f",
            agent.value,
            f" [{entry.section_title}]" if entry.section_title else "",
            usage.input_tokens,
            usage.output_tokens,
            cost,
        )
        return entry

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def elapsed(self) -> float:
        return self._clock() - self._started

    def writer_summary(self) -> WriterUsageSummary:
        tiers: list[ModelTier] = []
        for e in self.writer_entries:
            if e.model_tier not in tiers:
                tiers.append(e.model_tier)
        inp = sum(e.input_tokens for e in self.writer_entries)
        out = sum(e.output_tokens for e in self.writer_entries)
        return WriterUsageSummary(
            sections=len(self.writer_entries),
            tiers=tiers,
            input_tokens=inp,
            output_tokens=out,
            total_tokens=inp + out,
            cost=sum(e.cost for e in self.writer_entries),
        )

    def summary(self) -> TokenSummary:
        return TokenSummary(
            elapsed_seconds=round(self.elapsed(), 3),
            agents={a.value: u.model_copy() for a, u in self.agents.items()},
            writer=self.writer_summary(),
            total=self.total.model_copy(),
        )

    def optimization_report(self) -> OptimizationReport:
        """Advisory signals for observability. Never consulted by the pipeline."""
        suggestions: list[OptimizationSuggestion] = []

        over = [e for e in self.writer_entries if e.output_tokens > WRITER_OUTPUT_CEILING]
        if over:
            suggestions.append(OptimizationSuggestion(
                kind="over_budget",
                message=(
                    f"{len(over)} section(s) produced more than {WRITER_OUTPUT_CEILING} "
                    "output tokens; consider tighter token budgets."
                ),
                sections=[e.section_title or "" for e in over],
            ))

        premium = [e for e in self.writer_entries if is_premium(e.model_tier)]
        standard = [e for e in self.writer_entries if not is_premium(e.model_tier)]
        breakdown = TierBreakdown(
            premium_count=len(premium),
            premium_cost=sum(e.cost for e in premium),
            standard_count=len(standard),
            standard_cost=sum(e.cost for e in standard),
        )
        if self.writer_entries:
            suggestions.append(OptimizationSuggestion(
                kind="model_mix",
                message=(
                    f"Premium writers: {breakdown.premium_count} (${breakdown.premium_cost:.4f}), "
                    f"standard writers: {breakdown.standard_count} (${breakdown.standard_cost:.4f})."
                ),
            ))

        curator = self.agents.get(AgentName.IMAGE_CURATOR)
        if curator is not None and curator.model_tier is not image_analysis_model():
            suggestions.append(OptimizationSuggestion(
                kind="downgrade_possible",
                message=(
                    f"Image analysis ran on the {curator.model_tier.value} tier; "
                    f"the {image_analysis_model().value} tier is sufficient."
                ),
            ))

        total_cost = self.total.cost
        if total_cost > TARGET_RUN_COST:
            suggestions.append(OptimizationSuggestion(
                kind="cost_warning",
                message=f"Run cost ${total_cost:.4f} exceeds the ${TARGET_RUN_COST:.2f} target.",
            ))
        else:
            suggestions.append(OptimizationSuggestion(
                kind="cost_ok",
                message=f"Run cost ${total_cost:.4f} is within the ${TARGET_RUN_COST:.2f} target.",
            ))

        return OptimizationReport(
            total_cost=total_cost,
            target_cost=TARGET_RUN_COST,
            suggestions=suggestions,
            tier_breakdown=breakdown,
        )
