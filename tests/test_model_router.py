"""Tests for model_router.py: importance, tier, budget and cost decisions."""

from __future__ import annotations

import pytest

from plan_document_generator.model_router import (
    TIER_RATES,
    budget_for_importance,
    classify_importance,
    estimate_cost,
    image_analysis_model,
    is_premium,
    planner_model,
    resolve_model_name,
    reviewer_model,
    select_token_budget,
    select_writer_model,
)
from plan_document_generator.models import Importance, ModelConfig, ModelTier


class TestClassifyImportance:
    @pytest.mark.parametrize("title", ["시장 분석 및 전망", "Market Analysis", "Financial Plan 2026"])
    def test_core(self, title):
        assert classify_importance(title) is Importance.CORE

    @pytest.mark.parametrize("title", ["부록", "Appendix A", "Glossary of Terms"])
    def test_simple(self, title):
        assert classify_importance(title) is Importance.SIMPLE

    def test_standard_keyword(self):
        assert classify_importance("Project Schedule") is Importance.STANDARD

    def test_unmatched_defaults_to_standard(self):
        assert classify_importance("Closing Remarks") is Importance.STANDARD

    def test_core_checked_before_simple(self):
        # Contains both a core and a simple keyword.
        assert classify_importance("Appendix: market analysis data") is Importance.CORE

    def test_simple_checked_before_standard(self):
        assert classify_importance("Schedule appendix") is Importance.SIMPLE


class TestSelectWriterModel:
    def test_simple_section_never_premium(self):
        # Index 0 would otherwise be a premium position.
        assert select_writer_model("Appendix", 0, 10) is ModelTier.STANDARD
        assert select_writer_model("References", 9, 10, pro_mode=True) is ModelTier.STANDARD

    def test_leading_and_trailing_positions_are_premium(self):
        tiers = [select_writer_model(f"Topic {i}", i, 10) for i in range(10)]
        assert tiers[:3] == [ModelTier.PREMIUM] * 3
        assert tiers[3:8] == [ModelTier.STANDARD] * 5
        assert tiers[8:] == [ModelTier.PREMIUM] * 2

    def test_core_section_in_middle_is_premium(self):
        assert select_writer_model("Competitive Analysis", 5, 10) is ModelTier.PREMIUM

    def test_pro_mode_uses_flagship(self):
        assert select_writer_model("Competitive Analysis", 5, 10, pro_mode=True) is ModelTier.FLAGSHIP
        assert select_writer_model("Topic", 0, 10, pro_mode=True) is ModelTier.FLAGSHIP
        assert select_writer_model("Topic", 5, 10, pro_mode=True) is ModelTier.STANDARD

    def test_ten_section_document_routing(self):
        titles = [
            "Executive Summary", "Business Overview", "Market Analysis", "Project Schedule",
            "Business Model", "Staffing", "Partnership", "Risk Review", "Financial Plan", "Appendix",
        ]
        tiers = [select_writer_model(t, i, len(titles)) for i, t in enumerate(titles)]
        assert tiers == [
            ModelTier.PREMIUM,   # leading
            ModelTier.PREMIUM,   # leading
            ModelTier.PREMIUM,   # leading + core
            ModelTier.STANDARD,
            ModelTier.PREMIUM,   # core
            ModelTier.STANDARD,
            ModelTier.STANDARD,
            ModelTier.STANDARD,
            ModelTier.PREMIUM,   # trailing + core
            ModelTier.STANDARD,  # simple wins over trailing
        ]


class TestTokenBudget:
    def test_budgets_per_importance(self):
        assert select_token_budget("Market Analysis").max_output_tokens == 2000
        assert select_token_budget("Market Analysis").target_chars == 1000
        assert select_token_budget("Appendix").max_output_tokens == 600
        assert select_token_budget("Appendix").target_chars == 300
        assert select_token_budget("Milestones").max_output_tokens == 1200
        assert select_token_budget("Milestones").target_chars == 600

    def test_budget_is_a_copy(self):
        budget = budget_for_importance(Importance.CORE)
        budget.max_output_tokens = 1
        assert budget_for_importance(Importance.CORE).max_output_tokens == 2000


class TestEstimateCost:
    def test_premium_rates(self):
        assert estimate_cost(ModelTier.PREMIUM, 1000, 1000) == pytest.approx(0.005 + 0.025)

    def test_every_tier_has_rates(self):
        for tier in ModelTier:
            assert tier in TIER_RATES

    def test_string_tier_accepted(self):
        assert estimate_cost("economy", 1_000_000, 0) == pytest.approx(0.8)

    def test_unknown_tier_priced_as_standard(self):
        assert estimate_cost("mystery", 1000, 1000) == pytest.approx(estimate_cost(ModelTier.STANDARD, 1000, 1000))

    def test_zero_tokens_cost_nothing(self):
        assert estimate_cost(ModelTier.FLAGSHIP, 0, 0) == 0.0


class TestFixedAgentTiers:
    def test_fixed_tiers(self):
        assert planner_model() is ModelTier.STANDARD
        assert reviewer_model() is ModelTier.STANDARD
        assert image_analysis_model() is ModelTier.ECONOMY

    def test_is_premium(self):
        assert is_premium(ModelTier.PREMIUM)
        assert is_premium(ModelTier.FLAGSHIP)
        assert not is_premium(ModelTier.STANDARD)
        assert not is_premium(ModelTier.ECONOMY)

    def test_resolve_model_name(self):
        models = ModelConfig(premium="opus-test")
        assert resolve_model_name(ModelTier.PREMIUM, models) == "opus-test"
        assert resolve_model_name(ModelTier.ECONOMY, models) == "claude-haiku-4-5"
