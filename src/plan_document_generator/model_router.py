"""Model routing: pure tier, token-budget and cost decisions.

Nothing in here performs I/O. Section titles are classified by substring
match against an ordered keyword table; the check order (core, then simple,
then standard) decides ambiguous titles and must not change.
"""

from __future__ import annotations

from .models import Importance, ModelConfig, ModelTier, TokenBudget

# ---------------------------------------------------------------------------
# Keyword table
# ---------------------------------------------------------------------------

_CORE_KEYWORDS = (
    "시장 분석", "사업 전략", "비즈니스 모델", "경쟁 분석", "기술 현황", "재무 계획", "투자 포인트",
    "market analysis", "business strategy", "business model", "competitive analysis",
    "competitor analysis", "technology landscape", "financial plan", "investment highlight",
)

_SIMPLE_KEYWORDS = (
    "부록", "참고자료", "첨부", "용어 정의", "약어", "색인",
    "appendix", "references", "attachment", "glossary", "abbreviation", "index",
)

_STANDARD_KEYWORDS = (
    "사업 개요", "추진 체계", "조직 구성", "일정", "마일스톤", "인력", "협력",
    "overview", "organization", "schedule", "milestone", "staffing", "partnership",
)

IMPORTANCE_KEYWORDS: tuple[tuple[Importance, tuple[str, ...]], ...] = (
    (Importance.CORE, _CORE_KEYWORDS),
    (Importance.SIMPLE, _SIMPLE_KEYWORDS),
    (Importance.STANDARD, _STANDARD_KEYWORDS),
)

TOKEN_BUDGETS: dict[Importance, TokenBudget] = {
    Importance.CORE: TokenBudget(max_output_tokens=2000, target_chars=1000),
    Importance.SIMPLE: TokenBudget(max_output_tokens=600, target_chars=300),
    Importance.STANDARD: TokenBudget(max_output_tokens=1200, target_chars=600),
}

# USD per token: (input, output)
TIER_RATES: dict[ModelTier, tuple[float, float]] = {
    ModelTier.ECONOMY: (0.0000008, 0.000004),
    ModelTier.STANDARD: (0.000003, 0.000015),
    ModelTier.PREMIUM: (0.000005, 0.000025),
    ModelTier.FLAGSHIP: (0.000015, 0.000075),
}

# Sections at these positions always get the premium writer.
_LEADING_PREMIUM = 3
_TRAILING_PREMIUM = 2


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

def classify_importance(title: str) -> Importance:
    lowered = title.lower()
    for importance, keywords in IMPORTANCE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return importance
    return Importance.STANDARD


def select_writer_model(title: str, index: int, total: int, pro_mode: bool = False) -> ModelTier:
    """Pick the writer tier for the section at *index* of *total*.

    Simple sections are pinned to the standard tier regardless of position.
    Core sections and the first three / last two sections get the premium
    tier, or the flagship tier when *pro_mode* is set.
    """
    importance = classify_importance(title)
    if importance is Importance.SIMPLE:
        return ModelTier.STANDARD
    edge = index < _LEADING_PREMIUM or index >= total - _TRAILING_PREMIUM
    if importance is Importance.CORE or edge:
        return ModelTier.FLAGSHIP if pro_mode else ModelTier.PREMIUM
    return ModelTier.STANDARD


def select_token_budget(title: str) -> TokenBudget:
    return budget_for_importance(classify_importance(title))


def budget_for_importance(importance: Importance) -> TokenBudget:
    return TOKEN_BUDGETS[importance].model_copy()


def estimate_cost(tier: ModelTier | str, input_tokens: int, output_tokens: int) -> float:
    """Dollar cost of one call; unknown tiers are priced at standard rates."""
    try:
        key = ModelTier(tier)
    except ValueError:
        key = ModelTier.STANDARD
    rate_in, rate_out = TIER_RATES.get(key, TIER_RATES[ModelTier.STANDARD])
    return input_tokens * rate_in + output_tokens * rate_out


def planner_model() -> ModelTier:
    return ModelTier.STANDARD


def reviewer_model() -> ModelTier:
    return ModelTier.STANDARD


def image_analysis_model() -> ModelTier:
    return ModelTier.ECONOMY


def is_premium(tier: ModelTier) -> bool:
    return tier in (ModelTier.PREMIUM, ModelTier.FLAGSHIP)


def resolve_model_name(tier: ModelTier, models: ModelConfig) -> str:
    """Map a tier to the configured concrete model id."""
    return getattr(models, tier.value)
