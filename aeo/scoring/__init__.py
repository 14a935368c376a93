"""
Keyword Scoring

Opportunity scoring for keyword research and content gap analysis.
"""

from .helpers import (
    CTR_CURVE,
    INTENT_WEIGHTS,
    DifficultyTier,
    OpportunityType,
    SearchIntent,
    classify_intent,
    classify_opportunity,
    estimate_traffic_potential,
    get_ctr_for_position,
    get_difficulty_tier,
    get_intent_weight,
    normalize_volume,
)
from .opportunity import (
    OpportunityAnalysis,
    analyze_keyword,
    opportunity_score,
    position_gap_score,
    score_keywords,
)

__all__ = [
    "CTR_CURVE",
    "INTENT_WEIGHTS",
    "DifficultyTier",
    "OpportunityType",
    "SearchIntent",
    "classify_intent",
    "classify_opportunity",
    "estimate_traffic_potential",
    "get_ctr_for_position",
    "get_difficulty_tier",
    "get_intent_weight",
    "normalize_volume",
    "OpportunityAnalysis",
    "analyze_keyword",
    "opportunity_score",
    "position_gap_score",
    "score_keywords",
]
