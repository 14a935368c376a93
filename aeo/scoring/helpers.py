"""
Scoring Helper Functions and Constants

CTR curve, intent weights, difficulty tiers and small utilities used by
the keyword opportunity scorer and the content gap analysis.
"""

import math
import re
from enum import Enum
from typing import Dict, Optional


# ============================================================================
# CTR CURVE (industry benchmarks, positions 1-10)
# ============================================================================

CTR_CURVE: Dict[int, float] = {
    1: 0.317,
    2: 0.247,
    3: 0.187,
    4: 0.133,
    5: 0.095,
    6: 0.069,
    7: 0.051,
    8: 0.038,
    9: 0.029,
    10: 0.022,
}


def get_ctr_for_position(position: Optional[int]) -> float:
    """
    Get estimated CTR for any position.

    Args:
        position: SERP position (1-100), None or 0 when not ranking

    Returns:
        Estimated CTR as decimal (0.0 - 1.0)
    """
    if not position or position <= 0:
        return 0.0
    if position <= 10:
        return CTR_CURVE[position]
    if position <= 20:
        # Page 2: ~0.5-1% CTR
        return 0.01 - (position - 10) * 0.0005
    if position <= 50:
        return 0.005 - (position - 20) * 0.0001
    return 0.001


# ============================================================================
# INTENT
# ============================================================================

class SearchIntent(Enum):
    TRANSACTIONAL = "transactional"
    COMMERCIAL = "commercial"
    INFORMATIONAL = "informational"
    NAVIGATIONAL = "navigational"


INTENT_WEIGHTS: Dict[str, int] = {
    "transactional": 100,   # Ready to buy
    "commercial": 75,       # Researching with intent to buy
    "informational": 50,    # Learning/researching
    "navigational": 25,     # Looking for specific site
}

TRANSACTIONAL_TERMS = ("buy", "price", "pricing", "cost", "cheap", "discount", "coupon", "order", "deal")
COMMERCIAL_TERMS = ("best", "top", "vs", "versus", "review", "reviews", "compare", "comparison", "alternative", "alternatives")
INFORMATIONAL_TERMS = ("how", "what", "why", "when", "guide", "tutorial", "tips", "learn")


def get_intent_weight(intent: Optional[str]) -> int:
    """
    Get business value weight for search intent.

    Returns:
        Weight (25-100), 50 for unknown intent
    """
    if not intent:
        return 50
    return INTENT_WEIGHTS.get(intent.lower(), 50)


def classify_intent(keyword: str) -> str:
    """Heuristic intent from the keyword's words."""
    words = set(re.findall(r"[a-z0-9]+", keyword.lower()))
    if words & set(TRANSACTIONAL_TERMS):
        return SearchIntent.TRANSACTIONAL.value
    if words & set(COMMERCIAL_TERMS):
        return SearchIntent.COMMERCIAL.value
    if words & set(INFORMATIONAL_TERMS):
        return SearchIntent.INFORMATIONAL.value
    return SearchIntent.INFORMATIONAL.value


# ============================================================================
# VOLUME SCORING
# ============================================================================

def normalize_volume(volume: int, max_volume: int, method: str = "logarithmic") -> float:
    """
    Normalize search volume to 0-100 scale.

    Args:
        volume: Keyword search volume
        max_volume: Maximum volume in dataset
        method: "logarithmic" (default) or "linear"
    """
    if not volume or volume <= 0:
        return 0.0

    if max_volume <= 0:
        max_volume = volume

    if method == "logarithmic":
        return min(100.0, (math.log10(volume + 1) / math.log10(max_volume + 1)) * 100)
    return min(100.0, (volume / max_volume) * 100)


# ============================================================================
# DIFFICULTY THRESHOLDS
# ============================================================================

class DifficultyTier(Enum):
    EASY = "easy"           # KD 0-30
    MODERATE = "moderate"   # KD 31-50
    HARD = "hard"           # KD 51-70
    VERY_HARD = "very_hard" # KD 71-85
    EXTREME = "extreme"     # KD 86-100


def get_difficulty_tier(kd: int) -> DifficultyTier:
    if kd <= 30:
        return DifficultyTier.EASY
    elif kd <= 50:
        return DifficultyTier.MODERATE
    elif kd <= 70:
        return DifficultyTier.HARD
    elif kd <= 85:
        return DifficultyTier.VERY_HARD
    else:
        return DifficultyTier.EXTREME


# ============================================================================
# OPPORTUNITY CLASSIFICATION
# ============================================================================

class OpportunityType(Enum):
    QUICK_WIN = "quick_win"         # High opportunity, low effort
    STRATEGIC = "strategic"         # High value, medium effort
    LONG_TERM = "long_term"         # High value, high effort
    MAINTAIN = "maintain"           # Already ranking well
    LOW_PRIORITY = "low_priority"


def classify_opportunity(
    opportunity_score: float,
    current_position: Optional[int],
    difficulty: int,
) -> OpportunityType:
    if current_position and current_position <= 3:
        return OpportunityType.MAINTAIN
    if opportunity_score >= 70 and difficulty <= 40:
        return OpportunityType.QUICK_WIN
    if opportunity_score >= 60 and difficulty <= 60:
        return OpportunityType.STRATEGIC
    if opportunity_score >= 50:
        return OpportunityType.LONG_TERM
    return OpportunityType.LOW_PRIORITY


def estimate_traffic_potential(
    volume: int,
    current_position: Optional[int],
    target_position: int = 3,
) -> int:
    """Estimated monthly clicks gained by moving to target_position."""
    gain = volume * (get_ctr_for_position(target_position) - get_ctr_for_position(current_position))
    return max(0, int(gain))
