"""
Opportunity Score Calculator

Composite 0-100 score for how worthwhile a keyword is to target:

1. Search Volume (30%) - Demand potential, log-normalized
2. Difficulty Inverse (30%) - Rankability
3. Business Intent (20%) - Commercial value
4. Position Gap (20%) - Traffic left on the table

Formula:
    Opportunity_Score = (
        Volume_Score × 0.30 +
        (100 - Difficulty) × 0.30 +
        Intent_Weight × 0.20 +
        Position_Gap × 0.20
    )
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .helpers import (
    OpportunityType,
    classify_intent,
    classify_opportunity,
    estimate_traffic_potential,
    get_ctr_for_position,
    get_intent_weight,
    normalize_volume,
)

logger = logging.getLogger(__name__)

WEIGHTS = {
    "volume": 0.30,
    "difficulty": 0.30,
    "intent": 0.20,
    "position_gap": 0.20,
}

DEFAULT_DIFFICULTY = 50
TARGET_POSITION = 3


@dataclass
class OpportunityAnalysis:
    """Opportunity breakdown for one keyword."""
    keyword: str
    opportunity_score: float
    opportunity_type: OpportunityType

    volume_score: float
    difficulty_score: float
    intent_score: float
    position_gap_score: float

    search_volume: int
    keyword_difficulty: int
    current_position: Optional[int]
    intent: str
    estimated_traffic_gain: int
    estimated_monthly_value: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keyword": self.keyword,
            "opportunity_score": self.opportunity_score,
            "opportunity_type": self.opportunity_type.value,
            "components": {
                "volume": self.volume_score,
                "difficulty": self.difficulty_score,
                "intent": self.intent_score,
                "position_gap": self.position_gap_score,
            },
            "search_volume": self.search_volume,
            "keyword_difficulty": self.keyword_difficulty,
            "current_position": self.current_position,
            "intent": self.intent,
            "estimated_traffic_gain": self.estimated_traffic_gain,
            "estimated_monthly_value": self.estimated_monthly_value,
        }


def position_gap_score(current_position: Optional[int], target_position: int = TARGET_POSITION) -> float:
    """
    Traffic headroom between the current and target position.

    100 when the keyword is not ranking; 0 at or above the target.
    """
    if not current_position or current_position <= 0:
        return 100.0

    target_ctr = get_ctr_for_position(target_position)
    improvement = target_ctr - get_ctr_for_position(current_position)
    if improvement <= 0:
        return 0.0
    return min(100.0, improvement / target_ctr * 100)


def opportunity_score(
    volume: Optional[int],
    difficulty: Optional[int],
    cpc: Optional[float] = None,
    intent: Optional[str] = None,
    position: Optional[int] = None,
    max_volume: int = 10000,
) -> float:
    """
    Weighted 0-100 opportunity score.

    Args:
        volume: Monthly search volume
        difficulty: Keyword difficulty 0-100 (50 when unknown)
        cpc: Cost per click; not weighted, accepted for call-site symmetry
        intent: transactional/commercial/informational/navigational
        position: Current ranking position, None if not ranking
        max_volume: Largest volume in the batch, for normalization

    Returns:
        Score rounded to one decimal
    """
    kd = DEFAULT_DIFFICULTY if difficulty is None else max(0, min(100, int(difficulty)))
    raw = (
        normalize_volume(volume or 0, max_volume) * WEIGHTS["volume"]
        + (100 - kd) * WEIGHTS["difficulty"]
        + get_intent_weight(intent) * WEIGHTS["intent"]
        + position_gap_score(position) * WEIGHTS["position_gap"]
    )
    return round(max(0.0, min(100.0, raw)), 1)


def analyze_keyword(keyword: Dict[str, Any], max_volume: int = 10000) -> OpportunityAnalysis:
    """
    Full breakdown for a keyword dict.

    Args:
        keyword: dict with keyword, search_volume, keyword_difficulty,
            cpc, intent, position (all optional except keyword)
    """
    text = keyword.get("keyword", "")
    volume = keyword.get("search_volume") or 0
    kd = keyword.get("keyword_difficulty")
    kd = DEFAULT_DIFFICULTY if kd is None else int(kd)
    position = keyword.get("position")
    intent = keyword.get("intent") or classify_intent(text)
    cpc = keyword.get("cpc") or 0.0

    score = opportunity_score(volume, kd, cpc, intent, position, max_volume)
    traffic_gain = estimate_traffic_potential(volume, position, TARGET_POSITION)

    return OpportunityAnalysis(
        keyword=text,
        opportunity_score=score,
        opportunity_type=classify_opportunity(score, position, kd),
        volume_score=round(normalize_volume(volume, max_volume), 1),
        difficulty_score=float(100 - kd),
        intent_score=float(get_intent_weight(intent)),
        position_gap_score=round(position_gap_score(position), 1),
        search_volume=volume,
        keyword_difficulty=kd,
        current_position=position,
        intent=intent,
        estimated_traffic_gain=traffic_gain,
        estimated_monthly_value=round(traffic_gain * cpc, 2),
    )


def score_keywords(keywords: List[Dict[str, Any]]) -> List[OpportunityAnalysis]:
    """Score a batch, normalizing volume against the batch maximum. Sorted best first."""
    if not keywords:
        return []

    max_volume = max((k.get("search_volume") or 0) for k in keywords) or 1
    analyses = [analyze_keyword(k, max_volume) for k in keywords]
    analyses.sort(key=lambda a: a.opportunity_score, reverse=True)
    logger.debug(f"Scored {len(analyses)} keywords (max volume {max_volume})")
    return analyses
