"""
Content Generation

- orchestrator: research / write / score / revise pipeline
- streaming: SSE progress stream with abort on client disconnect
"""

from .orchestrator import (
    CONTENT_TYPES,
    MAX_REVISION_ROUNDS,
    MIN_OVERALL_SCORE,
    SCORE_WEIGHTS,
    ContentOrchestrator,
    ContentRequest,
    ContentResult,
    ProgressUpdate,
    QualityScores,
    SyntaxReport,
    analyze_syntax,
    calculate_aeo_score,
    calculate_overall_score,
    keyword_coverage_score,
    should_revise,
)
from .streaming import ProgressStream

__all__ = [
    "CONTENT_TYPES",
    "MAX_REVISION_ROUNDS",
    "MIN_OVERALL_SCORE",
    "SCORE_WEIGHTS",
    "ContentOrchestrator",
    "ContentRequest",
    "ContentResult",
    "ProgressUpdate",
    "QualityScores",
    "SyntaxReport",
    "analyze_syntax",
    "calculate_aeo_score",
    "calculate_overall_score",
    "keyword_coverage_score",
    "should_revise",
    "ProgressStream",
]
