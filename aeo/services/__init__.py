"""
Services

Business workflows composed from the vendor clients, the scorer and the
repository. Routes construct these with clients from ExternalAPIClients.
"""

from .competitors import CompetitorService, detect_changes
from .content_gap import ContentGapService, validate_domains
from .keywords import KeywordService, recommended_format, recommended_title
from .website import WebsiteService

__all__ = [
    "CompetitorService",
    "detect_changes",
    "ContentGapService",
    "validate_domains",
    "KeywordService",
    "recommended_format",
    "recommended_title",
    "WebsiteService",
]
