"""
AEO Platform

Integration layer for an AI SEO/AEO platform that:
1. Calls external vendors (DataForSEO, Jina, Perplexity, Firecrawl, Apify, OpenAI/Gemini)
2. Normalizes every vendor response into an ApiResult envelope
3. Scores keyword opportunities and content gaps
4. Streams multi-phase content generation over SSE
"""

__version__ = "0.1.0"
