"""
Remote tool servers (MCP) for DataForSEO, Firecrawl and Jina.
"""

from .client import RemoteToolClient, stringify_content
from .tools import (
    DATAFORSEO_TOOLS,
    FIRECRAWL_TOOLS,
    JINA_TOOLS,
    ToolSet,
    ToolSpec,
    get_dataforseo_tools,
    get_firecrawl_tools,
    get_jina_tools,
    get_toolset,
)

__all__ = [
    "RemoteToolClient",
    "stringify_content",
    "ToolSpec",
    "ToolSet",
    "DATAFORSEO_TOOLS",
    "FIRECRAWL_TOOLS",
    "JINA_TOOLS",
    "get_dataforseo_tools",
    "get_firecrawl_tools",
    "get_jina_tools",
    "get_toolset",
]
