"""Tool catalogs and relevance ranking."""

from contextkit.tools.analyzer import ToolAnalyzer, levenshtein_distance
from contextkit.tools.catalog import (
    DirectoryToolCatalog,
    ToolCatalog,
    ToolRegistry,
    load_manifest,
    parse_manifest,
    validate_tool,
)
from contextkit.tools.models import RankedTool, ToolCapability, ToolFunction

__all__ = [
    "DirectoryToolCatalog",
    "RankedTool",
    "ToolAnalyzer",
    "ToolCapability",
    "ToolCatalog",
    "ToolFunction",
    "ToolRegistry",
    "levenshtein_distance",
    "load_manifest",
    "parse_manifest",
    "validate_tool",
]
