"""
Tool relevance analysis.

Scores catalog tools against a free-text query with a deliberately
approximate heuristic: substring containment or an edit distance of at most
two between query words and the tool's name, description words, and
function names. Scores are capped at 1.0.
"""

from __future__ import annotations

from contextkit.logging import get_logger
from contextkit.tools.catalog import ToolCatalog
from contextkit.tools.models import RankedTool, ToolCapability

logger = get_logger("tools.analyzer")

NAME_MATCH_SCORE = 0.8
DESCRIPTION_MATCH_SCORE = 0.2
FUNCTION_MATCH_SCORE = 0.5
MAX_EDIT_DISTANCE = 2
MIN_WORD_LENGTH = 4  # shorter words are ignored


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], previous[j], current[j - 1]) + 1)
        previous = current
    return previous[-1]


def _fuzzy_match(word: str, target: str) -> bool:
    return word in target or target in word or levenshtein_distance(word, target) <= MAX_EDIT_DISTANCE


def _significant_words(text: str) -> list[str]:
    return [w for w in text.split() if len(w) >= MIN_WORD_LENGTH]


class ToolAnalyzer:
    """
    Ranks catalog tools for a query.

    Example:
        analyzer = ToolAnalyzer(ToolRegistry([git_tool, http_tool]))
        ranked = await analyzer.find_relevant_tools("commit my changes")
    """

    def __init__(self, catalog: ToolCatalog) -> None:
        self.catalog = catalog

    def score_tool_relevance(self, tool: ToolCapability | None, query: str) -> float:
        """
        Relevance of *tool* to *query* in ``[0, 1]``.

        - +0.8 once if any query word matches the tool name
        - +0.2 for every (description word, query word) pair that matches
        - +0.5 for every (function name, query word) pair with containment

        Matching is case-insensitive; words of three characters or fewer
        are ignored.
        """
        if tool is None or not query:
            return 0.0

        query_words = _significant_words(query.lower())
        if not query_words:
            return 0.0

        tool_name = tool.name.lower()
        score = 0.0

        if any(_fuzzy_match(word, tool_name) for word in query_words):
            score += NAME_MATCH_SCORE

        for desc_word in _significant_words(tool.description.lower()):
            for query_word in query_words:
                if _fuzzy_match(query_word, desc_word):
                    score += DESCRIPTION_MATCH_SCORE

        for func in tool.functions:
            func_name = func.name.lower()
            for query_word in query_words:
                if func_name in query_word or query_word in func_name:
                    score += FUNCTION_MATCH_SCORE

        return min(score, 1.0)

    async def get_tool_capabilities(self) -> list[ToolCapability]:
        return list(await self.catalog.get_all_tools())

    async def find_relevant_tools(self, query: str, max_results: int = 5) -> list[RankedTool]:
        """
        Score the whole catalog and return the best *max_results* tools.

        Zero scores are dropped. Ties keep catalog order.
        """
        tools = await self.catalog.get_all_tools()
        scored = [RankedTool(tool=tool, score=self.score_tool_relevance(tool, query)) for tool in tools]
        ranked = sorted((rt for rt in scored if rt.score > 0), key=lambda rt: rt.score, reverse=True)
        result = ranked[: max(0, max_results)]
        logger.debug(
            "Ranked %d of %d tools for query (%d returned)", len(ranked), len(tools), len(result)
        )
        return result
