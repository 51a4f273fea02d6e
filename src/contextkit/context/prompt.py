"""
Prompt assembly.

A prompt is ``[system, *history, user query]``. The system message lists the
relevant tools; history comes from the conversation optimizer. Token usage is
reported against the prompt's limit, and an oversized prompt gets one more
compression pass with a safety margin.
"""

from __future__ import annotations

import dataclasses
import math
from typing import Sequence

from contextkit.context.models import ChatMessage, Prompt, TokenUsage
from contextkit.context.optimizer import ConversationOptimizer
from contextkit.logging import get_logger
from contextkit.session.tree import SessionTree
from contextkit.tokens import MessageLike, TokenEstimator, estimate_messages
from contextkit.tools.models import ToolCapability

logger = get_logger("context.prompt")

DEFAULT_TOKEN_LIMIT = 8000
DEFAULT_SAFETY_MARGIN = 0.8


class PromptBuilder:
    """Builds token-accounted prompts from a tree, a query and ranked tools."""

    def __init__(
        self,
        optimizer: ConversationOptimizer,
        estimator: TokenEstimator | None = None,
        token_limit: int = DEFAULT_TOKEN_LIMIT,
        safety_margin: float = DEFAULT_SAFETY_MARGIN,
    ) -> None:
        self.optimizer = optimizer
        self.estimator = estimator or optimizer.estimator
        self.token_limit = token_limit
        self.safety_margin = safety_margin

    def estimate_tokens(self, message: MessageLike | None) -> int:
        return self.estimator.estimate(message)

    def build_prompt(
        self,
        query: str,
        tree: SessionTree,
        relevant_tools: Sequence[ToolCapability] = (),
        max_tokens: int | None = None,
    ) -> Prompt:
        """Compose the prompt for ``query``; usage is measured against ``max_tokens``."""
        limit = self.token_limit if max_tokens is None else max_tokens
        optimized_history = self.optimizer.compress_history(tree, limit)

        messages: list[MessageLike] = [
            ChatMessage(role="system", content=self.build_system_prompt(relevant_tools)),
            *optimized_history,
            ChatMessage(role="user", content=query),
        ]

        return Prompt(
            messages=messages,
            token_usage=self.calculate_token_usage(messages, limit),
            relevant_tools=list(relevant_tools),
            optimized_history=optimized_history,
        )

    def build_system_prompt(self, relevant_tools: Sequence[ToolCapability]) -> str:
        lines = ["You are an intelligent coding assistant with access to various tools."]

        if relevant_tools:
            lines.append("You have access to the following tools:")
            lines.append("")
            for tool in relevant_tools:
                lines.append(f"**{tool.name}**: {tool.description or 'No description'}")
                if tool.functions:
                    lines.append("Functions:")
                    for func in tool.functions:
                        lines.append(f"  - {func.name}: {func.description or 'No description'}")
                if tool.permissions:
                    lines.append(f"Permissions: {', '.join(tool.permissions)}")
                lines.append("")
            lines.append("When you need to use a tool, respond with a tool_call in the specified JSON format.")
        else:
            lines.append("You can execute code to help with tasks.")

        lines.append("")
        lines.append("Always provide helpful, accurate responses and use tools when appropriate.")
        return "\n".join(lines)

    def calculate_token_usage(
        self,
        messages: Sequence[MessageLike],
        limit: int | None = None,
    ) -> TokenUsage:
        limit = self.token_limit if limit is None else limit
        current = estimate_messages(self.estimator, messages)
        utilization = (current / limit) * 100 if limit > 0 else 100.0
        return TokenUsage(
            current=current,
            limit=limit,
            remaining=max(0, limit - current),
            utilization=utilization,
        )

    def validate_prompt(self, prompt: Prompt) -> bool:
        return prompt.token_usage.current <= prompt.token_usage.limit

    def optimize_prompt(self, prompt: Prompt, tree: SessionTree) -> Prompt:
        """
        Recompress history once at ``safety_margin`` of the limit when the
        prompt is over budget. System and query messages are kept as-is.
        """
        if self.validate_prompt(prompt):
            return prompt

        max_tokens = math.floor(prompt.token_usage.limit * self.safety_margin)
        optimized_history = self.optimizer.compress_history(tree, max_tokens)

        messages: list[MessageLike] = [
            prompt.messages[0],
            *optimized_history,
            prompt.messages[-1],
        ]
        token_usage = self.calculate_token_usage(messages, prompt.token_usage.limit)
        logger.debug(
            "Prompt over budget (%d > %d); recompressed to %d tokens",
            prompt.token_usage.current,
            prompt.token_usage.limit,
            token_usage.current,
        )
        return dataclasses.replace(
            prompt,
            messages=messages,
            token_usage=token_usage,
            optimized_history=optimized_history,
        )
