"""Streaming completion client backed by the Anthropic Messages API.

The relay speaks in a single ordered message list where instructions are
``system`` entries. The Messages API takes system text as a separate
parameter and requires alternating roles starting with ``user``, so the
list is reshaped here before the request goes out.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def _merge_consecutive_roles(
    messages: list[dict[str, str]],
) -> list[dict[str, str]]:
    """Merge consecutive messages with the same role.

    The Anthropic API requires alternating user/assistant roles.
    Consecutive same-role messages are joined with newlines.
    """
    if not messages:
        return []

    merged: list[dict[str, str]] = [messages[0].copy()]
    for msg in messages[1:]:
        if msg["role"] == merged[-1]["role"]:
            merged[-1]["content"] += "\n" + msg["content"]
        else:
            merged.append(msg.copy())
    return merged


def split_system(
    messages: list[dict[str, str]],
) -> tuple[str, list[dict[str, str]]]:
    """Separate system entries from the conversation.

    Returns:
        Tuple of (system text joined by blank lines, user/assistant turns
        merged and trimmed so the first turn is from the user).
    """
    system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
    turns = _merge_consecutive_roles([m for m in messages if m["role"] != "system"])

    # Conversation must start with user
    while turns and turns[0]["role"] != "user":
        turns = turns[1:]
    return system, turns


@dataclass
class AnthropicCompletionClient:
    """Produces text deltas for a conversation.

    Args:
        api_key: Anthropic API key (ignored when ``client`` is given).
        model: Model name.
        max_tokens: Response token cap.
        client: Optional pre-built ``anthropic.AsyncAnthropic`` (for testing).
    """

    api_key: str = field(default="", repr=False)
    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    client: Any = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.client is None:
            import anthropic

            self.client = anthropic.AsyncAnthropic(api_key=self.api_key)

    async def stream_completion(
        self, messages: list[dict[str, str]]
    ) -> AsyncIterator[str]:
        """Yield text deltas for ``messages`` until the stream ends.

        Transport and API errors propagate to the caller.
        """
        system, turns = split_system(messages)
        params: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": turns,
            "stream": True,
        }
        if system:
            params["system"] = system

        logger.debug("Requesting completion: model=%s turns=%d", self.model, len(turns))
        stream = await self.client.messages.create(**params)
        async for event in stream:
            if getattr(event, "type", "") != "content_block_delta":
                continue
            delta = event.delta
            if getattr(delta, "type", "") == "text_delta":
                yield delta.text
