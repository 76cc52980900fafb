"""Throttled streaming of completion text into a single Slack message.

Slack rate-limits ``chat.update`` and per-token edits flicker, so the
controller accumulates deltas and mutates the remote message at most once
per flush interval: the first flush posts a reply into the thread, later
flushes replace its full text. When the stream ends, any text not yet
shown is flushed once regardless of the interval, so the remote message
always converges on the complete response.

Remote and stream errors are not retried. They propagate to the caller and
whatever was already posted stays visible.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

# Minimum seconds between two edits of the same message
FLUSH_INTERVAL_S = 1.0


class ChatPoster(Protocol):
    async def post_message(
        self, channel: str, text: str, thread_ts: str | None = None
    ) -> str: ...

    async def update_message(self, channel: str, ts: str, text: str) -> None: ...


class CompletionSource(Protocol):
    def stream_completion(
        self, messages: list[dict[str, str]]
    ) -> AsyncIterator[str]: ...


@dataclass
class StreamAccumulator:
    """State of one in-flight streamed response."""

    text: str = ""
    message_ts: str = ""
    last_flush: float | None = None
    flushed_text: str = ""
    flush_count: int = 0

    @property
    def has_content(self) -> bool:
        return bool(self.text.strip())

    @property
    def has_unflushed(self) -> bool:
        """True if there is visible text the remote message does not show yet."""
        return self.has_content and self.text != self.flushed_text


@dataclass
class StreamingResponder:
    """Relays a delta stream into one threaded Slack reply.

    Args:
        chat: Gateway exposing ``post_message`` and ``update_message``.
        flush_interval_s: Minimum seconds between remote mutations.
        clock: Monotonic time source in seconds (injectable for tests).
    """

    chat: ChatPoster
    flush_interval_s: float = FLUSH_INTERVAL_S
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    async def respond(
        self,
        messages: list[dict[str, str]],
        completion: CompletionSource,
        channel: str,
        thread_ts: str,
    ) -> StreamAccumulator:
        """Request a completion for ``messages`` and stream it into ``thread_ts``."""
        return await self.relay(completion.stream_completion(messages), channel, thread_ts)

    async def relay(
        self,
        deltas: AsyncIterable[str],
        channel: str,
        thread_ts: str,
    ) -> StreamAccumulator:
        """Consume ``deltas`` and mirror the accumulated text into Slack.

        The first non-blank delta posts the reply straight away; after that
        a flush happens only once ``flush_interval_s`` has elapsed since the
        previous one. Deltas arriving in between are accumulated without any
        remote call.

        Returns:
            The final accumulator (for logging and tests).
        """
        acc = StreamAccumulator()

        async for delta in deltas:
            if delta:
                acc.text += delta
            now = self.clock()
            if not acc.has_content:
                continue
            if acc.last_flush is None or now - acc.last_flush >= self.flush_interval_s:
                await self._flush(acc, channel, thread_ts)
                acc.last_flush = now

        if acc.has_unflushed:
            await self._flush(acc, channel, thread_ts)
            acc.last_flush = self.clock()

        logger.info(
            "Streamed %d chars to %s/%s in %d flushes",
            len(acc.text),
            channel,
            acc.message_ts or "-",
            acc.flush_count,
        )
        return acc

    async def _flush(self, acc: StreamAccumulator, channel: str, thread_ts: str) -> None:
        """Post the reply if none exists yet, otherwise replace its text."""
        text = acc.text
        if acc.message_ts:
            await self.chat.update_message(channel, acc.message_ts, text)
        else:
            acc.message_ts = await self.chat.post_message(channel, text, thread_ts)
        acc.flushed_text = text
        acc.flush_count += 1

