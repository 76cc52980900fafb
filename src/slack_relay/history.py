"""Fetch Slack conversation history and map it into completion messages."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from slack_relay.slack_client import ChatClient, SlackMessage
from slack_relay.user_directory import UserDirectory

logger = logging.getLogger(__name__)


def _ts_key(message: SlackMessage) -> float:
    try:
        return float(message.ts)
    except ValueError:
        return 0.0


@dataclass
class HistoryFetcher:
    """Reads a message or its whole thread and tags each entry with a role.

    Args:
        chat: Slack gateway.
        directory: User directory used to name human authors.
    """

    chat: ChatClient
    directory: UserDirectory

    async def fetch(self, channel: str, anchor: str | None = None) -> list[SlackMessage]:
        """Return the messages that make up the conversation at ``anchor``.

        Without an anchor, only the latest message in the channel. With an
        anchor that belongs to a thread, the full thread in chronological
        order; otherwise just the anchored message.
        """
        messages = await self.chat.fetch_history(channel, latest=anchor, limit=1)
        if not anchor or not messages or not messages[0].thread_ts:
            return messages

        root = messages[0].thread_ts
        logger.debug("Anchor %s is in thread %s, fetching replies", anchor, root)
        replies = await self.chat.fetch_replies(channel, root)
        return sorted(replies, key=_ts_key)

    async def to_entry(self, message: SlackMessage, bot_user_id: str) -> dict[str, str]:
        """Map one Slack message to a role-tagged context entry.

        The bot's own messages become ``assistant`` entries verbatim; anything
        else is a ``user`` entry prefixed with who said it.
        """
        if bot_user_id and message.user == bot_user_id:
            return {"role": "assistant", "content": message.text}

        name = await self.directory.get(message.user)
        return {
            "role": "user",
            "content": f"{name} <@{message.user}> said: {message.text}",
        }

    async def fetch_context(
        self,
        channel: str,
        anchor: str | None,
        bot_user_id: str,
    ) -> list[dict[str, str]]:
        """Fetch history at ``anchor`` and map it to context entries."""
        messages = await self.fetch(channel, anchor)
        return list(
            await asyncio.gather(*(self.to_entry(m, bot_user_id) for m in messages))
        )
