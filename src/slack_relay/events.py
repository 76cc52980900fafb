"""Classification of inbound Slack ``message`` events.

Raw event dicts are validated once here and turned into one of a few known
shapes, so the dispatcher never reaches into untyped payload fields.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, Union

# Ignore reasons
IGNORE_BOT = "bot_message"
IGNORE_SUBTYPE = "subtype"
IGNORE_SELF = "own_message"
IGNORE_MALFORMED = "malformed"
IGNORE_NOT_ADDRESSED = "not_addressed"


class IgnoredEvent(NamedTuple):
    """An event the relay does not answer."""

    reason: str


@dataclass(frozen=True)
class InboundMessage:
    """Fields shared by every message the relay answers."""

    channel: str
    user: str
    text: str
    ts: str
    channel_type: str = ""
    thread_ts: str | None = None

    @property
    def in_thread(self) -> bool:
        return bool(self.thread_ts)

    @property
    def anchor(self) -> str:
        """Thread root to reply under; a top-level message starts a new thread."""
        return self.thread_ts or self.ts


@dataclass(frozen=True)
class DirectMessage(InboundMessage):
    """A message in a DM with the bot."""


@dataclass(frozen=True)
class Mention(InboundMessage):
    """A channel message that mentions the bot."""


ClassifiedEvent = Union[DirectMessage, Mention, IgnoredEvent]


def mention_token(bot_user_id: str) -> str:
    return f"<@{bot_user_id}>"


def classify_event(event: dict[str, Any], bot_user_id: str) -> ClassifiedEvent:
    """Decide whether an inbound event warrants a response.

    Ignores messages from bots (``bot_id``), any message with a ``subtype``
    (edits, joins, ...), the bot's own messages, and events missing a
    channel or timestamp. Everything else is answered if it is a direct
    message or mentions the bot.
    """
    if event.get("bot_id"):
        return IgnoredEvent(IGNORE_BOT)
    if event.get("subtype"):
        return IgnoredEvent(IGNORE_SUBTYPE)

    user = event.get("user", "") or ""
    if bot_user_id and user == bot_user_id:
        return IgnoredEvent(IGNORE_SELF)

    channel = event.get("channel", "") or ""
    ts = event.get("ts", "") or ""
    if not channel or not ts:
        return IgnoredEvent(IGNORE_MALFORMED)

    fields = {
        "channel": channel,
        "user": user,
        "text": event.get("text", "") or "",
        "ts": ts,
        "channel_type": event.get("channel_type", "") or "",
        "thread_ts": event.get("thread_ts") or None,
    }

    if fields["channel_type"] == "im":
        return DirectMessage(**fields)
    if bot_user_id and mention_token(bot_user_id) in fields["text"]:
        return Mention(**fields)
    return IgnoredEvent(IGNORE_NOT_ADDRESSED)
