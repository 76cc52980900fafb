"""slack-relay: streams LLM completions into Slack threads."""

__version__ = "0.1.0"

from slack_relay.events import DirectMessage, IgnoredEvent, Mention, classify_event
from slack_relay.history import HistoryFetcher
from slack_relay.relay_bot import SlackRelayBot
from slack_relay.relay_config import RelayConfig
from slack_relay.slack_client import ChatClient, SlackAPIError, SlackMessage
from slack_relay.streaming import (
    FLUSH_INTERVAL_S,
    StreamAccumulator,
    StreamingResponder,
)
from slack_relay.system_context import assemble_context, load_system_context
from slack_relay.user_directory import UNKNOWN_USER, UserCacheEntry, UserDirectory

__all__ = [
    # events
    "DirectMessage",
    "IgnoredEvent",
    "Mention",
    "classify_event",
    # history
    "HistoryFetcher",
    # relay_bot
    "SlackRelayBot",
    # relay_config
    "RelayConfig",
    # slack_client
    "ChatClient",
    "SlackAPIError",
    "SlackMessage",
    # streaming
    "FLUSH_INTERVAL_S",
    "StreamAccumulator",
    "StreamingResponder",
    # system_context
    "assemble_context",
    "load_system_context",
    # user_directory
    "UNKNOWN_USER",
    "UserCacheEntry",
    "UserDirectory",
]
