"""Slack relay bot: answers DMs and @mentions with streamed completions.

Listens for ``message`` events via Socket Mode. For each message addressed
to the bot it reads the message (or its whole thread), prefixes the static
system context, and streams the completion back as a threaded reply that
is edited in place as text arrives.

Each event runs as its own coroutine. A failure while answering one message
is logged and leaves that message unanswered; it never stops the process.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from slack_relay.completion import AnthropicCompletionClient
from slack_relay.events import IgnoredEvent, InboundMessage, classify_event
from slack_relay.history import HistoryFetcher
from slack_relay.relay_config import RelayConfig
from slack_relay.slack_client import ChatClient, SlackAPIError
from slack_relay.streaming import StreamAccumulator, StreamingResponder
from slack_relay.system_context import assemble_context, load_system_context
from slack_relay.user_directory import UserDirectory

logger = logging.getLogger(__name__)


@dataclass
class SlackRelayBot:
    """Event dispatcher wiring history, context and streaming together.

    Args:
        config: Relay configuration.
        app: Optional pre-built slack_bolt AsyncApp (for testing).
        completion: Optional completion client (for testing).
        clock: Optional clock for the streaming controller (for testing).
    """

    config: RelayConfig
    app: Any = field(default=None, repr=False)
    completion: Any = field(default=None, repr=False)
    clock: Any = field(default=None, repr=False)
    chat: ChatClient = field(init=False, repr=False)
    directory: UserDirectory = field(init=False, repr=False)
    history: HistoryFetcher = field(init=False, repr=False)
    responder: StreamingResponder = field(init=False, repr=False)
    system_context: list[dict[str, str]] = field(
        default_factory=list, init=False, repr=False
    )
    _bot_user_id: str = field(default="", init=False, repr=False)

    def __post_init__(self) -> None:
        if self.app is None:
            from slack_bolt.async_app import AsyncApp

            self.app = AsyncApp(
                token=self.config.slack_bot_token,
                signing_secret=self.config.slack_signing_secret,
            )

        if self.completion is None:
            self.completion = AnthropicCompletionClient(
                api_key=self.config.anthropic_api_key,
                model=self.config.model,
                max_tokens=self.config.max_response_tokens,
            )

        self.chat = ChatClient(web=self.app.client)
        self.directory = UserDirectory(chat=self.chat)
        self.history = HistoryFetcher(chat=self.chat, directory=self.directory)
        responder_kwargs: dict[str, Any] = {
            "chat": self.chat,
            "flush_interval_s": self.config.flush_interval_s,
        }
        if self.clock is not None:
            responder_kwargs["clock"] = self.clock
        self.responder = StreamingResponder(**responder_kwargs)

        self.app.event("message")(self.handle_message)

        # Log all incoming events for debugging
        @self.app.middleware
        async def _log_all_events(body, next):
            event = body.get("event", {})
            logger.debug(
                "Incoming event: type=%s subtype=%s user=%s channel=%s",
                event.get("type", "unknown"),
                event.get("subtype", ""),
                event.get("user", ""),
                event.get("channel", ""),
            )
            await next()

    async def start(self) -> None:
        """Resolve identity, load context and connect via Socket Mode (blocks)."""
        from slack_bolt.adapter.socket_mode.async_handler import (
            AsyncSocketModeHandler,
        )

        await self.prepare()
        logger.info("Starting Slack relay via Socket Mode...")
        handler = AsyncSocketModeHandler(self.app, self.config.slack_app_token)
        await handler.start_async()

    async def prepare(self) -> None:
        """Startup work done once before events are accepted."""
        try:
            self._bot_user_id = await self.chat.auth_test()
            logger.info("Bot identity resolved: %s", self._bot_user_id)
        except SlackAPIError:
            logger.warning("Could not resolve bot identity via auth.test")

        self.system_context = load_system_context(self.config.context_file)

        if self.config.populate_user_cache:
            await self.directory.populate()

    # -- Event handling -----------------------------------------------------

    async def handle_message(self, event: dict[str, Any], context: Any = None) -> None:
        """Handle one ``message`` event. Never raises."""
        try:
            bot_user_id = self._bot_user_id
            if context is not None:
                bot_user_id = context.get("bot_user_id") or bot_user_id

            classified = classify_event(event, bot_user_id)
            if isinstance(classified, IgnoredEvent):
                logger.debug(
                    "Ignoring event ts=%s: %s", event.get("ts", ""), classified.reason
                )
                return

            await self.process(classified, bot_user_id)
        except Exception:
            logger.exception("Error relaying response for event ts=%s", event.get("ts", ""))

    async def process(
        self, message: InboundMessage, bot_user_id: str
    ) -> StreamAccumulator:
        """Fetch context for ``message`` and stream the answer into its thread."""
        anchor = message.anchor
        logger.info(
            "%s from user=%s channel=%s anchor=%s",
            type(message).__name__,
            message.user,
            message.channel,
            anchor,
        )
        history = await self.history.fetch_context(message.channel, anchor, bot_user_id)
        messages = assemble_context(self.system_context, history)
        return await self.responder.respond(
            messages, self.completion, message.channel, anchor
        )


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    """CLI entrypoint for the relay."""
    logging.basicConfig(
        level=os.environ.get("RELAY_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    base_dir = Path(os.environ.get("RELAY_HOME", Path.cwd()))
    config = RelayConfig.from_env(base_dir)

    async def _run() -> None:
        bot = SlackRelayBot(config=config)
        await bot.start()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
