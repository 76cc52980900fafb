"""Async Slack Web API gateway for the relay.

Wraps the ``AsyncWebClient`` that slack_bolt's ``AsyncApp`` exposes as
``app.client`` and narrows it to the handful of calls the relay needs:
history and thread reads, message post/update, and user directory lookups.

Every failure -- Slack ``ok: false`` responses and transport errors alike --
is raised as :class:`SlackAPIError` so callers handle a single type.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from slack_sdk.errors import SlackApiError

logger = logging.getLogger(__name__)


class SlackAPIError(Exception):
    """Error communicating with the Slack Web API."""

    def __init__(self, message: str, error_code: str | None = None):
        super().__init__(message)
        self.error_code = error_code


@dataclass
class SlackMessage:
    """A single Slack message."""

    text: str
    user: str
    ts: str
    thread_ts: str | None = None
    bot_id: str | None = None
    subtype: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SlackMessage:
        """Build a message from a raw Slack message dict."""
        return cls(
            text=payload.get("text", "") or "",
            user=payload.get("user", "") or "",
            ts=payload.get("ts", "") or "",
            thread_ts=payload.get("thread_ts") or None,
            bot_id=payload.get("bot_id") or None,
            subtype=payload.get("subtype") or None,
        )


def _next_cursor(data: dict[str, Any]) -> str:
    meta = data.get("response_metadata") or {}
    return meta.get("next_cursor", "") if isinstance(meta, dict) else ""


@dataclass
class ChatClient:
    """Async client for the Slack Web API.

    Args:
        web: A ``slack_sdk.web.async_client.AsyncWebClient`` (usually
            ``AsyncApp.client``).
        page_limit: Page size for paginated reads.
    """

    web: Any = field(repr=False)
    page_limit: int = 200

    async def _request(self, method: str, **params: Any) -> dict[str, Any]:
        """Call a Slack Web API method by its dotted name.

        Args:
            method: Slack API method (e.g. 'chat.postMessage').
            **params: Method arguments.

        Returns:
            Response data dict.

        Raises:
            SlackAPIError: On Slack API errors (ok=false), transport failures
                or client timeouts.
        """
        call = getattr(self.web, method.replace(".", "_"))
        logger.debug("Slack call %s", method)
        try:
            response = await call(**params)
        except SlackApiError as exc:
            error = exc.response.get("error", "unknown_error")
            raise SlackAPIError(
                f"{method} -> Slack error: {error}", error_code=error
            ) from exc
        except aiohttp.ClientError as exc:
            raise SlackAPIError(f"{method} -> Connection failed: {exc}") from exc
        except asyncio.TimeoutError as exc:
            raise SlackAPIError(f"{method} -> Timed out") from exc

        data = getattr(response, "data", response)
        return data if isinstance(data, dict) else {}

    async def fetch_history(
        self,
        channel: str,
        *,
        latest: str | None = None,
        limit: int = 1,
    ) -> list[SlackMessage]:
        """Fetch top-level messages from a channel, newest first.

        Args:
            channel: Channel ID.
            latest: Only messages at or before this timestamp (inclusive).
            limit: Maximum number of messages to return.
        """
        params: dict[str, Any] = {"channel": channel, "limit": limit}
        if latest:
            params["latest"] = latest
            params["inclusive"] = True

        data = await self._request("conversations.history", **params)
        return [SlackMessage.from_payload(m) for m in data.get("messages", [])]

    async def fetch_replies(self, channel: str, thread_ts: str) -> list[SlackMessage]:
        """Fetch every message in a thread (parent included), following pagination."""
        messages: list[SlackMessage] = []
        cursor = ""
        while True:
            params: dict[str, Any] = {
                "channel": channel,
                "ts": thread_ts,
                "limit": self.page_limit,
            }
            if cursor:
                params["cursor"] = cursor
            data = await self._request("conversations.replies", **params)
            messages.extend(SlackMessage.from_payload(m) for m in data.get("messages", []))
            cursor = _next_cursor(data)
            if not cursor:
                return messages

    async def post_message(
        self,
        channel: str,
        text: str,
        thread_ts: str | None = None,
    ) -> str:
        """Post a message and return its timestamp (the message id)."""
        params: dict[str, Any] = {"channel": channel, "text": text}
        if thread_ts:
            params["thread_ts"] = thread_ts
        data = await self._request("chat.postMessage", **params)
        ts = data.get("ts", "")
        if not ts:
            raise SlackAPIError("chat.postMessage -> response carried no ts")
        return ts

    async def update_message(self, channel: str, ts: str, text: str) -> None:
        """Replace the full text of an existing message."""
        if not ts:
            raise SlackAPIError("chat.update -> no message ts given")
        await self._request("chat.update", channel=channel, ts=ts, text=text)

    async def user_info(self, user_id: str) -> dict[str, Any]:
        """Return the raw ``user`` object for a Slack user ID."""
        data = await self._request("users.info", user=user_id)
        user = data.get("user")
        return user if isinstance(user, dict) else {}

    async def list_users(self) -> list[dict[str, Any]]:
        """Return every workspace member, following pagination."""
        members: list[dict[str, Any]] = []
        cursor = ""
        while True:
            params: dict[str, Any] = {"limit": self.page_limit}
            if cursor:
                params["cursor"] = cursor
            data = await self._request("users.list", **params)
            members.extend(m for m in data.get("members", []) if isinstance(m, dict))
            cursor = _next_cursor(data)
            if not cursor:
                return members

    async def auth_test(self) -> str:
        """Return the bot's own user ID."""
        data = await self._request("auth.test")
        return data.get("user_id", "")
