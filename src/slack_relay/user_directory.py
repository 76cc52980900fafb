"""Process-lifetime cache of Slack user display metadata.

Avoids a ``users.info`` call for every message author when formatting
thread history. Entries are never evicted. There is no lock: two concurrent
misses for the same user may both hit the directory, and the last write
wins -- the values are identical, so the race is harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from slack_relay.slack_client import ChatClient, SlackAPIError

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"


@dataclass(frozen=True)
class UserCacheEntry:
    """Display metadata for one Slack user."""

    id: str
    display_name: str = ""
    real_name: str = ""
    status_text: str = ""

    @classmethod
    def from_user(cls, user: dict[str, Any]) -> UserCacheEntry:
        """Build an entry from a Slack ``user`` object."""
        profile = user.get("profile") or {}
        name = user.get("name", "")
        return cls(
            id=user.get("id", ""),
            display_name=profile.get("display_name") or name,
            real_name=user.get("real_name") or profile.get("real_name") or name,
            status_text=profile.get("status_text", ""),
        )

    def label(self) -> str:
        """Return the name-plus-mention string used in conversation context."""
        return f"{self.real_name} (<@{self.id}>)"


@dataclass
class UserDirectory:
    """Lazily populated mapping of user ID to :class:`UserCacheEntry`.

    Args:
        chat: Slack gateway used for ``users.info`` and ``users.list``.
    """

    chat: ChatClient
    _entries: dict[str, UserCacheEntry] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._entries

    def lookup(self, user_id: str) -> UserCacheEntry | None:
        """Return the cached entry for a user, without any network call."""
        return self._entries.get(user_id)

    async def get(self, user_id: str) -> str:
        """Resolve a user ID to a display string.

        Cache hits return immediately. A miss triggers one ``users.info``
        lookup; failures return :data:`UNKNOWN_USER` and are not cached, so
        the next call for the same ID retries.
        """
        entry = self._entries.get(user_id)
        if entry is not None:
            return entry.label()
        if not user_id:
            return UNKNOWN_USER

        try:
            user = await self.chat.user_info(user_id)
        except SlackAPIError:
            logger.warning("Could not resolve user %s", user_id, exc_info=True)
            return UNKNOWN_USER

        entry = UserCacheEntry.from_user({**user, "id": user_id})
        self._entries[user_id] = entry
        return entry.label()

    async def populate(self) -> int:
        """Eagerly load every workspace member. Returns the number cached.

        Failures are logged and leave the cache as it was.
        """
        try:
            members = await self.chat.list_users()
        except SlackAPIError:
            logger.exception("Error populating user cache")
            return 0

        count = 0
        for user in members:
            entry = UserCacheEntry.from_user(user)
            if entry.id:
                self._entries[entry.id] = entry
                count += 1
        logger.info("User cache populated with %d users", count)
        return count
