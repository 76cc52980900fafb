"""Tests for the user directory cache."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from slack_relay.slack_client import ChatClient, SlackAPIError
from slack_relay.user_directory import UNKNOWN_USER, UserCacheEntry, UserDirectory


@pytest.fixture()
def chat() -> MagicMock:
    chat = MagicMock()
    chat.user_info = AsyncMock(
        return_value={
            "id": "U1",
            "name": "ada",
            "real_name": "Ada Lovelace",
            "profile": {"display_name": "ada.l", "status_text": "computing"},
        }
    )
    chat.list_users = AsyncMock(return_value=[])
    return chat


@pytest.fixture()
def directory(chat: MagicMock) -> UserDirectory:
    return UserDirectory(chat=chat)


class TestUserCacheEntry:
    def test_from_user(self):
        entry = UserCacheEntry.from_user(
            {
                "id": "U1",
                "name": "ada",
                "real_name": "Ada Lovelace",
                "profile": {"display_name": "ada.l", "status_text": "computing"},
            }
        )
        assert entry == UserCacheEntry(
            id="U1",
            display_name="ada.l",
            real_name="Ada Lovelace",
            status_text="computing",
        )

    def test_falls_back_to_username(self):
        entry = UserCacheEntry.from_user({"id": "U2", "name": "bob"})
        assert entry.real_name == "bob"
        assert entry.display_name == "bob"

    def test_label(self):
        assert UserCacheEntry(id="U1", real_name="Ada").label() == "Ada (<@U1>)"


class TestGet:
    @pytest.mark.asyncio
    async def test_miss_then_hit_single_lookup(
        self, directory: UserDirectory, chat: MagicMock
    ):
        first = await directory.get("U1")
        second = await directory.get("U1")
        assert first == second == "Ada Lovelace (<@U1>)"
        chat.user_info.assert_awaited_once_with("U1")
        assert "U1" in directory

    @pytest.mark.asyncio
    async def test_failure_returns_fallback_and_is_not_cached(
        self, directory: UserDirectory, chat: MagicMock
    ):
        chat.user_info.side_effect = SlackAPIError("users.info -> Slack error: user_not_found")
        assert await directory.get("U9") == UNKNOWN_USER
        assert "U9" not in directory

        chat.user_info.side_effect = None
        assert await directory.get("U9") == "Ada Lovelace (<@U9>)"
        assert chat.user_info.await_count == 2

    @pytest.mark.asyncio
    async def test_timeout_returns_fallback_and_is_not_cached(self):
        web = MagicMock()
        web.users_info = AsyncMock(side_effect=asyncio.TimeoutError())
        directory = UserDirectory(chat=ChatClient(web=web))

        assert await directory.get("U1") == UNKNOWN_USER
        assert "U1" not in directory

    @pytest.mark.asyncio
    async def test_empty_id_skips_lookup(
        self, directory: UserDirectory, chat: MagicMock
    ):
        assert await directory.get("") == UNKNOWN_USER
        chat.user_info.assert_not_called()


class TestPopulate:
    @pytest.mark.asyncio
    async def test_populate_caches_members(
        self, directory: UserDirectory, chat: MagicMock
    ):
        chat.list_users.return_value = [
            {"id": "U1", "real_name": "Ada"},
            {"id": "U2", "real_name": "Grace"},
            {"name": "no-id"},
        ]
        assert await directory.populate() == 2
        assert len(directory) == 2
        assert await directory.get("U2") == "Grace (<@U2>)"
        chat.user_info.assert_not_called()

    @pytest.mark.asyncio
    async def test_populate_failure_is_swallowed(
        self, directory: UserDirectory, chat: MagicMock
    ):
        chat.list_users.side_effect = SlackAPIError("users.list -> Slack error: missing_scope")
        assert await directory.populate() == 0
        assert len(directory) == 0

    @pytest.mark.asyncio
    async def test_populate_timeout_is_swallowed(self):
        web = MagicMock()
        web.users_list = AsyncMock(side_effect=asyncio.TimeoutError())
        directory = UserDirectory(chat=ChatClient(web=web))

        assert await directory.populate() == 0
        assert len(directory) == 0

    def test_lookup_does_not_call_directory(
        self, directory: UserDirectory, chat: MagicMock
    ):
        assert directory.lookup("U1") is None
        chat.user_info.assert_not_called()
