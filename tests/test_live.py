# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for Playwright page binding and capture (mocked page, no browser)."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from duedrop.errors import SnapshotError
from duedrop.live import MUTATION_BINDING, snapshot_provider, watch_page
from duedrop.page_snapshot import HtmlSnapshot, capture_snapshot


def _mock_page(html: str = "<p>Subscribe monthly</p>", url: str = "https://example.com/plans"):
    page = MagicMock()
    page.url = url
    page.content = AsyncMock(return_value=html)
    page.expose_function = AsyncMock()
    page.add_init_script = AsyncMock()
    page.evaluate = AsyncMock()
    page.main_frame = MagicMock(name="main_frame")
    return page


class TestCapture:
    @pytest.mark.asyncio
    async def test_capture_snapshot(self):
        snap = await capture_snapshot(_mock_page())
        assert isinstance(snap, HtmlSnapshot)
        assert snap.url == "https://example.com/plans"
        assert "Subscribe monthly" in snap.body_text()

    @pytest.mark.asyncio
    async def test_capture_failure_becomes_snapshot_error(self):
        page = _mock_page()
        page.content = AsyncMock(side_effect=PlaywrightError("Target page has been closed"))
        with pytest.raises(SnapshotError, match="page content unavailable"):
            await capture_snapshot(page)

    @pytest.mark.asyncio
    async def test_provider_reads_on_each_call(self):
        page = _mock_page()
        provider = snapshot_provider(page)
        await provider()
        await provider()
        assert page.content.await_count == 2


class TestWatchPage:
    @pytest.mark.asyncio
    async def test_installs_observer_and_listener(self):
        page = _mock_page()
        controller = MagicMock()
        await watch_page(page, controller)

        name, callback = page.expose_function.await_args.args
        assert name == MUTATION_BINDING
        script = page.add_init_script.await_args.kwargs["script"]
        assert MUTATION_BINDING in script
        assert "MutationObserver" in script
        page.evaluate.assert_awaited_once_with(script)

        callback()
        controller.notify_mutation.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_only_main_frame_navigation_triggers(self):
        page = _mock_page()
        controller = MagicMock()
        await watch_page(page, controller)

        event, handler = page.on.call_args.args
        assert event == "framenavigated"

        handler(MagicMock(name="iframe"))
        controller.notify_navigation.assert_not_called()

        handler(page.main_frame)
        controller.notify_navigation.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_unwatch_removes_listener(self):
        page = _mock_page()
        unwatch = await watch_page(page, MagicMock())
        _, handler = page.on.call_args.args
        unwatch()
        page.remove_listener.assert_called_once_with("framenavigated", handler)
