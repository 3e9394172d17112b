# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import duedrop  # noqa: F401
except ImportError:
    raise ImportError("duedrop is not installed. Run: pip install -e '.[test]'") from None

import logging

import pytest
import structlog

from duedrop.page_snapshot import HtmlSnapshot


@pytest.fixture
def make_snapshot():
    """Build an ``HtmlSnapshot`` from a body fragment or a full document."""

    def _make(html: str = "", url: str = "https://example.com/") -> HtmlSnapshot:
        return HtmlSnapshot.from_html(url, html)

    return _make


@pytest.fixture
def reset_logging():
    """Restore root logging + structlog after tests that call configure()."""
    root = logging.getLogger()
    old_handlers = root.handlers[:]
    old_level = root.level
    asyncio_logger = logging.getLogger("asyncio")
    old_asyncio_level = asyncio_logger.level
    yield
    root.handlers = old_handlers
    root.setLevel(old_level)
    asyncio_logger.setLevel(old_asyncio_level)
    structlog.reset_defaults()
