# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Bind a live Playwright page to a ``TriggerController``.

Main-frame ``framenavigated`` events (full loads and history API changes)
become navigation triggers.  A MutationObserver on <body> calls an exposed
binding, which becomes a debounced mutation trigger.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from playwright.async_api import Frame, Page

from .page_snapshot import HtmlSnapshot, capture_snapshot
from .trigger import TriggerController

logger = logging.getLogger("duedrop.live")

MUTATION_BINDING = "__duedropMutation"

# Installed as an init script (future documents) and evaluated once (current one).
_OBSERVER_JS = """(() => {
  const install = () => {
    if (window.__duedropObserver || !document.body) return;
    const observer = new MutationObserver(() => {
      window.%(binding)s().catch(() => {});
    });
    observer.observe(document.body, {childList: true, subtree: true});
    window.__duedropObserver = observer;
  };
  if (document.body) install();
  else document.addEventListener('DOMContentLoaded', install, {once: true});
})()""" % {"binding": MUTATION_BINDING}


def snapshot_provider(page: Page) -> Callable[[], Awaitable[HtmlSnapshot]]:
    """Provider for ``SubscriptionDetector.evaluate`` reading *page* on demand."""

    async def _capture() -> HtmlSnapshot:
        return await capture_snapshot(page)

    return _capture


async def watch_page(page: Page, controller: TriggerController) -> Callable[[], None]:
    """Start forwarding page events to *controller*. Returns an unwatch callable."""

    def _on_navigated(frame: Frame) -> None:
        if frame == page.main_frame:
            logger.debug("main frame navigated: %s", frame.url)
            controller.notify_navigation()

    def _on_mutation() -> None:
        controller.notify_mutation()

    await page.expose_function(MUTATION_BINDING, _on_mutation)
    await page.add_init_script(script=_OBSERVER_JS)
    await page.evaluate(_OBSERVER_JS)
    page.on("framenavigated", _on_navigated)

    def unwatch() -> None:
        page.remove_listener("framenavigated", _on_navigated)

    return unwatch
