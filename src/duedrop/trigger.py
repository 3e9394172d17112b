# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Trigger controller: decides WHEN an evaluation cycle runs.

Triggers:
  mount        -> run now
  navigation   -> run now (cancels any pending debounced run)
  mutation     -> debounced; a burst collapses into one run after the
                  quiescence window

``DebounceScheduler`` is edge-triggered with a single timer slot: every
signal cancels the pending timer and re-arms it, so at most one run is ever
queued regardless of burst size.

The auto-detection toggle gates the controller as a whole.  While disabled,
all triggers are ignored and pending runs are cancelled; analyzer logic is
unaffected.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

import structlog

from .detector import DetectionState, SnapshotProvider, SubscriptionDetector

logger = logging.getLogger("duedrop.trigger")

DEFAULT_DEBOUNCE_SECONDS = 1.0

ResultListener = Callable[[DetectionState], None]


class DebounceScheduler:
    """Single pending-timer slot, reset (not stacked) on each signal."""

    __slots__ = ("_delay", "_callback", "_handle")

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        if delay < 0:
            raise ValueError(f"debounce delay must be >= 0, got {delay}")
        self._delay = delay
        self._callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def signal(self) -> None:
        """Restart the quiescence window. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._callback()


class TriggerController:
    """Wires mount/navigation/mutation signals to ``SubscriptionDetector``."""

    def __init__(
        self,
        detector: SubscriptionDetector,
        provider: SnapshotProvider,
        *,
        on_result: ResultListener | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        enabled: bool = True,
    ) -> None:
        self._detector = detector
        self._provider = provider
        self._on_result = on_result
        self._enabled = enabled
        self._closed = False
        self._tasks: set[asyncio.Task] = set()
        self._debounce = DebounceScheduler(debounce_seconds, self._on_quiescent)
        self.cycles_started = 0

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def mutation_pending(self) -> bool:
        return self._debounce.pending

    @property
    def state(self) -> DetectionState:
        return self._detector.state

    # -- triggers ----------------------------------------------------------

    def mount(self) -> asyncio.Task | None:
        return self._run_now("mount")

    def notify_navigation(self) -> asyncio.Task | None:
        return self._run_now("navigation")

    def notify_mutation(self) -> None:
        if not self._active():
            return
        self._debounce.signal()

    def set_enabled(self, enabled: bool) -> asyncio.Task | None:
        """Flip the auto-detection toggle. Enabling runs a cycle immediately."""
        if enabled == self._enabled:
            return None
        self._enabled = enabled
        logger.info("auto detection %s", "enabled" if enabled else "disabled")
        if not enabled:
            self._debounce.cancel()
            return None
        return self._run_now("enabled")

    async def drain(self) -> None:
        """Wait for every cycle that is already running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        self._closed = True
        self._debounce.cancel()
        for task in list(self._tasks):
            task.cancel()

    # -- internals ---------------------------------------------------------

    def _active(self) -> bool:
        return self._enabled and not self._closed

    def _on_quiescent(self) -> None:
        self._spawn("mutation")

    def _run_now(self, trigger: str) -> asyncio.Task | None:
        if not self._active():
            logger.debug("ignoring %s trigger (inactive)", trigger)
            return None
        self._debounce.cancel()
        return self._spawn(trigger)

    def _spawn(self, trigger: str) -> asyncio.Task | None:
        if not self._active():
            return None
        self.cycles_started += 1
        task = asyncio.get_running_loop().create_task(self._run_cycle(trigger))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run_cycle(self, trigger: str) -> DetectionState:
        # Each task runs in its own context copy, so the binding stays per-cycle
        structlog.contextvars.bind_contextvars(trigger=trigger)
        logger.debug("evaluation cycle triggered by %s", trigger)
        state = await self._detector.evaluate(self._provider)
        if state is not self._detector.state or self._on_result is None:
            return state
        try:
            self._on_result(state)
        except Exception:
            logger.exception("result listener failed")
        return state
