# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Evaluation cycle: one snapshot -> three analyzers -> fusion.

Failure containment has two levels:

- Analyzer level: each analyzer runs isolated.  An exception (or a result
  that is not a well-formed ``AnalysisResult``) is logged and replaced by
  that method's neutral "no evidence" result; the cycle continues.
- Orchestration level: if the snapshot cannot be acquired or fusion fails,
  the cycle ends with ``DetectionState.error`` set and no detection, so
  nothing is shown until the next successful cycle.

``SubscriptionDetector`` holds the latest published state.  Cycles are
numbered at start; a cycle that finishes after a newer one was published
is discarded.
"""

from __future__ import annotations

import inspect
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from . import (
    AnalysisResult,
    DetectionMethod,
    DetectionResult,
    KeywordAnalysisResult,
    MethodName,
    PageAnalysisResult,
    UrlAnalysisResult,
)
from .cycle_timer import CycleTimer
from .errors import AnalysisFailure, OrchestrationFailure
from .fusion import fuse
from .keyword_analyzer import analyze_keywords
from .page_snapshot import PageSnapshot
from .structure_analyzer import analyze_structure
from .url_analyzer import analyze_url

logger = logging.getLogger("duedrop.detector")

SnapshotProvider = Callable[[], "PageSnapshot | Awaitable[PageSnapshot]"]

# Neutral results used in place of a failed analyzer
_FALLBACKS: dict[MethodName, AnalysisResult] = {
    MethodName.URL: UrlAnalysisResult(False, 0.1, "Analysis failed: url"),
    MethodName.KEYWORD: KeywordAnalysisResult(False, 0.1, "Analysis failed: keyword"),
    MethodName.PAGE: PageAnalysisResult(False, 0.0, "Analysis failed: page"),
}

_EXPECTED_TYPES: dict[MethodName, type[AnalysisResult]] = {
    MethodName.URL: UrlAnalysisResult,
    MethodName.KEYWORD: KeywordAnalysisResult,
    MethodName.PAGE: PageAnalysisResult,
}


@dataclass(frozen=True, slots=True)
class DetectionState:
    """Latest outcome visible to the presentation layer."""

    detection: DetectionResult | None = None
    error: str | None = None
    cycle: int = 0
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def visible(self) -> bool:
        """True only after a successful cycle that decided to show."""
        return self.error is None and self.detection is not None and self.detection.should_show_extension


def _validate(method: MethodName, result: object) -> AnalysisResult:
    if not isinstance(result, _EXPECTED_TYPES[method]):
        raise AnalysisFailure(f"{method} analyzer returned {type(result).__name__}", method=method)
    if not isinstance(result.confidence, (int, float)) or not math.isfinite(result.confidence):
        raise AnalysisFailure(f"{method} analyzer returned confidence {result.confidence!r}", method=method)
    return result


def _run_isolated(method: MethodName, analyze: Callable[[], object]) -> DetectionMethod:
    try:
        result = _validate(method, analyze())
    except Exception:
        logger.warning("%s analyzer failed; treating as no evidence", method, exc_info=True)
        result = _FALLBACKS[method]
    return DetectionMethod.from_result(method, result)


def run_cycle(snapshot: PageSnapshot, *, timer: CycleTimer | None = None) -> DetectionResult:
    """Run url, keyword and page analyzers on *snapshot*, then fuse."""
    timer = timer or CycleTimer()

    timer.stage("url")
    url_method = _run_isolated(MethodName.URL, lambda: analyze_url(snapshot.url))
    timer.stage("keyword")
    keyword_method = _run_isolated(MethodName.KEYWORD, lambda: analyze_keywords(snapshot))
    timer.stage("page")
    page_method = _run_isolated(MethodName.PAGE, lambda: analyze_structure(snapshot))

    timer.stage("fusion")
    result = fuse((url_method, keyword_method, page_method))
    timer.finalize()
    return result


class SubscriptionDetector:
    """Runs evaluation cycles and keeps the most recent ``DetectionState``."""

    def __init__(self) -> None:
        self._state = DetectionState()
        self._started = 0

    @property
    def state(self) -> DetectionState:
        return self._state

    def _next_cycle(self) -> int:
        self._started += 1
        return self._started

    def _publish(self, state: DetectionState) -> DetectionState:
        if state.cycle < self._state.cycle:
            logger.debug("discarding stale cycle %d (latest %d)", state.cycle, self._state.cycle)
            return state
        self._state = state
        return state

    def _finish(self, cycle: int, timer: CycleTimer, snapshot: PageSnapshot | None) -> DetectionState:
        try:
            if snapshot is None:
                raise OrchestrationFailure("no document available")
            detection = run_cycle(snapshot, timer=timer)
        except Exception as e:
            timer.finalize()
            logger.error("detection cycle %d failed: %s", cycle, e, exc_info=True)
            return self._publish(
                DetectionState(error=str(e) or "Detection failed", cycle=cycle, timings=timer.elapsed_per_stage())
            )

        timings = timer.elapsed_per_stage()
        logger.debug(
            "cycle %d: show=%s confidence=%.3f reason=%r timings=%s total_ms=%.3f",
            cycle,
            detection.should_show_extension,
            detection.confidence,
            detection.reason,
            timings,
            timer.total_ms(),
        )
        return self._publish(DetectionState(detection=detection, cycle=cycle, timings=timings))

    def evaluate_snapshot(self, snapshot: PageSnapshot | None) -> DetectionState:
        """Synchronous cycle against an already captured snapshot."""
        cycle = self._next_cycle()
        with structlog.contextvars.bound_contextvars(cycle=cycle):
            return self._finish(cycle, CycleTimer(), snapshot)

    async def evaluate(self, provider: SnapshotProvider) -> DetectionState:
        """Acquire a snapshot from *provider* (sync or async), then run a cycle.

        Log lines emitted during the cycle carry ``cycle=<n>`` via structlog
        contextvars.
        """
        cycle = self._next_cycle()
        with structlog.contextvars.bound_contextvars(cycle=cycle):
            timer = CycleTimer()
            timer.stage("snapshot")
            try:
                snapshot = provider()
                if inspect.isawaitable(snapshot):
                    snapshot = await snapshot
            except Exception as e:
                timer.finalize()
                logger.error("snapshot acquisition failed for cycle %d: %s", cycle, e, exc_info=True)
                return self._publish(
                    DetectionState(error=str(e) or "Detection failed", cycle=cycle, timings=timer.elapsed_per_stage())
                )
            return self._finish(cycle, timer, snapshot)
