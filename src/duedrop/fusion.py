# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fusion: weighted overall confidence plus a three-rule show decision.

The extension is shown when ANY of:
  (a) a single method's confidence exceeds 0.7
  (b) the weighted overall confidence exceeds 0.5
  (c) at least two methods independently flagged a subscription page
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from . import DetectionMethod, DetectionResult, MethodName, UrlAnalysisResult, clamp_confidence

# URL analysis is the most reliable signal
METHOD_WEIGHTS: Mapping[MethodName, float] = MappingProxyType(
    {
        MethodName.URL: 0.5,
        MethodName.KEYWORD: 0.3,
        MethodName.PAGE: 0.2,
    }
)

HIGH_CONFIDENCE_THRESHOLD = 0.7
OVERALL_THRESHOLD = 0.5
MIN_AGREEING_METHODS = 2

REASON_NOT_SHOWN = "No strong indicators of subscription page found"
REASON_COMBINED = "Combined analysis suggests subscription page"
REASON_PREFIX = "Detected subscription indicators via: "


def overall_confidence(
    methods: Sequence[DetectionMethod],
    weights: Mapping[MethodName, float] = METHOD_WEIGHTS,
) -> float:
    """Weighted mean of method confidences; 0.0 when total weight is zero."""
    weighted_sum = 0.0
    total_weight = 0.0
    for m in methods:
        weight = weights.get(m.method, 0.0)
        weighted_sum += m.confidence * weight
        total_weight += weight
    return clamp_confidence(weighted_sum / total_weight) if total_weight > 0 else 0.0


def should_show_extension(methods: Sequence[DetectionMethod], overall: float) -> bool:
    has_high_confidence = any(m.confidence > HIGH_CONFIDENCE_THRESHOLD for m in methods)
    has_good_overall = overall > OVERALL_THRESHOLD
    agreeing = sum(1 for m in methods if m.is_subscription_page)
    return has_high_confidence or has_good_overall or agreeing >= MIN_AGREEING_METHODS


def build_reason(methods: Sequence[DetectionMethod], shown: bool) -> str:
    if not shown:
        return REASON_NOT_SHOWN
    positive = [str(m.method) for m in methods if m.is_subscription_page]
    if not positive:
        return REASON_COMBINED
    return REASON_PREFIX + ", ".join(positive)


def _detected_service(methods: Sequence[DetectionMethod]) -> str | None:
    for m in methods:
        if m.method == MethodName.URL and isinstance(m.details, UrlAnalysisResult):
            return m.details.detected_service
    return None


def fuse(methods: Sequence[DetectionMethod]) -> DetectionResult:
    """Combine tagged analyzer results into one ``DetectionResult``."""
    overall = overall_confidence(methods)
    shown = should_show_extension(methods, overall)
    return DetectionResult(
        should_show_extension=shown,
        confidence=overall,
        detection_methods=tuple(methods),
        reason=build_reason(methods, shown),
        detected_service=_detected_service(methods),
    )
