# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DueDrop: heuristic detection of subscription and billing pages.

Three independent signal extractors feed one fused decision:
- url: checkout/billing path fragments and known subscription services
- keyword: subscription vocabulary in visible text and form metadata
- page: forms, buttons, headings and meta tags that suggest a sign-up flow

All result types are immutable and live for a single evaluation cycle.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class MethodName(StrEnum):
    """Source tag of an analysis result."""

    URL = "url"
    KEYWORD = "keyword"
    PAGE = "page"


def clamp_confidence(value: float) -> float:
    """Clamp *value* into [0, 1]. NaN collapses to 0."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, value))


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    """Common shape of every analyzer output."""

    is_subscription_page: bool
    confidence: float  # 0.0–1.0
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "isSubscriptionPage": self.is_subscription_page,
            "confidence": self.confidence,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class UrlAnalysisResult(AnalysisResult):
    detected_service: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = AnalysisResult.to_dict(self)
        if self.detected_service is not None:
            data["detectedService"] = self.detected_service
        return data


@dataclass(frozen=True, slots=True)
class KeywordAnalysisResult(AnalysisResult):
    detected_keywords: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = AnalysisResult.to_dict(self)
        data["detectedKeywords"] = list(self.detected_keywords)
        return data


@dataclass(frozen=True, slots=True)
class PageAnalysisResult(AnalysisResult):
    detected_elements: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = AnalysisResult.to_dict(self)
        data["detectedElements"] = list(self.detected_elements)
        return data


@dataclass(frozen=True, slots=True)
class DetectionMethod:
    """One analyzer's verdict, tagged with the method that produced it."""

    method: MethodName
    confidence: float
    is_subscription_page: bool
    reason: str
    details: AnalysisResult | None = None

    @classmethod
    def from_result(cls, method: MethodName, result: AnalysisResult) -> DetectionMethod:
        return cls(
            method=method,
            confidence=clamp_confidence(result.confidence),
            is_subscription_page=result.is_subscription_page,
            reason=result.reason,
            details=result,
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "method": str(self.method),
            "confidence": self.confidence,
            "isSubscriptionPage": self.is_subscription_page,
            "reason": self.reason,
        }
        if self.details is not None:
            data["details"] = self.details.to_dict()
        return data


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """Fused outcome of one evaluation cycle."""

    should_show_extension: bool
    confidence: float  # weighted overall, 0.0–1.0
    detection_methods: tuple[DetectionMethod, ...]
    reason: str
    detected_service: str | None = None  # only ever from the url method

    def method(self, name: MethodName) -> DetectionMethod | None:
        return next((m for m in self.detection_methods if m.method == name), None)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "shouldShowExtension": self.should_show_extension,
            "confidence": self.confidence,
            "detectionMethods": [m.to_dict() for m in self.detection_methods],
            "reason": self.reason,
        }
        if self.detected_service is not None:
            data["detectedService"] = self.detected_service
        return data
