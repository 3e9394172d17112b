# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Keyword scanner over visible page text and form-control metadata."""

from __future__ import annotations

from collections.abc import Iterable

from . import KeywordAnalysisResult, clamp_confidence
from .page_snapshot import PageSnapshot

# ---------------------------------------------------------------------------
# Vocabulary, matched by substring, reported in this order
# ---------------------------------------------------------------------------

BILLING_CYCLE_TERMS: tuple[str, ...] = (
    "subscription",
    "subscribe",
    "billing",
    "payment",
    "recurring",
    "monthly",
    "yearly",
    "annual",
    "quarterly",
    "weekly",
    "auto-renew",
    "auto-renewal",
    "renewal",
    "renew",
    "billing cycle",
    "payment cycle",
    "billing date",
)

PLAN_TERMS: tuple[str, ...] = (
    "plan",
    "premium",
    "pro",
    "plus",
    "basic",
    "standard",
    "trial",
    "free trial",
    "cancel",
    "cancellation",
    "upgrade",
    "downgrade",
    "change plan",
)

SERVICE_TERMS: tuple[str, ...] = (
    "streaming",
    "music",
    "video",
    "software",
    "cloud",
    "storage",
    "backup",
    "security",
    "vpn",
)

CHECKOUT_TERMS: tuple[str, ...] = (
    "checkout",
    "purchase",
    "buy",
    "order",
    "confirm",
    "complete purchase",
    "place order",
    "proceed to payment",
)

VOCABULARY: tuple[str, ...] = tuple(
    dict.fromkeys(BILLING_CYCLE_TERMS + PLAN_TERMS + SERVICE_TERMS + CHECKOUT_TERMS)
)

HIGH_CONFIDENCE_TERMS: frozenset[str] = frozenset(
    {"subscription", "subscribe", "billing", "recurring", "auto-renew", "billing cycle", "checkout"}
)
MEDIUM_CONFIDENCE_TERMS: frozenset[str] = frozenset(
    {"payment", "monthly", "yearly", "plan", "premium", "trial", "upgrade", "purchase"}
)

HIGH_WEIGHT = 0.3
MEDIUM_WEIGHT = 0.15
LOW_WEIGHT = 0.05

POSITIVE_THRESHOLD = 0.3
NO_KEYWORDS_CONFIDENCE = 0.1

_FORM_CONTROL_TAGS = ("input", "select", "textarea")
_FORM_TEXT_ATTRS = ("placeholder", "aria-label", "title")


def page_text(snapshot: PageSnapshot) -> str:
    """Body text plus placeholder/aria-label/title of form controls, lower-cased."""
    form_parts: list[str] = []
    for el in snapshot.iter_elements(*_FORM_CONTROL_TAGS):
        values = [el.get(attr) for attr in _FORM_TEXT_ATTRS]
        form_parts.append(" ".join(v for v in values if v))
    return f"{snapshot.body_text()} {' '.join(form_parts)}".lower()


def find_keywords(text: str) -> tuple[str, ...]:
    return tuple(kw for kw in VOCABULARY if kw in text)


def keyword_weight(keyword: str) -> float:
    if keyword in HIGH_CONFIDENCE_TERMS:
        return HIGH_WEIGHT
    if keyword in MEDIUM_CONFIDENCE_TERMS:
        return MEDIUM_WEIGHT
    return LOW_WEIGHT


def keyword_confidence(keywords: Iterable[str]) -> float:
    """Sum of per-keyword weights, capped at 1.0."""
    return clamp_confidence(sum(keyword_weight(kw) for kw in keywords))


def analyze_keywords(snapshot: PageSnapshot) -> KeywordAnalysisResult:
    keywords = find_keywords(page_text(snapshot))

    if not keywords:
        return KeywordAnalysisResult(
            is_subscription_page=False,
            confidence=NO_KEYWORDS_CONFIDENCE,
            reason="No subscription keywords found",
        )

    confidence = keyword_confidence(keywords)
    return KeywordAnalysisResult(
        is_subscription_page=confidence > POSITIVE_THRESHOLD,
        confidence=confidence,
        reason=f"Found {len(keywords)} subscription-related keywords",
        detected_keywords=keywords,
    )
