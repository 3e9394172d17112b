# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""URL tier matcher: first match wins, no accumulation across tiers.

Tiers (evaluated in order on the lower-cased URL):
  1. checkout/billing path fragment       -> 0.9
  2. known subscription-service domain    -> 0.8 (+ detected_service)
  3. payment-adjacent path fragment       -> 0.7
  4. nothing                              -> 0.1
"""

from __future__ import annotations

from . import UrlAnalysisResult

CHECKOUT_PATTERNS: tuple[str, ...] = (
    "/checkout",
    "/billing",
    "/payment",
    "/subscribe",
    "/subscription",
    "/purchase",
    "/order",
    "/cart",
    "/buy",
    "/upgrade",
    "/plan",
)

# /payment and /billing also sit in tier 1, so only the last four can fire here.
PAYMENT_PATTERNS: tuple[str, ...] = (
    "/payment",
    "/billing",
    "/invoice",
    "/receipt",
    "/confirmation",
    "/success",
)

# (domain, display name); table order decides ties
SUBSCRIPTION_SERVICES: tuple[tuple[str, str], ...] = (
    ("netflix.com", "Netflix"),
    ("spotify.com", "Spotify"),
    ("youtube.com", "YouTube Premium"),
    ("amazon.com", "Amazon Prime"),
    ("disneyplus.com", "Disney+"),
    ("hulu.com", "Hulu"),
    ("hbo.com", "HBO Max"),
    ("paramountplus.com", "Paramount+"),
    ("peacocktv.com", "Peacock"),
    ("crunchyroll.com", "Crunchyroll"),
    ("funimation.com", "Funimation"),
    ("adobe.com", "Adobe Creative Cloud"),
    ("microsoft.com", "Microsoft 365"),
    ("google.com", "Google Workspace"),
    ("dropbox.com", "Dropbox"),
    ("notion.so", "Notion"),
    ("figma.com", "Figma"),
    ("slack.com", "Slack"),
    ("zoom.us", "Zoom"),
    ("canva.com", "Canva Pro"),
)

CHECKOUT_CONFIDENCE = 0.9
SERVICE_CONFIDENCE = 0.8
PAYMENT_CONFIDENCE = 0.7
NO_MATCH_CONFIDENCE = 0.1


def has_checkout_patterns(url_lower: str) -> bool:
    return any(p in url_lower for p in CHECKOUT_PATTERNS)


def has_payment_patterns(url_lower: str) -> bool:
    return any(p in url_lower for p in PAYMENT_PATTERNS)


def detect_subscription_service(url_lower: str) -> str | None:
    """Display name of the first table domain found in the URL, else None."""
    return next((name for domain, name in SUBSCRIPTION_SERVICES if domain in url_lower), None)


def analyze_url(url: str) -> UrlAnalysisResult:
    """Score *url* by the first matching tier. Pure function of its input."""
    url_lower = url.lower()

    if has_checkout_patterns(url_lower):
        return UrlAnalysisResult(
            is_subscription_page=True,
            confidence=CHECKOUT_CONFIDENCE,
            reason="URL contains checkout/billing patterns",
        )

    service = detect_subscription_service(url_lower)
    if service:
        return UrlAnalysisResult(
            is_subscription_page=True,
            confidence=SERVICE_CONFIDENCE,
            reason=f"Detected subscription service: {service}",
            detected_service=service,
        )

    if has_payment_patterns(url_lower):
        return UrlAnalysisResult(
            is_subscription_page=True,
            confidence=PAYMENT_CONFIDENCE,
            reason="URL contains payment/billing patterns",
        )

    return UrlAnalysisResult(
        is_subscription_page=False,
        confidence=NO_MATCH_CONFIDENCE,
        reason="No subscription patterns detected",
    )
