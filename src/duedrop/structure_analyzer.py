# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""DOM structure analyzer: forms, buttons/links, headings, meta tags.

Every rule is a ``StructureSignal``: a label, the terms that fire it, and a
weight.  Three sub-scans accumulate (label, weight) evidence independently;
their sum is clamped to 1.0 at the end.

Per-input bonuses inside a form are uncapped: a form with many
``billing_*`` fields keeps adding 0.1 per field until the final clamp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urljoin

from . import PageAnalysisResult, clamp_confidence
from .page_snapshot import ElementView, PageSnapshot

logger = logging.getLogger("duedrop.structure_analyzer")

# ---------------------------------------------------------------------------
# Signal tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StructureSignal:
    label: str
    terms: tuple[str, ...]
    weight: float

    def matches(self, text: str) -> bool:
        return any(t in text for t in self.terms)


FORM_TEXT_SIGNALS: tuple[StructureSignal, ...] = (
    StructureSignal("subscription form", ("subscription", "subscribe"), 0.3),
    StructureSignal("billing form", ("billing", "payment"), 0.25),
)
FORM_ACTION_SIGNAL = StructureSignal("checkout form", ("checkout", "payment"), 0.2)
FORM_INPUT_SIGNALS: tuple[StructureSignal, ...] = (
    StructureSignal("subscription input", ("subscription",), 0.1),
    StructureSignal("billing input", ("billing",), 0.1),
)

# Independent checks; one element may fire several
BUTTON_SIGNALS: tuple[StructureSignal, ...] = (
    StructureSignal("subscribe button", ("subscribe", "subscription"), 0.4),
    StructureSignal("purchase button", ("checkout", "purchase", "buy"), 0.3),
    StructureSignal("upgrade button", ("upgrade", "premium", "pro"), 0.25),
    StructureSignal("trial button", ("trial",), 0.2),
    StructureSignal("plan/billing button", ("plan", "billing", "payment"), 0.15),
)

PRICING_CLASS_SIGNAL = StructureSignal("pricing table", ("pricing", "plan", "tier"), 0.2)
HEADING_SIGNALS: tuple[StructureSignal, ...] = (
    StructureSignal("subscription heading", ("subscription", "subscribe"), 0.3),
    StructureSignal("pricing heading", ("pricing", "plans"), 0.2),
    StructureSignal("billing heading", ("billing", "payment"), 0.15),
)
META_DESCRIPTION_SIGNAL = StructureSignal("subscription meta description", ("subscription", "subscribe"), 0.1)

POSITIVE_THRESHOLD = 0.4

_FORM_CONTROL_TAGS = ("input", "select", "textarea")
_CLICKABLE_TAGS = ("button", "input", "a")
_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

Evidence = list[tuple[str, float]]


def _lower(value: str | None) -> str:
    return (value or "").lower()


def _form_action(form: ElementView, page_url: str) -> str:
    # A form without an action submits to the page itself
    action = form.get("action")
    if not action:
        return page_url
    try:
        return urljoin(page_url, action)
    except ValueError:
        # Unresolvable (e.g. broken IPv6 host); the raw attribute still carries the path
        return action


# ---------------------------------------------------------------------------
# Sub-scans
# ---------------------------------------------------------------------------


def scan_forms(snapshot: PageSnapshot) -> Evidence:
    evidence: Evidence = []
    for form in snapshot.iter_elements("form"):
        form_text = _lower(form.text_content())
        for signal in FORM_TEXT_SIGNALS:
            if signal.matches(form_text):
                evidence.append((signal.label, signal.weight))

        if FORM_ACTION_SIGNAL.matches(_form_action(form, snapshot.url).lower()):
            evidence.append((FORM_ACTION_SIGNAL.label, FORM_ACTION_SIGNAL.weight))

        for control in form.iter(*_FORM_CONTROL_TAGS):
            fields = (_lower(control.get("placeholder")), _lower(control.get("name")), _lower(control.get("id")))
            for signal in FORM_INPUT_SIGNALS:
                if any(signal.matches(f) for f in fields):
                    evidence.append((signal.label, signal.weight))
    return evidence


def scan_buttons(snapshot: PageSnapshot) -> Evidence:
    evidence: Evidence = []
    for el in snapshot.iter_elements(*_CLICKABLE_TAGS):
        if el.tag == "input" and _lower(el.get("type")) != "submit":
            continue
        all_text = f"{_lower(el.text_content())} {_lower(el.get('title'))} {_lower(el.get('aria-label'))}"
        for signal in BUTTON_SIGNALS:
            if signal.matches(all_text):
                evidence.append((signal.label, signal.weight))
    return evidence


def scan_page_structure(snapshot: PageSnapshot) -> Evidence:
    evidence: Evidence = []

    if any(PRICING_CLASS_SIGNAL.matches(el.get("class") or "") for el in snapshot.iter_elements()):
        evidence.append((PRICING_CLASS_SIGNAL.label, PRICING_CLASS_SIGNAL.weight))

    for heading in snapshot.iter_elements(*_HEADING_TAGS):
        heading_text = _lower(heading.text_content())
        for signal in HEADING_SIGNALS:
            if signal.matches(heading_text):
                evidence.append((signal.label, signal.weight))

    if META_DESCRIPTION_SIGNAL.matches(snapshot.meta_description().lower()):
        evidence.append((META_DESCRIPTION_SIGNAL.label, META_DESCRIPTION_SIGNAL.weight))

    return evidence


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def analyze_structure(snapshot: PageSnapshot) -> PageAnalysisResult:
    evidence = scan_forms(snapshot) + scan_buttons(snapshot) + scan_page_structure(snapshot)
    raw = sum(weight for _, weight in evidence)
    confidence = clamp_confidence(raw)
    if raw > 1.0:
        logger.debug("structure score %.2f clamped to 1.0 (%d signals)", raw, len(evidence))

    return PageAnalysisResult(
        is_subscription_page=confidence > POSITIVE_THRESHOLD,
        confidence=confidence,
        reason=f"Found {len(evidence)} subscription-related elements",
        detected_elements=tuple(label for label, _ in evidence),
    )
