# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Tests for the DOM structure analyzer."""

from __future__ import annotations

import pytest

from duedrop.structure_analyzer import (
    analyze_structure,
    scan_buttons,
    scan_forms,
    scan_page_structure,
)


def _labels(evidence):
    return [label for label, _ in evidence]


def _total(evidence):
    return sum(w for _, w in evidence)


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------


class TestForms:
    def test_subscription_form_text(self, make_snapshot):
        snap = make_snapshot('<form action="/signup"><label>Subscribe now</label></form>')
        evidence = scan_forms(snap)
        assert _labels(evidence) == ["subscription form"]
        assert _total(evidence) == pytest.approx(0.3)

    def test_billing_and_subscription_text_both_fire(self, make_snapshot):
        snap = make_snapshot('<form action="/signup"><p>Subscription billing address</p></form>')
        assert _labels(scan_forms(snap)) == ["subscription form", "billing form"]

    def test_action_mentions_checkout(self, make_snapshot):
        snap = make_snapshot('<form action="https://pay.example.com/checkout/submit"></form>')
        assert _labels(scan_forms(snap)) == ["checkout form"]

    def test_missing_action_submits_to_page_url(self, make_snapshot):
        snap = make_snapshot('<form><input name="email"></form>', url="https://shop.example.com/checkout")
        assert _labels(scan_forms(snap)) == ["checkout form"]

    def test_relative_action_resolved_against_page(self, make_snapshot):
        snap = make_snapshot('<form action="pay"></form>', url="https://example.com/payment/")
        assert _labels(scan_forms(snap)) == ["checkout form"]

    def test_input_matches_by_placeholder_name_or_id(self, make_snapshot):
        snap = make_snapshot(
            '<form action="/x">'
            '<input placeholder="Subscription ID">'
            '<select name="billing_country"></select>'
            '<textarea id="subscription-notes"></textarea>'
            "</form>"
        )
        assert _labels(scan_forms(snap)) == ["subscription input", "billing input", "subscription input"]

    def test_one_input_can_fire_both(self, make_snapshot):
        snap = make_snapshot('<form action="/x"><input id="subscription" name="billing"></form>')
        assert _labels(scan_forms(snap)) == ["subscription input", "billing input"]

    def test_unresolvable_action_matched_raw(self, make_snapshot):
        snap = make_snapshot('<form action="http://[broken/checkout"></form>')
        assert _labels(scan_forms(snap)) == ["checkout form"]

    def test_unresolvable_action_keeps_other_evidence(self, make_snapshot):
        snap = make_snapshot(
            '<form action="http://[broken"></form><button>Subscribe</button><h1>Subscription plans</h1>'
        )
        result = analyze_structure(snap)
        assert result.detected_elements == ("subscribe button", "subscription heading", "pricing heading")
        assert result.confidence == pytest.approx(0.9)
        assert result.is_subscription_page is True

    def test_inputs_outside_forms_ignored(self, make_snapshot):
        assert scan_forms(make_snapshot('<input name="billing_zip">')) == []

    @pytest.mark.many_inputs
    def test_per_input_bonus_is_uncapped(self, make_snapshot):
        """Twelve billing inputs add 1.2 before the final clamp brings it to 1.0."""
        inputs = "".join(f'<input name="billing_{i}">' for i in range(12))
        snap = make_snapshot(f'<form action="/x">{inputs}</form>', url="https://example.com/account")
        evidence = scan_forms(snap)
        assert len(evidence) == 12
        assert _total(evidence) == pytest.approx(1.2)

        result = analyze_structure(snap)
        assert result.confidence == 1.0
        assert result.is_subscription_page is True
        assert len(result.detected_elements) == 12


# ---------------------------------------------------------------------------
# Buttons and links
# ---------------------------------------------------------------------------


class TestButtons:
    def test_independent_checks_per_element(self, make_snapshot):
        evidence = scan_buttons(make_snapshot("<button>Upgrade to Pro and subscribe</button>"))
        assert _labels(evidence) == ["subscribe button", "upgrade button"]
        assert _total(evidence) == pytest.approx(0.65)

    def test_anchor_title_counts(self, make_snapshot):
        evidence = scan_buttons(make_snapshot('<a href="/x" title="Start free trial">Go</a>'))
        assert _labels(evidence) == ["trial button"]

    def test_aria_label_counts(self, make_snapshot):
        evidence = scan_buttons(make_snapshot('<button aria-label="Billing settings">⚙</button>'))
        assert _labels(evidence) == ["plan/billing button"]

    def test_only_submit_inputs(self, make_snapshot):
        snap = make_snapshot('<input type="SUBMIT" aria-label="Buy now"><input type="text" aria-label="Buy more">')
        assert _labels(scan_buttons(snap)) == ["purchase button"]

    def test_every_button_signal(self, make_snapshot):
        snap = make_snapshot(
            "<button>Subscribe</button>"
            "<button>Checkout</button>"
            "<button>Go premium</button>"
            "<button>Trial</button>"
            "<button>See plan</button>"
        )
        assert _labels(scan_buttons(snap)) == [
            "subscribe button",
            "purchase button",
            "upgrade button",
            "trial button",
            "plan/billing button",
        ]


# ---------------------------------------------------------------------------
# Page structure
# ---------------------------------------------------------------------------


class TestPageStructure:
    def test_pricing_class_counted_once(self, make_snapshot):
        snap = make_snapshot('<div class="pricing-grid"><div class="plan-card"></div><div class="tier"></div></div>')
        evidence = scan_page_structure(snap)
        assert _labels(evidence) == ["pricing table"]
        assert _total(evidence) == pytest.approx(0.2)

    def test_headings(self, make_snapshot):
        snap = make_snapshot("<h2>Choose your subscription</h2><h3>Pricing plans</h3><h6>Billing details</h6>")
        evidence = scan_page_structure(snap)
        assert _labels(evidence) == ["subscription heading", "pricing heading", "billing heading"]
        assert _total(evidence) == pytest.approx(0.65)

    def test_meta_description(self, make_snapshot):
        snap = make_snapshot(
            '<html><head><meta name="description" content="Subscribe to our newsletter"></head><body></body></html>'
        )
        assert _labels(scan_page_structure(snap)) == ["subscription meta description"]

    def test_other_meta_ignored(self, make_snapshot):
        snap = make_snapshot('<html><head><meta name="keywords" content="subscription"></head><body></body></html>')
        assert scan_page_structure(snap) == []


# ---------------------------------------------------------------------------
# analyze_structure
# ---------------------------------------------------------------------------


class TestAnalyzeStructure:
    def test_empty_page(self, make_snapshot):
        result = analyze_structure(make_snapshot(""))
        assert result.confidence == 0.0
        assert result.is_subscription_page is False
        assert result.detected_elements == ()
        assert result.reason == "Found 0 subscription-related elements"

    def test_threshold_is_strict(self, make_snapshot):
        result = analyze_structure(make_snapshot("<button>Subscribe</button>"))
        assert result.confidence == pytest.approx(0.4)
        assert result.is_subscription_page is False

    def test_sub_scans_in_order(self, make_snapshot):
        snap = make_snapshot(
            '<h1>Pricing</h1><form action="/x"><p>Subscribe</p><button>Subscribe</button></form>'
        )
        result = analyze_structure(snap)
        assert result.detected_elements == ("subscription form", "subscribe button", "pricing heading")
        assert result.confidence == pytest.approx(0.9)
        assert result.is_subscription_page is True
        assert result.reason == "Found 3 subscription-related elements"
